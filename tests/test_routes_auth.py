import json


def test_login_success_returns_session(client, seed):
    response = client.post('/api/auth/login', json={
        'email': 'Admin@SteelVault.test', 'password': 'admin-pass', 'next': '/admin',
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body['user'] == {
        'userId': seed['users']['admin'], 'name': 'Ada Admin', 'email': 'admin@steelvault.test',
        'role': 'Admin', 'clientId': None,
    }
    assert body['redirect'] == '/admin'

    me = client.get('/api/auth/me').get_json()
    assert me['authenticated'] is True
    assert me['user']['userId'] == seed['users']['admin']


def test_login_failure_is_uniform_and_stores_nothing(client, seed):
    for payload in (
        {'email': 'admin@steelvault.test', 'password': 'wrong'},
        {'email': 'ghost@steelvault.test', 'password': 'admin-pass'},
        {},
    ):
        response = client.post('/api/auth/login', json=payload)
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid email or password.'

    assert client.get('/api/auth/me').get_json() == {'authenticated': False, 'user': None}


def test_login_with_non_text_credentials_is_a_plain_failure(client, seed):
    for body in (
        {'email': 123, 'password': 'x'},
        {'email': {'$ne': ''}, 'password': 'admin-pass'},
        {'email': 'admin@steelvault.test', 'password': ['admin-pass']},
        ['admin@steelvault.test', 'admin-pass'],
    ):
        response = client.post('/api/auth/login', json=body)
        assert response.status_code == 401, body
        assert response.get_json()['error'] == 'Invalid email or password.'


def test_login_rejects_offsite_next(client, seed):
    response = client.post('/api/auth/login', json={
        'email': 'tara@steelvault.test', 'password': 'tara-pass', 'next': 'https://evil.example',
    })
    assert response.get_json()['redirect'] == '/'


def test_logout_clears_session_and_is_idempotent(client, as_lead):
    assert client.get('/api/dashboard/active-stats').status_code == 200

    assert client.post('/api/auth/logout').status_code == 200
    assert client.post('/api/auth/logout').status_code == 200
    assert client.get('/api/auth/me').get_json()['authenticated'] is False
    assert client.get('/api/dashboard/active-stats').status_code == 401


def test_relogin_replaces_session(client, seed, login):
    login('paula@acme.test')
    login('tara@steelvault.test')
    assert client.get('/api/auth/me').get_json()['user']['email'] == 'tara@steelvault.test'


def test_malformed_session_blob_reads_as_signed_out(client, seed):
    with client.session_transaction() as sess:
        sess['auth:user'] = json.dumps({'userId': 1, 'email': 'x@y.test', 'role': 'overlord'})

    assert client.get('/api/auth/me').get_json()['authenticated'] is False
    with client.session_transaction() as sess:
        assert 'auth:user' not in sess


def test_unauthenticated_api_call_gets_login_redirect(client, seed):
    response = client.get('/api/projects?status=Live')
    assert response.status_code == 401
    assert response.get_json()['redirect'] == '/login?next=%2Fapi%2Fprojects%3Fstatus%3DLive'


def test_guard_endpoint(client, seed, login):
    anonymous = client.get('/api/auth/guard?path=/projects').get_json()
    assert anonymous == {
        'allowed': False, 'redirect': '/login?next=%2Fprojects', 'next': '/projects', 'reason': 'unauthenticated',
    }
    assert client.get('/api/auth/guard?path=/login').get_json()['allowed'] is True

    login('tara@steelvault.test')
    denied = client.get('/api/auth/guard?path=/admin/add-project').get_json()
    assert denied['allowed'] is False
    assert denied['redirect'] == '/'

    login('admin@steelvault.test')
    assert client.get('/api/auth/guard?path=/admin/add-project').get_json()['allowed'] is True


def test_role_required_returns_403_for_wrong_role(client, as_client_pm):
    response = client.get('/api/team/load')
    assert response.status_code == 403
    assert response.get_json()['redirect'] == '/'
