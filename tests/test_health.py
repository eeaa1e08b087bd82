def test_health_check(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] in ('healthy', 'degraded')
    assert body['checks']['database']['type'] == 'SQLite'
    assert body['checks']['tables']['missing'] == []
    assert body['checks']['application']['blueprints']['missing_critical'] == []


def test_simple_health_check(client):
    assert client.get('/api/health/simple').get_json() == {'status': 'healthy', 'message': 'Service is running'}


def test_index_lists_blueprints(client):
    body = client.get('/').get_json()
    assert body['environment'] == 'testing'
    assert 'dashboard_bp' in body['blueprints']


def test_unknown_api_path_returns_json_404(client):
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Not Found'
