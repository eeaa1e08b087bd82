from steelvault.models import db, Project, ProjectPackage


def test_list_projects_newest_first(client, as_lead):
    projects = client.get('/api/projects').get_json()
    assert [p['name'] for p in projects] == ['Harbor Bridge', 'Mill Annex', 'North Depot', 'Rail Shed']

    live = client.get('/api/projects?status=live').get_json()
    assert [p['name'] for p in live] == ['Harbor Bridge', 'Mill Annex']


def test_client_accounts_only_see_their_projects(client, as_client_pm):
    projects = client.get('/api/projects').get_json()
    assert {p['clientId'] for p in projects} == {as_client_pm['clients']['acme']}

    other = as_client_pm['projects'][2]
    assert client.get(f'/api/projects/{other}').status_code == 404
    assert client.get(f'/api/projects/{other}/packages').status_code == 404


def test_project_detail(client, as_lead):
    harbor = as_lead['projects'][0]
    body = client.get(f'/api/projects/{harbor}').get_json()

    assert body['project']['name'] == 'Harbor Bridge'
    assert body['clientName'] == 'Acme Steel'
    assert body['teamLeadName'] == 'Tara Lead'
    assert [r['rfiNumber'] for r in body['rfis']] == ['RFI-2', 'RFI-1']
    assert [p['name'] for p in body['packages']] == ['Anchor bolts', 'Main girders']
    assert body['packageStatusCounts'] == {'Issued': 1, 'Pending': 1}


def test_project_detail_missing(client, as_lead):
    response = client.get('/api/projects/9999')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Project 9999 not found'


def test_create_project_with_defaults_and_packages(app, client, as_admin):
    response = client.post('/api/projects', json={
        'solProjectNo': 'SOL-77',
        'name': 'Tower Crane Base',
        'clientId': as_admin['clients']['cobalt'],
        'packages': [{'name': 'Base plates', 'tentativeDate': '2030-01-15'}],
    })
    assert response.status_code == 201
    body = response.get_json()
    assert body['status'] == 'Live'
    assert body['priority'] == 'MEDIUM'
    assert body['projectNo'].startswith('P-')
    assert [p['name'] for p in body['packages']] == ['Base plates']
    assert 'packageErrors' not in body

    with app.app_context():
        assert ProjectPackage.query.filter_by(project_id=body['id']).count() == 1


def test_create_project_normalises_status(client, as_admin):
    response = client.post('/api/projects', json={
        'solProjectNo': 'SOL-78', 'name': 'Silo', 'clientId': as_admin['clients']['acme'], 'status': 'on_hold',
    })
    assert response.status_code == 201
    assert response.get_json()['status'] == 'On-Hold'


def test_create_project_validation_writes_nothing(app, client, as_admin):
    cases = [
        ({'name': 'No SOL', 'clientId': as_admin['clients']['acme']}, 'solProjectNo'),
        ({'solProjectNo': 'S', 'clientId': as_admin['clients']['acme']}, 'name'),
        ({'solProjectNo': 'S', 'name': 'No client'}, 'clientId'),
        ({'solProjectNo': 'S', 'name': 'Ghost client', 'clientId': 9999}, 'clientId'),
        ({'solProjectNo': 'S', 'name': 'Odd', 'clientId': as_admin['clients']['acme'], 'status': 'weird'}, 'status'),
        ({'solProjectNo': 'S', 'name': 'Bad pkg', 'clientId': as_admin['clients']['acme'],
          'packages': [{'tentativeDate': '2030-01-01'}]}, 'name'),
    ]
    for payload, field in cases:
        response = client.post('/api/projects', json=payload)
        assert response.status_code == 400, payload
        assert response.get_json()['field'] == field

    with app.app_context():
        assert Project.query.count() == 4


def test_create_project_requires_admin(client, as_lead):
    response = client.post('/api/projects', json={
        'solProjectNo': 'SOL-9', 'name': 'Nope', 'clientId': as_lead['clients']['acme'],
    })
    assert response.status_code == 403


def test_update_project(client, as_lead):
    harbor = as_lead['projects'][0]
    response = client.put(f'/api/projects/{harbor}', json={'status': 'closed', 'progress': 100})
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'Closed'
    assert body['progress'] == 100

    assert client.put(f'/api/projects/{harbor}', json={'progress': 140}).status_code == 400


def test_assign_team_lead(app, client, as_lead):
    depot = as_lead['projects'][3]
    response = client.put(f'/api/projects/{depot}/team-lead', json={'teamLeadId': as_lead['users']['omar']})
    assert response.status_code == 200
    assert response.get_json()['column'] == 'solTLId'

    with app.app_context():
        assert db.session.get(Project, depot).sol_tl_id == as_lead['users']['omar']

    not_a_lead = client.put(f'/api/projects/{depot}/team-lead', json={'teamLeadId': as_lead['users']['paula']})
    assert not_a_lead.status_code == 400

    cleared = client.put(f'/api/projects/{depot}/team-lead', json={'teamLeadId': None})
    assert cleared.get_json()['teamLeadId'] is None
    assert client.put('/api/projects/9999/team-lead', json={'teamLeadId': None}).status_code == 404


def test_packages_and_rfis(client, as_lead):
    depot = as_lead['projects'][2]
    created = client.post(f'/api/projects/{depot}/packages', json={
        'name': 'Purlins', 'packageNumber': 'PK-9', 'tentativeDate': '2031-02-03', 'status': 'Pending',
    })
    assert created.status_code == 201
    assert created.get_json()['packagenumber'] == 'PK-9'

    names = [p['name'] for p in client.get(f'/api/projects/{depot}/packages').get_json()]
    assert names == ['Roof trusses', 'Purlins']

    bad_date = client.post(f'/api/projects/{depot}/packages', json={'name': 'X', 'tentativeDate': '03/02/2031'})
    assert bad_date.status_code == 400

    rfi = client.post(f'/api/projects/{depot}/rfis', json={'rfiNumber': 'RFI-7', 'date': '2031-01-01'})
    assert rfi.status_code == 201
    assert [r['rfiNumber'] for r in client.get(f'/api/projects/{depot}/rfis').get_json()] == ['RFI-7']


def test_delete_project(app, client, as_admin):
    harbor = as_admin['projects'][0]
    assert client.delete(f'/api/projects/{harbor}').status_code == 200
    assert client.delete(f'/api/projects/{harbor}').status_code == 404

    with app.app_context():
        assert ProjectPackage.query.filter_by(project_id=harbor).count() == 0
