from datetime import datetime, timedelta, timezone

import pytest

from steelvault.app import create_app
from steelvault.models import db, utcnow, Client, Project, ProjectPackage, ProjectRFI, User

PASSWORDS = {
    'admin@steelvault.test': 'admin-pass',
    'tara@steelvault.test': 'tara-pass',
    'omar@steelvault.test': 'omar-pass',
    'paula@acme.test': 'paula-pass',
}


@pytest.fixture
def app():
    app = create_app('testing')
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(name, email, user_type, client_id=None):
    user = User(name=name, email=email, user_type=user_type, client_id=client_id)
    user.set_password(PASSWORDS[email])
    return user


@pytest.fixture
def seed(app):
    """
    Two clients with projects and one prospect, an admin, two team leads and a
    client PM. Package dates are relative to today.
    """
    with app.app_context():
        return _seed(datetime.now(timezone.utc).date(), utcnow())


def _seed(today, now):
    acme = Client(name='Acme Steel', contact_no='555-0101', active_projects=2, total_projects=2,
                  last_activity_date=now - timedelta(days=3))
    borealis = Client(name='Borealis Builders', active_projects=0, total_projects=2,
                      last_activity_date=now - timedelta(days=400))
    cobalt = Client(name='Cobalt Fabricators', active_projects=0, total_projects=0)
    db.session.add_all([acme, borealis, cobalt])
    db.session.commit()

    admin = _user('Ada Admin', 'admin@steelvault.test', 'Admin')
    tara = _user('Tara Lead', 'tara@steelvault.test', 'employee')
    omar = _user('Omar Lead', 'omar@steelvault.test', 'employee')
    paula = _user('Paula PM', 'paula@acme.test', 'client', client_id=acme.id)
    db.session.add_all([admin, tara, omar, paula])
    db.session.commit()

    projects = [
        Project(project_no='P-1', sol_project_no='SOL-1', name='Harbor Bridge', client_id=acme.id,
                status='Live', sol_tl_id=tara.id, created_at=now - timedelta(days=5)),
        Project(project_no='P-2', sol_project_no='SOL-2', name='Mill Annex', client_id=acme.id,
                status='IN_PROGRESS', sol_tl_id=tara.id, created_at=now - timedelta(days=20)),
        Project(project_no='P-3', sol_project_no='SOL-3', name='North Depot', client_id=borealis.id,
                status='On-Hold', sol_tl_id=omar.id, created_at=now - timedelta(days=400)),
        Project(project_no='P-4', sol_project_no='SOL-4', name='Rail Shed', client_id=borealis.id,
                status='Closed', created_at=now - timedelta(days=500)),
    ]
    db.session.add_all(projects)
    db.session.commit()

    harbor = projects[0]
    db.session.add_all([
        ProjectPackage(project_id=harbor.id, name='Anchor bolts', status='Issued', tentative_date=today),
        ProjectPackage(project_id=harbor.id, name='Main girders', status='Pending',
                       tentative_date=today + timedelta(days=10)),
        ProjectPackage(project_id=projects[2].id, name='Roof trusses', tentative_date=today + timedelta(days=1)),
        ProjectRFI(project_id=harbor.id, rfi_number='RFI-1', date=today - timedelta(days=7), status='Open'),
        ProjectRFI(project_id=harbor.id, rfi_number='RFI-2', date=today - timedelta(days=1), status='Closed'),
    ])
    db.session.commit()

    return {
        'clients': {'acme': acme.id, 'borealis': borealis.id, 'cobalt': cobalt.id},
        'users': {'admin': admin.id, 'tara': tara.id, 'omar': omar.id, 'paula': paula.id},
        'projects': [p.id for p in projects],
        'today': today,
    }


@pytest.fixture
def login(client):
    def _login(email):
        response = client.post('/api/auth/login', json={'email': email, 'password': PASSWORDS[email]})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['user']
    return _login


@pytest.fixture
def as_admin(seed, login):
    login('admin@steelvault.test')
    return seed


@pytest.fixture
def as_lead(seed, login):
    login('tara@steelvault.test')
    return seed


@pytest.fixture
def as_client_pm(seed, login):
    login('paula@acme.test')
    return seed
