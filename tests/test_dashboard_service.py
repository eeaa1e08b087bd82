from datetime import date, datetime

import pytest
import pytz

from steelvault.models import db, ProjectPackage
from steelvault.services.dashboard import upcoming_packages, workload_series
from steelvault.services.table_client import get_table_client

KOLKATA = pytz.timezone('Asia/Kolkata')


@pytest.fixture
def tables(app, seed):
    with app.app_context():
        harbor = seed['projects'][0]
        db.session.add_all([
            ProjectPackage(project_id=harbor, name='Stair stringers', tentative_date=date(2025, 6, 3)),
            ProjectPackage(project_id=seed['projects'][2], name='Gutters', tentative_date=date(2025, 6, 2)),
        ])
        db.session.commit()
        yield get_table_client()


def test_upcoming_window_starts_on_the_local_calendar_day(tables):
    # 01:30 on 2 June in Kolkata
    now = datetime(2025, 6, 1, 20, 0, tzinfo=pytz.UTC)

    local = upcoming_packages(tables, now=now, window_days=1, tz=KOLKATA)
    assert [(r['projectName'], r['date']) for r in local] == [
        ('North Depot', '2025-06-02'),
        ('Harbor Bridge', '2025-06-03'),
    ]

    utc = upcoming_packages(tables, now=now, window_days=1)
    assert [r['date'] for r in utc] == ['2025-06-02']


def test_upcoming_packages_for_one_client(tables, seed):
    now = datetime(2025, 6, 1, 20, 0, tzinfo=pytz.UTC)

    rows = upcoming_packages(tables, now=now, window_days=1, client_id=seed['clients']['acme'], tz=KOLKATA)
    assert [r['projectName'] for r in rows] == ['Harbor Bridge']
    assert upcoming_packages(tables, now=now, client_id=seed['clients']['cobalt'], tz=KOLKATA) == []


def test_workload_for_one_client(tables, seed):
    yearly = workload_series(tables, 'year', client_id=seed['clients']['acme'])
    assert sum(bucket['submissions'] for bucket in yearly) == 3
    assert {'date': '2025-01-01', 'submissions': 1} in yearly

    assert workload_series(tables, 'day', client_id=seed['clients']['cobalt']) == []
