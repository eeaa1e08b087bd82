from datetime import datetime, timedelta

import pytest
import pytz

from steelvault.services.client_metrics import (
    client_overview,
    derive_client_status,
    label_for_score,
    normalize_client,
    score_client,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=pytz.UTC)


def days_ago(days):
    return (NOW - timedelta(days=days)).isoformat()


def make_projects(client_id, count, age_days):
    return [{'id': client_id * 100 + i, 'clientId': client_id, 'createdAt': days_ago(age_days)} for i in range(count)]


@pytest.fixture
def clients():
    return {
        'A': {'id': 1, 'name': 'Alpha', 'totalProjects': 0, 'activeProjects': 0},
        'B': {'id': 2, 'name': 'Beta', 'contactNo': '555-0100', 'totalProjects': 1, 'activeProjects': 1,
              'lastActivityDate': days_ago(10)},
        'C': {'id': 3, 'name': 'Gamma', 'totalProjects': 8, 'activeProjects': 0,
              'lastActivityDate': days_ago(400)},
    }


def test_derive_client_status(clients):
    assert derive_client_status(clients['A'], NOW) == 'prospect'
    assert derive_client_status(clients['B'], NOW) == 'active'
    assert derive_client_status(clients['C'], NOW) == 'inactive'

    recent = {'id': 4, 'totalProjects': 2, 'activeProjects': 0, 'lastActivityDate': days_ago(20)}
    assert derive_client_status(recent, NOW) == 'active'
    assert derive_client_status({'totalProjects': '3', 'activeProjects': None}, NOW) == 'active'


def test_scores_for_reference_clients(clients):
    projects = make_projects(2, 1, 10) + make_projects(3, 8, 400)

    a = normalize_client(clients['A'], NOW)
    b = normalize_client(clients['B'], NOW)
    c = normalize_client(clients['C'], NOW)

    assert score_client(a, projects, NOW) == 0
    assert score_client(b, projects, NOW) == pytest.approx(4.1)
    assert label_for_score(score_client(b, projects, NOW)) != 'Dormant'
    assert score_client(c, projects, NOW) == pytest.approx(4.0)


def test_zero_projects_score_zero_regardless_of_other_fields():
    client = {'id': 9, 'contactNo': '555', 'syntheticStatus': 'active'}
    assert score_client(client, [], NOW) == 0


def test_score_is_monotonic_in_recency_and_count():
    client = {'id': 5, 'contactNo': None, 'syntheticStatus': 'inactive'}

    scores_by_age = [score_client(client, make_projects(5, 2, age), NOW) for age in (200, 60, 5)]
    assert scores_by_age == sorted(scores_by_age)
    assert scores_by_age[0] < scores_by_age[-1]

    scores_by_count = [score_client(client, make_projects(5, n, 45), NOW) for n in (1, 2, 3, 5, 8)]
    assert scores_by_count == sorted(scores_by_count)


def test_status_bonus_requires_exact_active_match():
    projects = make_projects(6, 1, 200)
    active = {'id': 6, 'syntheticStatus': 'active'}
    inactive = {'id': 6, 'syntheticStatus': 'inactive'}
    assert score_client(active, projects, NOW) - score_client(inactive, projects, NOW) == pytest.approx(1)


@pytest.mark.parametrize('score,label', [
    (0, 'Dormant'),
    (1.99, 'Dormant'),
    (2, 'Regular'),
    (4, 'Key'),
    (5.99, 'Key'),
    (6, 'Strategic'),
    (9.3, 'Strategic'),
])
def test_label_for_score_bounds_are_inclusive(score, label):
    assert label_for_score(score) == label


def test_client_overview_totals_and_top(clients):
    projects = make_projects(2, 1, 10) + make_projects(3, 8, 400)
    overview = client_overview(list(clients.values()), projects, now=NOW, top=2)

    assert overview['projectCount'] == 9
    assert overview['totals'] == {
        'active': 1, 'inactive': 1, 'prospect': 1, 'strategic': 0, 'key': 2, 'total': 3,
    }
    assert [c['clientName'] for c in overview['top']] == ['Beta', 'Gamma']
    by_name = {c['clientName']: c for c in overview['clients']}
    assert by_name['Gamma']['projectCount'] == 8
    assert by_name['Alpha']['importanceLabel'] == 'Dormant'
    assert by_name['Beta']['lastActivityDate'].startswith('2025-05-22')
