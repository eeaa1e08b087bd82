# steelvault/services/client_metrics.py
"""
Client relationship heuristics used by the clients overview.

The importance score is a UI tiering aid only; it is recomputed on every
request and never stored.
"""

import logging

from .date_utils import days_since, parse_timestamp, utc_now
from .field_resolver import resolver as default_resolver, to_number

logger = logging.getLogger(__name__)

INACTIVE_AFTER_DAYS = 180

RECENT_DAYS = 30
WARM_DAYS = 90
ACTIVITY_PER_PROJECT = 0.8
ACTIVITY_CAP = 4
STATUS_BONUS = 1
CONTACT_BONUS = 0.3

# (lower bound, label), checked top-down; each bound is inclusive
SCORE_TIERS = (
    (6, 'Strategic'),
    (4, 'Key'),
    (2, 'Regular'),
)
DORMANT_LABEL = 'Dormant'


def derive_client_status(client, now=None, inactive_after_days=INACTIVE_AFTER_DAYS, resolver=default_resolver):
    """
    Synthetic status from the counters stored on a client row.

    prospect: no projects at all; active: at least one active project;
    inactive: last activity older than ``inactive_after_days``; otherwise active.
    """
    active = to_number(resolver.resolve('client', client, 'active_projects')) or 0
    total = to_number(resolver.resolve('client', client, 'total_projects')) or 0

    if total == 0:
        return 'prospect'
    if active > 0:
        return 'active'

    elapsed = days_since(resolver.resolve('client', client, 'last_activity'), now)
    if elapsed is not None and elapsed > inactive_after_days:
        return 'inactive'
    return 'active'


def normalize_client(client, now=None, inactive_after_days=INACTIVE_AFTER_DAYS, resolver=default_resolver):
    """Flatten a raw client row into the shape the overview works with."""
    contact = resolver.resolve('client', client, 'contact_no')
    last_activity = parse_timestamp(resolver.resolve('client', client, 'last_activity'))
    return {
        'id': resolver.resolve_int('client', client, 'id'),
        'clientName': resolver.display_name('client', client),
        'email': resolver.resolve('client', client, 'email'),
        'contactNo': contact if contact else None,
        'activeProjects': to_number(resolver.resolve('client', client, 'active_projects')),
        'completedProjects': to_number(resolver.resolve('client', client, 'completed_projects')),
        'totalProjects': to_number(resolver.resolve('client', client, 'total_projects')),
        'lastActivityDate': last_activity.isoformat() if last_activity else None,
        'syntheticStatus': derive_client_status(client, now, inactive_after_days, resolver),
    }


def projects_for_client(client_id, projects, resolver=default_resolver):
    if client_id is None:
        return []
    return [p for p in projects or () if resolver.resolve_int('project', p, 'client_id') == client_id]


def recency_weight(days):
    if days is None:
        return 0
    if days <= RECENT_DAYS:
        return 2
    if days <= WARM_DAYS:
        return 1
    return 0


def score_client(client, projects, now=None, resolver=default_resolver):
    """
    Importance score for a normalized client against all fetched projects.

    Clients without projects score exactly 0.
    """
    client_projects = projects_for_client(client.get('id'), projects, resolver)
    project_count = len(client_projects)
    if project_count == 0:
        return 0

    now = now or utc_now()
    latest = None
    for project in client_projects:
        created = parse_timestamp(resolver.resolve('project', project, 'created_at'))
        if created is not None and (latest is None or created > latest):
            latest = created
    days = days_since(latest, now) if latest is not None else None

    activity = min(project_count * ACTIVITY_PER_PROJECT, ACTIVITY_CAP)
    status_bonus = STATUS_BONUS if (client.get('syntheticStatus') or '').lower() == 'active' else 0
    contact_bonus = CONTACT_BONUS if client.get('contactNo') else 0
    return round(activity + recency_weight(days) + status_bonus + contact_bonus, 2)


def label_for_score(score):
    for lower_bound, label in SCORE_TIERS:
        if (score or 0) >= lower_bound:
            return label
    return DORMANT_LABEL


def client_overview(clients, projects, now=None, top=5, inactive_after_days=INACTIVE_AFTER_DAYS,
                    resolver=default_resolver):
    """
    Enrich clients with score, tier and project count and summarise them.

    Returns:
        dict: ``clients`` (enriched, input order), ``totals``, ``top`` (highest
        scores first) and ``projectCount``
    """
    now = now or utc_now()
    enriched = []
    for raw in clients or ():
        client = normalize_client(raw, now, inactive_after_days, resolver)
        score = score_client(client, projects, now, resolver)
        client.update({
            'score': score,
            'importanceLabel': label_for_score(score),
            'projectCount': len(projects_for_client(client['id'], projects, resolver)),
        })
        enriched.append(client)

    totals = {'active': 0, 'inactive': 0, 'prospect': 0, 'strategic': 0, 'key': 0, 'total': len(enriched)}
    for client in enriched:
        status = client['syntheticStatus']
        if status in ('active', 'inactive', 'prospect'):
            totals[status] += 1
        if client['importanceLabel'] == 'Strategic':
            totals['strategic'] += 1
        elif client['importanceLabel'] == 'Key':
            totals['key'] += 1

    ranked = sorted(enriched, key=lambda c: -c['score'])
    return {
        'clients': enriched,
        'totals': totals,
        'top': ranked[:top],
        'projectCount': len(projects or ()),
    }
