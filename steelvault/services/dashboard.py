# steelvault/services/dashboard.py
"""
Fetch-then-derive glue behind the dashboard widgets.

Each function pulls the rows it needs through a ``TableClient`` and hands them
to the pure helpers in ``aggregations`` and ``client_metrics``. A failed query
surfaces as ``BackendUnavailable``; name lookups that only decorate the output
degrade to "<Entity> <id>" labels instead.
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal

from ..errors import NotFound, ValidationError
from . import aggregations, client_metrics
from .aggregations import Bucket, group_and_count, group_with_other, percentage_of_total
from .date_utils import GRANULARITIES, local_date, utc_now
from .field_resolver import ENTITY_LABELS, resolver
from .status import is_active_status

logger = logging.getLogger(__name__)

PROJECT_TABLE = 'Project'
PACKAGE_TABLE = 'ProjectPackage'
RFI_TABLE = 'ProjectRFI'
USER_TABLE = 'User'

# Table names still differ between environments for these two entities
USER_TABLES = ('User', 'user', 'users', 'Employee', 'employee', 'employees')
CLIENT_TABLES = ('Client', 'client', 'clients')


def jsonable(value):
    """Convert fetched rows into JSON-safe structures (dates become ISO strings)."""
    if isinstance(value, dict):
        return {key: jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _column(tables, table, entity, field):
    """Physical column for a logical field, falling back to the canonical name."""
    column = resolver.column_for(entity, field, tables.columns(table))
    return column or resolver.candidates(entity, field)[0]


def _fallback_label(entity, row_id):
    return f"{ENTITY_LABELS[entity]} {row_id}"


def fetch_projects(tables, client_id=None):
    query = tables.table(PROJECT_TABLE).select('*')
    if client_id is not None:
        query = query.eq(_column(tables, PROJECT_TABLE, 'project', 'client_id'), client_id)
    return query.execute().rows()


def project_ids_for_client(tables, client_id):
    return sorted({
        pid for pid in (resolver.resolve_int('project', p, 'id') for p in fetch_projects(tables, client_id))
        if pid is not None
    })


def lookup_names(tables, entity, candidates, ids):
    """
    Map ids to display names, probing each candidate table until every id is named.

    Tables that fail or lack an ``id`` column are skipped.
    """
    wanted = {i for i in ids if i is not None}
    names = {}
    for table in candidates:
        missing = wanted - names.keys()
        if not missing:
            break
        result = tables.table(table).select('*').in_('id', sorted(missing)).execute()
        if not result.ok:
            logger.debug(f"Name lookup on {table} skipped: {result.error}")
            continue
        for row in result.data:
            row_id = resolver.resolve_int(entity, row, 'id')
            if row_id is not None and row_id not in names:
                names[row_id] = resolver.display_name(entity, row)
    return names


def project_status_breakdown(tables, client_id=None):
    return aggregations.status_breakdown(fetch_projects(tables, client_id))


def team_lead_distribution(tables, threshold=5, client_id=None):
    """
    Projects per team lead with small leads folded into "Other".

    Returns:
        dict: ``total`` and ``slices`` ({key, name, value, percentage, isOther,
        members?}), largest first
    """
    projects = fetch_projects(tables, client_id)
    pairs = group_and_count(projects, lambda p: resolver.resolve_int('project', p, 'team_lead_id'))
    names = lookup_names(tables, 'user', USER_TABLES, [lead_id for lead_id, _ in pairs])

    buckets = [
        Bucket(key=lead_id, count=count, label=names.get(lead_id, _fallback_label('user', lead_id)))
        for lead_id, count in pairs
    ]
    total = sum(bucket.count for bucket in buckets)

    slices = []
    for bucket in group_with_other(buckets, threshold):
        payload = bucket.to_dict()
        payload['percentage'] = percentage_of_total(bucket.count, total)
        slices.append(payload)
    return {'total': total, 'slices': slices}


def client_project_treemap(tables, client_id=None):
    """Project count per client, largest first."""
    projects = fetch_projects(tables, client_id)
    pairs = group_and_count(projects, lambda p: resolver.resolve_int('project', p, 'client_id'))
    names = lookup_names(tables, 'client', CLIENT_TABLES, [cid for cid, _ in pairs])
    return [
        {'clientId': cid, 'name': names.get(cid, _fallback_label('client', cid)), 'size': count}
        for cid, count in pairs
    ]


def active_project_stats(tables, client_id=None):
    return aggregations.active_project_stats(fetch_projects(tables, client_id))


def clients_overview(tables, now=None, top=5, inactive_after_days=client_metrics.INACTIVE_AFTER_DAYS, client_id=None):
    """Client tiers and scores; a client-scoped call only sees its own client row."""
    clients = tables.probe(CLIENT_TABLES).rows()
    if client_id is not None:
        clients = [c for c in clients if resolver.resolve_int('client', c, 'id') == client_id]
    projects = fetch_projects(tables, client_id)
    overview = client_metrics.client_overview(
        clients, projects, now=now, top=top, inactive_after_days=inactive_after_days,
    )
    return jsonable(overview)


def clients_table(tables, search=None):
    """
    Client list with point of contact and live/total project counts.

    ``search`` matches case-insensitively against the client name or the
    point-of-contact name.
    """
    clients_query = tables.table('Client').select('*')
    created_col = resolver.column_for('client', 'created_at', tables.columns('Client'))
    if created_col:
        clients_query = clients_query.order(created_col, ascending=False)
    clients = clients_query.execute().rows()

    counts = {}
    for project in fetch_projects(tables):
        cid = resolver.resolve_int('project', project, 'client_id')
        if cid is None:
            continue
        group = counts.setdefault(cid, {'total': 0, 'live': 0})
        group['total'] += 1
        if is_active_status(resolver.resolve('project', project, 'status')):
            group['live'] += 1

    # First client-role user per client is the point of contact
    poc_names = {}
    ids = [cid for cid in (resolver.resolve_int('client', c, 'id') for c in clients) if cid is not None]
    if ids:
        user_query = tables.table(USER_TABLE).select('*').in_(_column(tables, USER_TABLE, 'user', 'client_id'), ids)
        user_created = resolver.column_for('user', 'created_at', tables.columns(USER_TABLE))
        if user_created:
            user_query = user_query.order(user_created)
        result = user_query.execute()
        if result.ok:
            for user in result.data:
                if str(resolver.resolve('user', user, 'role', '')).lower() != 'client':
                    continue
                cid = resolver.resolve_int('user', user, 'client_id')
                if cid is not None and cid not in poc_names:
                    poc_names[cid] = resolver.display_name('user', user)
        else:
            logger.warning(f"Point-of-contact lookup failed: {result.error}")

    rows = []
    for client in clients:
        cid = resolver.resolve_int('client', client, 'id')
        group = counts.get(cid, {'total': 0, 'live': 0})
        rows.append({
            'id': cid,
            'clientName': resolver.display_name('client', client),
            'poc': poc_names.get(cid),
            'activeProjects': group['live'],
            'totalProjects': group['total'],
            'lastActivityDate': resolver.resolve('client', client, 'last_activity'),
            'createdAt': resolver.resolve('client', client, 'created_at'),
            'updatedAt': client.get('updatedAt') or resolver.resolve('client', client, 'created_at'),
        })

    if search:
        needle = search.strip().lower()
        rows = [
            row for row in rows
            if needle in (row['clientName'] or '').lower() or needle in (row['poc'] or '').lower()
        ]
    return jsonable(rows)


def list_users_by_role(tables, role):
    """Users whose role matches ``role`` case-insensitively, newest first when the table has createdAt."""
    query = tables.table(USER_TABLE).select('*')
    created_col = resolver.column_for('user', 'created_at', tables.columns(USER_TABLE))
    if created_col:
        query = query.order(created_col, ascending=False)
    return [
        user for user in query.execute().rows()
        if str(resolver.resolve('user', user, 'role', '')).lower() == role.lower()
    ]


def team_lead_load(tables):
    """Per-lead load for the Team page plus the number of projects with no lead."""
    leads = list_users_by_role(tables, 'employee')
    projects = fetch_projects(tables)
    return {
        'leads': aggregations.team_lead_load(leads, projects),
        'unassigned': len(aggregations.unassigned_projects(projects)),
    }


def _packages_query(tables, client_id):
    """Package query limited to one client's projects, or None when that client has none."""
    query = tables.table(PACKAGE_TABLE).select('*')
    if client_id is None:
        return query
    project_ids = project_ids_for_client(tables, client_id)
    if not project_ids:
        return None
    return query.in_(_column(tables, PACKAGE_TABLE, 'package', 'project_id'), project_ids)


def upcoming_packages(tables, now=None, window_days=1, client_id=None, tz=None):
    """
    Packages whose tentative date falls between today and ``window_days`` ahead.

    "Today" is the calendar date of ``now`` in ``tz`` (UTC when not given).
    Each row carries the project, client and team lead names, earliest first.
    """
    start = local_date(now or utc_now(), tz)
    end = start + timedelta(days=window_days)

    query = _packages_query(tables, client_id)
    if query is None:
        return []
    date_col = _column(tables, PACKAGE_TABLE, 'package', 'tentative_date')
    packages = (
        query
        .gte(date_col, start)
        .lte(date_col, end)
        .order(date_col)
        .execute().rows()
    )
    if not packages:
        return []

    project_ids = sorted({
        pid for pid in (resolver.resolve_int('package', p, 'project_id') for p in packages) if pid is not None
    })
    projects = {}
    if project_ids:
        for project in tables.table(PROJECT_TABLE).select('*').in_('id', project_ids).execute().rows():
            projects[resolver.resolve_int('project', project, 'id')] = project

    client_ids = {resolver.resolve_int('project', p, 'client_id') for p in projects.values()}
    lead_ids = {resolver.resolve_int('project', p, 'team_lead_id') for p in projects.values()}
    client_names = lookup_names(tables, 'client', ('Client',), client_ids)
    lead_names = lookup_names(tables, 'user', (USER_TABLE,), lead_ids)

    rows = []
    for package in packages:
        pid = resolver.resolve_int('package', package, 'project_id')
        project = projects.get(pid)
        cid = resolver.resolve_int('project', project, 'client_id') if project else None
        tid = resolver.resolve_int('project', project, 'team_lead_id') if project else None
        rows.append({
            'id': resolver.resolve('package', package, 'id'),
            'projectId': pid,
            'projectName': resolver.display_name('project', project) if project else _fallback_label('project', pid),
            'clientName': client_names.get(cid, _fallback_label('client', cid)) if cid is not None else None,
            'tlName': lead_names.get(tid, _fallback_label('user', tid)) if tid is not None else None,
            'date': resolver.resolve('package', package, 'tentative_date'),
        })
    return jsonable(rows)


def workload_series(tables, granularity='day', client_id=None, tz=None):
    """
    Package submissions per period, dated by tentative date or else creation date.

    Creation timestamps are bucketed by their calendar date in ``tz``.
    """
    if granularity not in GRANULARITIES:
        raise ValidationError(
            f"granularity must be one of {', '.join(GRANULARITIES)}", field='granularity',
        )
    query = _packages_query(tables, client_id)
    if query is None:
        return []
    dates = [
        resolver.resolve('package', p, 'tentative_date') or resolver.resolve('package', p, 'created_at')
        for p in query.execute().rows()
    ]
    return aggregations.bucket_counts_by_period(dates, granularity, tz=tz)


def project_detail(tables, project_id):
    """
    One project with its RFIs (newest first), packages (earliest tentative date
    first) and package status counts.

    Raises:
        NotFound: when no project has ``project_id``
    """
    project = tables.table(PROJECT_TABLE).select('*').eq('id', project_id).maybe_single().rows()
    if not project:
        raise NotFound(f"Project {project_id} not found")
    project = project[0]

    rfis = (
        tables.table(RFI_TABLE).select('*')
        .eq(_column(tables, RFI_TABLE, 'rfi', 'project_id'), project_id)
        .order(_column(tables, RFI_TABLE, 'rfi', 'date'), ascending=False)
        .execute().rows()
    )
    packages = (
        tables.table(PACKAGE_TABLE).select('*')
        .eq(_column(tables, PACKAGE_TABLE, 'package', 'project_id'), project_id)
        .order(_column(tables, PACKAGE_TABLE, 'package', 'tentative_date'))
        .execute().rows()
    )

    cid = resolver.resolve_int('project', project, 'client_id')
    tid = resolver.resolve_int('project', project, 'team_lead_id')
    client_names = lookup_names(tables, 'client', CLIENT_TABLES, [cid])
    lead_names = lookup_names(tables, 'user', USER_TABLES, [tid])

    return jsonable({
        'project': project,
        'clientName': client_names.get(cid) if cid is not None else None,
        'teamLeadName': lead_names.get(tid) if tid is not None else None,
        'rfis': rfis,
        'packages': packages,
        'packageStatusCounts': aggregations.count_package_statuses(packages),
    })
