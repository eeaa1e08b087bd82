# steelvault/services/aggregations.py
"""
Pure derivations over rows that were already fetched in full.

Nothing here performs I/O, and every function tolerates missing or null
fields: an absent numeric cell counts as zero and a row whose grouping key
cannot be resolved is skipped.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .date_utils import local_date, bucket_start, GRANULARITIES
from .field_resolver import resolver as default_resolver
from .status import normalize_status, is_active_status, is_on_hold_status, is_status_chart_excluded

logger = logging.getLogger(__name__)

OTHER_LABEL = 'Other'


@dataclass
class Bucket:
    key: Any
    count: int
    members: List['Bucket'] = field(default_factory=list)
    label: Optional[str] = None

    @property
    def is_other(self):
        return bool(self.members)

    def as_pair(self):
        return (self.key, self.count)

    def to_dict(self):
        payload = {
            'key': self.key,
            'name': self.label if self.label is not None else self.key,
            'value': self.count,
            'isOther': self.is_other,
        }
        if self.members:
            payload['members'] = [member.to_dict() for member in self.members]
        return payload


def group_and_count(items: Iterable[Any], key_fn: Callable[[Any], Any]) -> List[Tuple[Any, int]]:
    """
    Count items per key, most frequent first.

    Items whose key resolves to None are skipped. Ties keep the order in which
    the keys were first seen.
    """
    counts = Counter()
    for item in items or ():
        key = key_fn(item)
        if key is None:
            continue
        counts[key] += 1
    # Counter preserves first-seen order and sorted() is stable
    return sorted(counts.items(), key=lambda pair: -pair[1])


def percentage_of_total(count, total) -> str:
    """Share of ``total`` as a one-decimal string; "0.0" when the total is zero."""
    count = count or 0
    total = total or 0
    if total <= 0:
        return '0.0'
    return f"{count / total * 100:.1f}"


def _as_bucket(entry):
    if isinstance(entry, Bucket):
        return entry
    key, count = entry
    return Bucket(key=key, count=count or 0)


def group_with_other(counts, threshold: int, other_label: str = OTHER_LABEL) -> List[Bucket]:
    """
    Fold every key whose count is below ``threshold`` into one Other bucket.

    Args:
        counts: (key, count) pairs, a {key: count} mapping or Buckets
        threshold: keys with a count strictly below this move to Other

    Returns:
        list[Bucket]: sorted by count descending; the Other bucket keeps the
        grouped entries in ``members``
    """
    if isinstance(counts, dict):
        counts = counts.items()
    buckets = [_as_bucket(entry) for entry in counts or ()]

    major = [b for b in buckets if b.count >= threshold]
    minor = [b for b in buckets if b.count < threshold]

    if minor:
        other = Bucket(key=other_label, count=sum(b.count for b in minor), members=minor)
        major.append(other)

    return sorted(major, key=lambda b: -b.count)


def status_breakdown(projects, resolver=default_resolver) -> Dict[str, Any]:
    """Slices for the "Projects by Status" chart with one-decimal percentages."""

    def status_of(project):
        raw = resolver.resolve('project', project, 'status')
        if raw is None or str(raw).strip() == '':
            return 'Unknown'
        if is_status_chart_excluded(raw):
            return None
        return normalize_status(raw)

    pairs = group_and_count(projects, status_of)
    total = sum(count for _, count in pairs)
    return {
        'total': total,
        'slices': [
            {'name': name, 'value': count, 'percentage': percentage_of_total(count, total)}
            for name, count in pairs
        ],
    }


def active_project_stats(projects, resolver=default_resolver) -> Dict[str, int]:
    """Active project count plus the distinct clients and team leads across all projects."""
    active = 0
    clients = set()
    leads = set()
    for project in projects or ():
        if is_active_status(resolver.resolve('project', project, 'status')):
            active += 1
        client_id = resolver.resolve('project', project, 'client_id')
        if client_id is not None and client_id != '':
            clients.add(str(client_id))
        lead_id = resolver.resolve('project', project, 'team_lead_id')
        if lead_id is not None and lead_id != '':
            leads.add(str(lead_id))
    return {
        'activeProjects': active,
        'uniqueClients': len(clients),
        'totalTeamLeads': len(leads),
    }


def team_lead_load(leads, projects, resolver=default_resolver) -> List[Dict[str, Any]]:
    """
    Per team lead: total, live and on-hold project counts.

    Sorted by total ascending, then by name, so the least loaded lead comes
    first when assigning new work.
    """
    by_lead = {}
    for project in projects or ():
        lead_id = resolver.resolve_int('project', project, 'team_lead_id')
        if lead_id is None:
            continue
        by_lead.setdefault(lead_id, []).append(project)

    rows = []
    for lead in leads or ():
        lead_id = resolver.resolve_int('user', lead, 'id')
        lead_projects = by_lead.get(lead_id, [])
        statuses = [resolver.resolve('project', p, 'status') for p in lead_projects]
        rows.append({
            'id': lead_id,
            'name': resolver.display_name('user', lead),
            'totalProjects': len(lead_projects),
            'liveCount': sum(1 for s in statuses if normalize_status(s) == 'Live'),
            'onHoldCount': sum(1 for s in statuses if is_on_hold_status(s)),
        })

    rows.sort(key=lambda r: (r['totalProjects'], r['name'] or ''))
    return rows


def unassigned_projects(projects, resolver=default_resolver) -> List[Any]:
    """Projects with no team lead on any of the known TL columns."""
    return [
        p for p in projects or ()
        if resolver.resolve('project', p, 'team_lead_id') in (None, '')
    ]


def bucket_counts_by_period(dates, granularity: str = 'day', tz=None) -> List[Dict[str, Any]]:
    """
    Count dated events per day, week, month or year.

    Timestamps count on their calendar date in ``tz``. Unparseable dates are
    skipped. Output is ordered by bucket start date.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity '{granularity}', expected one of {', '.join(GRANULARITIES)}")

    counts = Counter()
    for value in dates or ():
        try:
            day = local_date(value, tz)
        except ValueError:
            logger.debug(f"Skipping unparseable workload date: {value!r}")
            continue
        if day is None:
            continue
        counts[bucket_start(day, granularity)] += 1

    return [
        {'date': day.isoformat(), 'submissions': counts[day]}
        for day in sorted(counts)
    ]


def count_package_statuses(packages, resolver=default_resolver) -> Dict[str, int]:
    counts = Counter()
    for package in packages or ():
        status = resolver.resolve('package', package, 'status')
        counts[status if status else 'Unknown'] += 1
    return dict(counts)
