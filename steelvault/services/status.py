# steelvault/services/status.py
import logging
import re

logger = logging.getLogger(__name__)

# Approved project statuses, in the order the status picker lists them
CANONICAL_STATUSES = (
    'Live',
    'Sent For Approval',
    'Sent for Fabrication',
    'Closed',
    'On-Hold',
    'Cancelled',
    'See Remarks',
)

# Older enum-like values still stored on some rows
LEGACY_STATUS_MAP = {
    'IN_PROGRESS': 'Live',
    'PLANNING': 'Live',
    'COMPLETED': 'Closed',
    'ON_HOLD': 'On-Hold',
    'CANCELLED': 'Cancelled',
}

ACTIVE_STATUSES = frozenset({'live', 'in progress', 'in_progress', 'active'})
ON_HOLD_STATUSES = frozenset({'on-hold', 'on hold', 'on_hold'})

_WHITESPACE = re.compile(r'\s+')
_CHART_EXCLUDED = ('nearcompletion', 'near_completion', 'nearlycompletion')


def _status_key(raw):
    return _WHITESPACE.sub('_', str(raw).strip()).upper()


_CANONICAL_BY_KEY = {_status_key(label): label for label in CANONICAL_STATUSES}


def normalize_status(raw):
    """
    Map a raw status to its canonical label.

    Legacy enum values go through ``LEGACY_STATUS_MAP`` and canonical labels in
    any casing come back in their approved spelling. Anything else is returned
    unchanged so new or misspelled statuses still show up on the dashboard.
    """
    if raw is None:
        return None
    key = _status_key(raw)
    if key in LEGACY_STATUS_MAP:
        return LEGACY_STATUS_MAP[key]
    if key in _CANONICAL_BY_KEY:
        return _CANONICAL_BY_KEY[key]
    logger.debug(f"Unmapped project status passed through: {raw!r}")
    return raw


def _collapse(raw):
    return _WHITESPACE.sub(' ', str(raw).strip()).lower()


def is_active_status(raw):
    """True for statuses counted on the "active" dashboard counters."""
    if raw is None or str(raw).strip() == '':
        return False
    if _collapse(raw) in ACTIVE_STATUSES:
        return True
    return _collapse(normalize_status(raw)) in ACTIVE_STATUSES


def is_on_hold_status(raw):
    if raw is None:
        return False
    return _collapse(normalize_status(raw)) in ON_HOLD_STATUSES


def is_canonical_status(raw):
    return raw in CANONICAL_STATUSES


def is_status_chart_excluded(raw):
    """"Near completion" variants are left out of the status breakdown."""
    if raw is None:
        return False
    squashed = _WHITESPACE.sub('', str(raw)).lower()
    return any(marker in squashed for marker in _CHART_EXCLUDED)
