# steelvault/services/field_resolver.py
"""
Schema-tolerant field resolution.

The hosted tables have drifted over time: the same logical field shows up as
``clientId``, ``client_id`` or ``clientID`` depending on which screen wrote
the row. Every read goes through one alias table instead of per-call-site
fallback chains.
"""

import logging
import math

logger = logging.getLogger(__name__)

# entity -> logical field -> (canonical column, ordered aliases)
FIELD_ALIASES = {
    'project': {
        'id': ('id', ['ID', 'Id']),
        'name': ('name', ['projectName', 'project_name', 'title']),
        'client_id': ('clientId', ['client_id', 'clientID', 'ClientId', 'ClientID']),
        'team_lead_id': ('solTLId', ['solTlId', 'sol_tl_id', 'sol_tlId', 'solTLid', 'soltl_id', 'teamLeadId']),
        'client_pm_id': ('clientPm', ['client_pm', 'clientPmId', 'client_pm_id', 'clientPM']),
        'status': ('status', ['projectStatus', 'project_status', 'currentStatus', 'phaseStatus', 'state']),
        'created_at': ('createdAt', ['created_at', 'createdat']),
        'project_no': ('solProjectNo', ['projectNo', 'sol_project_no', 'project_no']),
    },
    'client': {
        'id': ('id', ['ID', 'Id', 'clientId', 'clientID']),
        'name': ('name', ['clientName', 'companyName', 'company_name', 'client', 'title', 'full_name', 'contactPerson']),
        'contact_no': ('contactNo', ['contact_no', 'phone', 'phoneNumber']),
        'email': ('email', ['Email', 'emailAddress']),
        'active_projects': ('activeProjects', ['active_projects']),
        'completed_projects': ('completedProjects', ['completed_projects']),
        'total_projects': ('totalProjects', ['total_projects']),
        'last_activity': ('lastActivityDate', ['last_activity_date', 'lastActivity']),
        'created_at': ('createdAt', ['created_at', 'createdat']),
    },
    'user': {
        'id': ('id', ['ID', 'Id']),
        'name': ('name', ['full_name', 'display_name', 'fullName']),
        'email': ('email', ['Email']),
        'role': ('userType', ['user_type', 'role', 'type']),
        'client_id': ('clientId', ['client_id', 'clientID']),
        'password_hash': ('password', ['password_hash', 'passwordHash']),
        'contact_no': ('contactNo', ['contact_no', 'phone']),
        'created_at': ('createdAt', ['created_at', 'createdat']),
    },
    'package': {
        'id': ('id', ['ID']),
        'project_id': ('projectid', ['projectId', 'project_id']),
        'name': ('name', ['packageName', 'package_name']),
        'tentative_date': ('tentativedate', ['tentativeDate', 'tentative_date']),
        'status': ('status', ['packageStatus', 'package_status']),
        'created_at': ('createdat', ['createdAt', 'created_at']),
    },
    'rfi': {
        'id': ('id', ['ID']),
        'project_id': ('projectId', ['projectid', 'project_id']),
        'number': ('rfiNumber', ['rfinumber', 'rfi_number']),
        'status': ('status', ['rfiStatus', 'rfi_status']),
        'date': ('date', ['rfiDate', 'rfi_date']),
    },
}

ENTITY_LABELS = {
    'project': 'Project',
    'client': 'Client',
    'user': 'User',
    'package': 'Package',
    'rfi': 'RFI',
}


def resolve_field(row, canonical, aliases=()):
    """
    Return the first non-null value among ``canonical`` and then ``aliases``.

    Args:
        row (Mapping): raw table row
        canonical (str): preferred column name
        aliases (Sequence[str]): fallbacks, tried in order

    Returns:
        The resolved value, or None when no candidate holds a value.
    """
    if not row:
        return None
    for key in (canonical, *aliases):
        value = row.get(key)
        if value is not None:
            return value
    return None


def to_number(value):
    """Coerce a loosely-typed numeric cell; None for blanks and non-finite values."""
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


class FieldResolver:
    """Resolve logical fields of raw rows using a declarative alias table."""

    def __init__(self, aliases=None):
        self.aliases = aliases or FIELD_ALIASES

    def candidates(self, entity, field):
        try:
            canonical, aliases = self.aliases[entity][field]
        except KeyError:
            raise KeyError(f"No alias entry for {entity}.{field}")
        return canonical, aliases

    def resolve(self, entity, row, field, default=None):
        canonical, aliases = self.candidates(entity, field)
        value = resolve_field(row, canonical, aliases)
        return default if value is None else value

    def resolve_int(self, entity, row, field):
        """Resolve an identifier column, coercing "12" and 12.0 to 12."""
        number = to_number(self.resolve(entity, row, field))
        if number is None:
            return None
        return int(number)

    def column_for(self, entity, field, columns):
        """
        Pick the physical column a table actually has for a logical field.

        Returns:
            str or None: the first candidate present in ``columns``
        """
        canonical, aliases = self.candidates(entity, field)
        available = set(columns)
        for name in (canonical, *aliases):
            if name in available:
                return name
        return None

    def display_name(self, entity, row):
        """Human label for a row: first non-blank name alias, else "<Entity> <id>"."""
        canonical, aliases = self.candidates(entity, 'name')
        for key in (canonical, *aliases):
            value = row.get(key) if row else None
            if value is not None and str(value).strip():
                return str(value).strip()

        if row and entity == 'user':
            composed = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
            if composed:
                return composed
            if row.get('email'):
                return row['email']

        row_id = self.resolve(entity, row, 'id') if row else None
        return f"{ENTITY_LABELS.get(entity, entity.title())} {row_id}"


resolver = FieldResolver()
