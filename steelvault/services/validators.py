# steelvault/services/validators.py
"""Request payload checks shared by the CRUD blueprints. Each raises ValidationError."""

import re

from ..errors import ValidationError
from .date_utils import parse_date
from .field_resolver import to_number

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def require_object(data):
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_text(data, field, label=None):
    value = data.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label or field} is required", field=field)
    return str(value).strip()


def optional_text(data, field):
    value = data.get(field)
    if value is None:
        return None
    return str(value).strip() or None


def optional_int(data, field):
    value = data.get(field)
    if value is None or value == '':
        return None
    number = to_number(value)
    if number is None or int(number) != number:
        raise ValidationError(f"{field} must be an integer", field=field)
    return int(number)


def optional_date(data, field):
    try:
        return parse_date(data.get(field))
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", field=field)


def validate_email(value, required=True):
    """Stripped email, or None when optional and blank."""
    if value is not None and not isinstance(value, str):
        raise ValidationError('Email must be text', field='email')
    email = (value or '').strip()
    if not email:
        if required:
            raise ValidationError('Email is required', field='email')
        return None
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Please enter a valid email address', field='email')
    return email
