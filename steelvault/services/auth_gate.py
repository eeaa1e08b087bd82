# steelvault/services/auth_gate.py
"""
Authentication and route-guard decisions.

``AuthGate`` owns the persisted session blob: it writes it on login, clears it
on logout and reads it back on every request. Guard functions are pure and
take the session explicitly, so they can be used from Flask decorators, the
``/api/auth/guard`` endpoint and tests alike.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlsplit

from ..errors import InvalidCredentials
from .field_resolver import resolver as default_resolver, to_number
from .passwords import verify_password

logger = logging.getLogger(__name__)

ROLES = ('admin', 'employee', 'client')
DEFAULT_SESSION_KEY = 'auth:user'
DEFAULT_LOGIN_PATH = '/login'
DEFAULT_PATH = '/'


def _coerce_id(value, field_name, required=True):
    if value is None:
        if required:
            raise ValueError(f"{field_name} is required")
        return None
    number = to_number(value)
    if number is None or int(number) != number:
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    return int(number)


@dataclass(frozen=True)
class Session:
    """Signed-in user as persisted in the session store. Never carries the password hash."""
    user_id: int
    name: str
    email: str
    role: str
    client_id: Optional[int] = None

    @property
    def role_key(self):
        return (self.role or '').lower()

    @property
    def is_admin(self):
        return self.role_key == 'admin'

    @property
    def is_employee(self):
        return self.role_key == 'employee'

    @property
    def is_client(self):
        return self.role_key == 'client'

    def to_dict(self):
        return {
            'userId': self.user_id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'clientId': self.client_id,
        }

    @classmethod
    def from_dict(cls, data):
        """Rebuild a session from its stored form; raises ValueError when malformed."""
        if not isinstance(data, dict):
            raise ValueError("Session blob is not an object")

        role = data.get('role')
        if not isinstance(role, str) or role.lower() not in ROLES:
            raise ValueError(f"Unknown role {role!r}")

        name = data.get('name')
        email = data.get('email')
        if not isinstance(email, str) or not email:
            raise ValueError("Session email is missing")
        if name is not None and not isinstance(name, str):
            raise ValueError("Session name must be a string")

        return cls(
            user_id=_coerce_id(data.get('userId'), 'userId'),
            name=name or email,
            email=email,
            role=role,
            client_id=_coerce_id(data.get('clientId'), 'clientId', required=False),
        )

    @classmethod
    def from_row(cls, row, resolver=default_resolver):
        """Build a session from a credential row (User table)."""
        return cls.from_dict({
            'userId': resolver.resolve('user', row, 'id'),
            'name': resolver.display_name('user', row),
            'email': resolver.resolve('user', row, 'email'),
            'role': resolver.resolve('user', row, 'role'),
            'clientId': resolver.resolve('user', row, 'client_id'),
        })


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    redirect_to: Optional[str] = None
    next_path: Optional[str] = None
    reason: Optional[str] = None

    @property
    def location(self):
        """Redirect target including the remembered path, e.g. /login?next=%2Fprojects"""
        if self.allowed or not self.redirect_to:
            return None
        if self.next_path:
            return f"{self.redirect_to}?next={quote(self.next_path, safe='')}"
        return self.redirect_to

    def to_dict(self):
        return {
            'allowed': self.allowed,
            'redirect': self.location,
            'next': self.next_path,
            'reason': self.reason,
        }


ALLOW = GateDecision(allowed=True)


def safe_next_path(value, default=DEFAULT_PATH):
    """Only same-site absolute paths are honoured as post-login redirect targets."""
    if not value or not isinstance(value, str):
        return default
    parts = urlsplit(value)
    if parts.scheme or parts.netloc or not value.startswith('/') or value.startswith('//'):
        return default
    return value


def require_authenticated(session, requested_path=None, login_path=DEFAULT_LOGIN_PATH):
    """Allow any signed-in session; otherwise send to the login page remembering where we were."""
    if session is not None:
        return ALLOW
    return GateDecision(
        allowed=False,
        redirect_to=login_path,
        next_path=safe_next_path(requested_path, default=None),
        reason='unauthenticated',
    )


def require_role(session, allowed_roles, default_path=DEFAULT_PATH):
    """Allow sessions whose role is in ``allowed_roles`` (case-insensitive)."""
    allowed = {str(role).lower() for role in allowed_roles or ()}
    if session is not None and session.role_key in allowed:
        return ALLOW
    return GateDecision(allowed=False, redirect_to=default_path, reason='forbidden')


def _path_matches(path, prefix):
    prefix = prefix.rstrip('/') or '/'
    return path == prefix or path.startswith(prefix + '/')


def check_route(session, path, route_roles=None, login_path=DEFAULT_LOGIN_PATH, default_path=DEFAULT_PATH):
    """
    Decide whether ``session`` may open an app path.

    The login page is public, every other path needs a session, and paths
    under a prefix listed in ``route_roles`` also need one of its roles.
    """
    path = path or DEFAULT_PATH
    if _path_matches(path, login_path):
        return ALLOW

    decision = require_authenticated(session, path, login_path)
    if not decision.allowed:
        return decision

    for prefix, roles in (route_roles or {}).items():
        if _path_matches(path, prefix):
            decision = require_role(session, roles, default_path)
            if not decision.allowed:
                return decision
    return ALLOW


class UserDirectory:
    """Credential lookups against the User table."""

    def __init__(self, tables, table_name='User'):
        self.tables = tables
        self.table_name = table_name

    def find_by_email(self, email):
        return self.tables.table(self.table_name).select('*').ieq('email', email).maybe_single()


class AuthGate:
    def __init__(self, store, directory, key=DEFAULT_SESSION_KEY, verify=verify_password, resolver=default_resolver):
        self.store = store
        self.directory = directory
        self.key = key
        self.verify = verify
        self.resolver = resolver

    def login(self, email, password):
        """
        Verify credentials and persist a fresh session, replacing any prior one.

        Raises:
            InvalidCredentials: for an unknown email, a wrong password, an
            unusable account row or a failed lookup alike
        """
        if not isinstance(email, str) or not isinstance(password, str):
            logger.warning("Login failed: email and password must be strings")
            raise InvalidCredentials()
        email = email.strip()
        if not email or not password:
            raise InvalidCredentials()

        result = self.directory.find_by_email(email)
        if result.error is not None:
            logger.error(f"Credential lookup failed for '{email}': {result.error}")
            raise InvalidCredentials()

        row = result.data
        if not row:
            logger.warning(f"Login failed: no user with email '{email}'")
            raise InvalidCredentials()

        password_hash = self.resolver.resolve('user', row, 'password_hash')
        if not self.verify(password, password_hash):
            logger.warning(f"Login failed: invalid password for '{email}'")
            raise InvalidCredentials()

        try:
            session = Session.from_row(row, self.resolver)
        except ValueError as e:
            logger.error(f"Login failed: user row for '{email}' is unusable: {e}")
            raise InvalidCredentials()

        self.store.set(self.key, json.dumps(session.to_dict()))
        logger.info(f"Login successful for '{email}' (ID: {session.user_id}, role: {session.role})")
        return session

    def logout(self):
        self.store.remove(self.key)

    def current_session(self):
        """The persisted session, or None when absent or malformed (malformed blobs are dropped)."""
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            return Session.from_dict(data)
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed session blob: {e}")
            self.store.remove(self.key)
            return None
