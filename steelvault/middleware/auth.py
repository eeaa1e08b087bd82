# steelvault/middleware/auth.py

from functools import wraps
from flask import current_app, g, jsonify, redirect, request
from flask_login import LoginManager, UserMixin, current_user
import logging

from ..errors import AccessDenied
from ..services.auth_gate import AuthGate, UserDirectory, require_authenticated, require_role
from ..services.session_store import FlaskSessionStore
from ..services.table_client import get_table_client

logger = logging.getLogger(__name__)


class SessionUser(UserMixin):
    """Flask-Login view of the persisted session."""

    def __init__(self, session):
        self.session = session

    def get_id(self):
        return str(self.session.user_id)

    @property
    def role(self):
        return self.session.role_key

    @property
    def email(self):
        return self.session.email

    @property
    def client_id(self):
        return self.session.client_id


def get_auth_gate():
    """Per-request AuthGate bound to the Flask session cookie."""
    if 'auth_gate' not in g:
        g.auth_gate = AuthGate(
            FlaskSessionStore(),
            UserDirectory(get_table_client()),
            key=current_app.config.get('SESSION_KEY', 'auth:user'),
        )
    return g.auth_gate


def current_session():
    """The signed-in Session, or None for anonymous requests."""
    if current_user and current_user.is_authenticated:
        return current_user.session
    return None


def client_scope():
    """
    Client id that limits what the current session may see, or None for staff.

    Client-role accounts without a linked client see nothing.
    """
    session = current_session()
    if session is None or not session.is_client:
        return None
    if session.client_id is None:
        raise AccessDenied('Client account is not linked to a client')
    return session.client_id


def init_login_manager(app):
    login_manager = LoginManager()
    login_manager.init_app(app)
    # The auth blob has no Flask-Login identifier to protect
    login_manager.session_protection = None

    @login_manager.request_loader
    def load_session_user(req):
        session = get_auth_gate().current_session()
        return SessionUser(session) if session is not None else None

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        """Anonymous access: JSON for the API, a redirect to the login page otherwise."""
        decision = require_authenticated(
            None,
            request.args.get('next') or request.full_path.rstrip('?'),
            current_app.config.get('LOGIN_PATH', '/login'),
        )
        if request.path.startswith(current_app.config.get('API_PREFIX', '/api/')):
            logger.warning(f"Unauthorized API access attempt to {request.path} from {request.remote_addr}")
            return jsonify({
                'error': 'Authentication required',
                'message': 'You must be logged in to access this endpoint',
                'redirect': decision.location,
            }), 401
        return redirect(decision.location)

    return login_manager


def role_required(*roles):
    """
    Decorator to ensure the signed-in user holds one of ``roles`` (case-insensitive).
    This must be placed AFTER the @login_required decorator.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return current_app.login_manager.unauthorized()

            decision = require_role(current_session(), roles, current_app.config.get('DEFAULT_PATH', '/'))
            if not decision.allowed:
                logger.warning(f"User '{current_user.email}' (role: {current_user.role}) attempted to access a route limited to {list(roles)}")
                raise AccessDenied(f"{' or '.join(r.title() for r in roles)} access required", redirect=decision.location)

            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = role_required('admin')
