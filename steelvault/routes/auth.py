# steelvault/routes/auth.py
from flask import Blueprint, request, jsonify, current_app
import logging

from ..middleware.auth import get_auth_gate
from ..services.auth_gate import check_route, safe_next_path

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Sign in with email and password.

    Any failure answers 401 with the same message; nothing is stored unless
    the credentials check out. ``next`` is echoed back as ``redirect`` when it
    is a same-site path.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    session = get_auth_gate().login(data.get('email'), data.get('password'))
    return jsonify({
        'message': 'Login successful',
        'user': session.to_dict(),
        'redirect': safe_next_path(data.get('next'), current_app.config.get('DEFAULT_PATH', '/')),
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    get_auth_gate().logout()
    return jsonify({'message': 'Logged out successfully'})


@auth_bp.route('/me', methods=['GET'])
def me():
    """Current session, or ``authenticated: false``."""
    session = get_auth_gate().current_session()
    if session is None:
        return jsonify({'authenticated': False, 'user': None})
    return jsonify({'authenticated': True, 'user': session.to_dict()})


@auth_bp.route('/guard', methods=['GET'])
def guard():
    """Route decision for an app path (``?path=/admin``) under the current session."""
    path = request.args.get('path', current_app.config.get('DEFAULT_PATH', '/'))
    decision = check_route(
        get_auth_gate().current_session(),
        path,
        route_roles=current_app.config.get('ROUTE_ROLES'),
        login_path=current_app.config.get('LOGIN_PATH', '/login'),
        default_path=current_app.config.get('DEFAULT_PATH', '/'),
    )
    if not decision.allowed:
        logger.debug(f"Guard denied {path}: {decision.reason}")
    return jsonify(decision.to_dict())
