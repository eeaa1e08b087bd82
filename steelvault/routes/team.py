# steelvault/routes/team.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
import logging

from ..errors import BackendUnavailable, NotFound, ValidationError
from ..middleware.auth import admin_required, role_required
from ..models import db, Client, Project, User
from ..services import dashboard
from ..services.table_client import get_table_client
from ..services.validators import optional_int, optional_text, require_object, require_text, validate_email

team_bp = Blueprint('team', __name__)
logger = logging.getLogger(__name__)

TEAM_LEAD = 'employee'
CLIENT_PM = 'client'


def _users_with_role(role):
    return (User.query
            .filter(func.lower(User.user_type) == role)
            .order_by(User.created_at.desc())
            .all())


def _get_user(user_id, role):
    user = db.session.get(User, user_id)
    if user is None or (user.user_type or '').lower() != role:
        raise NotFound(f"User {user_id} not found")
    return user


def _check_email_free(email, user_id=None):
    existing = User.query.filter(func.lower(User.email) == email.lower()).first()
    if existing is not None and existing.id != user_id:
        raise ValidationError(f"A user with email {email} already exists", field='email')


def _check_client(data):
    client_id = optional_int(data, 'clientId')
    if client_id is None:
        raise ValidationError('Client is required for a client PM', field='clientId')
    if db.session.get(Client, client_id) is None:
        raise ValidationError(f"Client {client_id} does not exist", field='clientId')
    return client_id


def _apply_fields(user, data):
    if 'name' in data or user.name is None:
        user.name = require_text(data, 'name', 'Name')
    if 'email' in data or user.email is None:
        email = validate_email(data.get('email'))
        _check_email_free(email, user.id)
        user.email = email
    if 'password' in data or user.password is None:
        password = data.get('password')
        if not password:
            raise ValidationError('Password is required', field='password')
        user.set_password(password)
    if 'contactNo' in data:
        user.contact_no = optional_text(data, 'contactNo')


def _commit(action):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error trying to {action}: {str(e)}")
        raise BackendUnavailable(f"Failed to {action}", detail=str(e))


@team_bp.route('/load', methods=['GET'])
@login_required
@role_required('admin', 'employee')
def get_team_load():
    """Team leads by current load (least loaded first) and the unassigned project count"""
    return jsonify(dashboard.team_lead_load(get_table_client()))


@team_bp.route('/leads', methods=['GET'])
@login_required
@role_required('admin', 'employee')
def get_team_leads():
    return jsonify([u.to_dict() for u in _users_with_role(TEAM_LEAD)])


@team_bp.route('/leads', methods=['POST'])
@login_required
@admin_required
def create_team_lead():
    data = require_object(request.get_json(silent=True))
    user = User(user_type=TEAM_LEAD)
    _apply_fields(user, data)
    teaminfo = data.get('teaminfo')
    if teaminfo is not None and not isinstance(teaminfo, (dict, list)):
        raise ValidationError('teaminfo must be an object or a list', field='teaminfo')
    user.teaminfo = teaminfo

    db.session.add(user)
    _commit('create team lead')
    logger.info(f"Team lead {user.email} created (ID: {user.id})")
    return jsonify(user.to_dict()), 201


@team_bp.route('/leads/<int:user_id>', methods=['PUT'])
@login_required
@admin_required
def update_team_lead(user_id):
    user = _get_user(user_id, TEAM_LEAD)
    data = require_object(request.get_json(silent=True))
    _apply_fields(user, data)
    if 'teaminfo' in data:
        user.teaminfo = data.get('teaminfo')
    _commit('update team lead')
    return jsonify(user.to_dict())


@team_bp.route('/leads/<int:user_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_team_lead(user_id):
    """Delete a team lead; their projects become unassigned in the same commit"""
    user = _get_user(user_id, TEAM_LEAD)
    unassigned = Project.query.filter_by(sol_tl_id=user.id).update({Project.sol_tl_id: None})
    db.session.delete(user)
    _commit('delete team lead')
    logger.info(f"Team lead {user_id} deleted, {unassigned} project(s) unassigned")
    return jsonify({'message': 'Team lead deleted successfully', 'unassignedProjects': unassigned})


@team_bp.route('/client-pms', methods=['GET'])
@login_required
@role_required('admin', 'employee')
def get_client_pms():
    client_id = request.args.get('clientId', type=int)
    users = _users_with_role(CLIENT_PM)
    if client_id is not None:
        users = [u for u in users if u.client_id == client_id]
    return jsonify([u.to_dict() for u in users])


@team_bp.route('/client-pms', methods=['POST'])
@login_required
@admin_required
def create_client_pm():
    data = require_object(request.get_json(silent=True))
    user = User(user_type=CLIENT_PM, client_id=_check_client(data))
    _apply_fields(user, data)

    db.session.add(user)
    _commit('create client PM')
    logger.info(f"Client PM {user.email} created for client {user.client_id} (ID: {user.id})")
    return jsonify(user.to_dict()), 201


@team_bp.route('/client-pms/<int:user_id>', methods=['PUT'])
@login_required
@admin_required
def update_client_pm(user_id):
    user = _get_user(user_id, CLIENT_PM)
    data = require_object(request.get_json(silent=True))
    if 'clientId' in data:
        user.client_id = _check_client(data)
    _apply_fields(user, data)
    _commit('update client PM')
    return jsonify(user.to_dict())


@team_bp.route('/client-pms/<int:user_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_client_pm(user_id):
    user = _get_user(user_id, CLIENT_PM)
    Project.query.filter_by(client_pm=user.id).update({Project.client_pm: None})
    db.session.delete(user)
    _commit('delete client PM')
    return jsonify({'message': 'Client PM deleted successfully'})
