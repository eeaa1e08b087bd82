# steelvault/routes/clients.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError
import logging

from ..errors import BackendUnavailable, NotFound, ValidationError
from ..middleware.auth import admin_required, client_scope, role_required
from ..models import db, utcnow, Client
from ..services import dashboard
from ..services.table_client import get_table_client
from ..services.validators import optional_text, require_object, require_text, validate_email

clients_bp = Blueprint('clients', __name__)
logger = logging.getLogger(__name__)


def _get_client(client_id):
    client = db.session.get(Client, client_id)
    scope = client_scope()
    if client is None or (scope is not None and client.id != scope):
        raise NotFound(f"Client {client_id} not found")
    return client


def _apply_fields(client, data):
    """Copy the editable fields present in ``data`` onto ``client``."""
    if 'name' in data or client.name is None:
        client.name = require_text(data, 'name', 'Client name')
    if 'companyName' in data or client.company_name is None:
        client.company_name = optional_text(data, 'companyName') or client.name
    if 'email' in data:
        client.email = validate_email(data.get('email'), required=False)
    for field, attr in (('contactNo', 'contact_no'), ('address', 'address'), ('notes', 'notes')):
        if field in data:
            setattr(client, attr, optional_text(data, field))
    if 'configuration' in data:
        configuration = data.get('configuration')
        if configuration is not None and not isinstance(configuration, dict):
            raise ValidationError('configuration must be an object', field='configuration')
        client.configuration = configuration


@clients_bp.route('', methods=['GET'])
@login_required
def get_clients():
    """Clients with point of contact and live/total project counts (``?search=`` filters)"""
    rows = dashboard.clients_table(get_table_client(), request.args.get('search'))
    scope = client_scope()
    if scope is not None:
        rows = [row for row in rows if row['id'] == scope]
    return jsonify(rows)


@clients_bp.route('', methods=['POST'])
@login_required
@role_required('admin', 'employee')
def create_client():
    """Create a new client; counters start at zero and last activity is now"""
    data = require_object(request.get_json(silent=True))
    client = Client(
        active_projects=0,
        completed_projects=0,
        total_projects=0,
        last_activity_date=utcnow(),
    )
    _apply_fields(client, data)

    try:
        db.session.add(client)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error creating client: {str(e)}")
        raise BackendUnavailable('Failed to create client', detail=str(e))

    logger.info(f"Client '{client.name}' created (ID: {client.id})")
    return jsonify(client.to_dict()), 201


@clients_bp.route('/<int:client_id>', methods=['GET'])
@login_required
def get_client(client_id):
    return jsonify(_get_client(client_id).to_dict())


@clients_bp.route('/<int:client_id>', methods=['PUT'])
@login_required
@role_required('admin', 'employee')
def update_client(client_id):
    client = _get_client(client_id)
    _apply_fields(client, require_object(request.get_json(silent=True)))

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating client {client_id}: {str(e)}")
        raise BackendUnavailable('Failed to update client', detail=str(e))
    return jsonify(client.to_dict())


@clients_bp.route('/<int:client_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_client(client_id):
    """Delete a client that no project or client PM account still points at"""
    client = _get_client(client_id)
    if client.projects.count() or client.users.count():
        raise ValidationError('Client has linked projects or client PM accounts and cannot be deleted')

    try:
        db.session.delete(client)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting client {client_id}: {str(e)}")
        raise BackendUnavailable('Failed to delete client', detail=str(e))

    logger.info(f"Client {client_id} deleted")
    return jsonify({'message': 'Client deleted successfully'})
