# steelvault/routes/projects.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError
import logging
import time

from ..errors import BackendUnavailable, NotFound, ValidationError
from ..middleware.auth import admin_required, client_scope, role_required
from ..models import db, Client, Project, ProjectPackage, ProjectRFI, User
from ..services import dashboard
from ..services.field_resolver import resolver
from ..services.status import is_canonical_status, normalize_status
from ..services.table_client import get_table_client
from ..services.validators import optional_date, optional_int, optional_text, require_object, require_text

projects_bp = Blueprint('projects', __name__)
logger = logging.getLogger(__name__)


def _canonical_status(raw):
    status = normalize_status(raw)
    if not is_canonical_status(status):
        raise ValidationError(f"Unknown project status '{raw}'", field='status')
    return status


def _get_project(project_id):
    """Project visible to the current session; other clients' projects are reported as missing."""
    project = db.session.get(Project, project_id)
    scope = client_scope()
    if project is None or (scope is not None and project.client_id != scope):
        raise NotFound(f"Project {project_id} not found")
    return project


def _check_client(client_id):
    if db.session.get(Client, client_id) is None:
        raise ValidationError(f"Client {client_id} does not exist", field='clientId')


def _check_user(user_id, role, field):
    user = db.session.get(User, user_id)
    if user is None or (user.user_type or '').lower() != role:
        raise ValidationError(f"User {user_id} is not a {role} account", field=field)


def _package_from(data, project_id):
    return ProjectPackage(
        project_id=project_id,
        name=require_text(data, 'name', 'Package name'),
        package_number=optional_text(data, 'packageNumber'),
        tentative_date=optional_date(data, 'tentativeDate'),
        status=optional_text(data, 'status'),
    )


@projects_bp.route('', methods=['GET'])
@login_required
def get_projects():
    """List projects, newest first. Client accounts only see their own client's projects."""
    scope = client_scope()
    status = request.args.get('status')
    try:
        query = Project.query
        if scope is not None:
            query = query.filter_by(client_id=scope)
        projects = query.order_by(Project.created_at.desc()).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error retrieving projects: {str(e)}")
        raise BackendUnavailable('Failed to retrieve projects')

    if status:
        wanted = normalize_status(status)
        projects = [p for p in projects if normalize_status(p.status) == wanted]
    return jsonify([p.to_dict() for p in projects])


@projects_bp.route('', methods=['POST'])
@login_required
@admin_required
def create_project():
    """
    Create a project, then any initial ``packages`` one commit at a time.

    A package that fails to save does not undo the project; the response lists
    it under ``packageErrors``.
    """
    data = require_object(request.get_json(silent=True))

    sol_project_no = require_text(data, 'solProjectNo', 'SOL Project No')
    name = require_text(data, 'name', 'Project Name')
    client_id = optional_int(data, 'clientId')
    if client_id is None:
        raise ValidationError('Please select a client before saving the project', field='clientId')
    _check_client(client_id)

    team_lead_id = optional_int(data, 'solTLId')
    if team_lead_id is not None:
        _check_user(team_lead_id, 'employee', 'solTLId')

    initial_packages = data.get('packages') or []
    if not isinstance(initial_packages, list) or not all(isinstance(p, dict) for p in initial_packages):
        raise ValidationError('packages must be a list of objects', field='packages')
    for package in initial_packages:
        require_text(package, 'name', 'Package name')
        optional_date(package, 'tentativeDate')

    project = Project(
        project_no=optional_text(data, 'projectNo') or f"P-{int(time.time() * 1000)}",
        sol_project_no=sol_project_no,
        name=name,
        description=optional_text(data, 'description'),
        client_id=client_id,
        status=_canonical_status(data.get('status') or 'Live'),
        priority=(optional_text(data, 'priority') or 'MEDIUM').upper(),
        progress=optional_int(data, 'progress') or 0,
        branch=optional_text(data, 'branch'),
        sol_tl_id=team_lead_id,
        client_pm=optional_int(data, 'clientPm'),
        start_date=optional_date(data, 'startDate'),
        end_date=optional_date(data, 'endDate'),
        expected_completion=optional_date(data, 'expectedCompletion'),
    )

    try:
        db.session.add(project)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error creating project: {str(e)}")
        raise BackendUnavailable('Failed to create project', detail=str(e))

    logger.info(f"Project {project.project_no} created (ID: {project.id})")

    created_packages = []
    package_errors = []
    for index, payload in enumerate(initial_packages):
        try:
            package = _package_from(payload, project.id)
            db.session.add(package)
            db.session.commit()
            created_packages.append(package.to_dict())
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Package {index} for project {project.id} failed: {str(e)}")
            package_errors.append({'index': index, 'name': payload.get('name'), 'error': str(e)})

    result = project.to_dict()
    result['packages'] = created_packages
    if package_errors:
        result['packageErrors'] = package_errors
    return jsonify(result), 201


@projects_bp.route('/<int:project_id>', methods=['GET'])
@login_required
def get_project(project_id):
    """Project detail with RFIs, packages and package status counts"""
    detail = dashboard.project_detail(get_table_client(), project_id)
    scope = client_scope()
    if scope is not None and resolver.resolve_int('project', detail['project'], 'client_id') != scope:
        raise NotFound(f"Project {project_id} not found")
    return jsonify(detail)


@projects_bp.route('/<int:project_id>', methods=['PUT'])
@login_required
@role_required('admin', 'employee')
def update_project(project_id):
    project = _get_project(project_id)
    data = require_object(request.get_json(silent=True))

    if 'name' in data:
        project.name = require_text(data, 'name', 'Project Name')
    if 'solProjectNo' in data:
        project.sol_project_no = require_text(data, 'solProjectNo', 'SOL Project No')
    if 'projectNo' in data:
        project.project_no = optional_text(data, 'projectNo') or project.project_no
    if 'clientId' in data:
        client_id = optional_int(data, 'clientId')
        if client_id is None:
            raise ValidationError('Please select a client before saving the project', field='clientId')
        _check_client(client_id)
        project.client_id = client_id
    if 'status' in data:
        project.status = _canonical_status(data.get('status'))
    if 'priority' in data:
        project.priority = (optional_text(data, 'priority') or 'MEDIUM').upper()
    if 'progress' in data:
        progress = optional_int(data, 'progress') or 0
        if not 0 <= progress <= 100:
            raise ValidationError('progress must be between 0 and 100', field='progress')
        project.progress = progress
    if 'solTLId' in data:
        team_lead_id = optional_int(data, 'solTLId')
        if team_lead_id is not None:
            _check_user(team_lead_id, 'employee', 'solTLId')
        project.sol_tl_id = team_lead_id
    if 'clientPm' in data:
        project.client_pm = optional_int(data, 'clientPm')
    for field, attr in (('description', 'description'), ('branch', 'branch')):
        if field in data:
            setattr(project, attr, optional_text(data, field))
    for field, attr in (('startDate', 'start_date'), ('endDate', 'end_date'),
                        ('expectedCompletion', 'expected_completion')):
        if field in data:
            setattr(project, attr, optional_date(data, field))

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating project {project_id}: {str(e)}")
        raise BackendUnavailable('Failed to update project', detail=str(e))
    return jsonify(project.to_dict())


@projects_bp.route('/<int:project_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_project(project_id):
    project = _get_project(project_id)
    try:
        db.session.delete(project)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting project {project_id}: {str(e)}")
        raise BackendUnavailable('Failed to delete project', detail=str(e))
    logger.info(f"Project {project_id} deleted")
    return jsonify({'message': 'Project deleted successfully'})


@projects_bp.route('/<int:project_id>/team-lead', methods=['PUT'])
@login_required
@role_required('admin', 'employee')
def assign_team_lead(project_id):
    """Assign (or clear with null) the team lead, on whichever TL column the table has."""
    data = require_object(request.get_json(silent=True))
    team_lead_id = optional_int(data, 'teamLeadId')
    if team_lead_id is not None:
        _check_user(team_lead_id, 'employee', 'teamLeadId')

    tables = get_table_client()
    column = resolver.column_for('project', 'team_lead_id', tables.columns('Project'))
    if column is None:
        raise BackendUnavailable('Project table has no team lead column')

    result = tables.table('Project').update({column: team_lead_id}).eq('id', project_id).execute()
    if not result.ok:
        raise BackendUnavailable('Failed to assign team lead', detail=result.error)
    if not result.data:
        raise NotFound(f"Project {project_id} not found")

    logger.info(f"Project {project_id} team lead set to {team_lead_id} via {column}")
    return jsonify({'id': project_id, 'teamLeadId': team_lead_id, 'column': column})


@projects_bp.route('/<int:project_id>/packages', methods=['GET'])
@login_required
def get_packages(project_id):
    project = _get_project(project_id)
    packages = project.packages.order_by(ProjectPackage.tentative_date.asc()).all()
    return jsonify([p.to_dict() for p in packages])


@projects_bp.route('/<int:project_id>/packages', methods=['POST'])
@login_required
@role_required('admin', 'employee')
def add_package(project_id):
    project = _get_project(project_id)
    package = _package_from(require_object(request.get_json(silent=True)), project.id)
    try:
        db.session.add(package)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error adding package to project {project_id}: {str(e)}")
        raise BackendUnavailable('Failed to add package', detail=str(e))
    return jsonify(package.to_dict()), 201


@projects_bp.route('/<int:project_id>/rfis', methods=['GET'])
@login_required
def get_rfis(project_id):
    project = _get_project(project_id)
    rfis = project.rfis.order_by(ProjectRFI.date.desc()).all()
    return jsonify([r.to_dict() for r in rfis])


@projects_bp.route('/<int:project_id>/rfis', methods=['POST'])
@login_required
@role_required('admin', 'employee')
def add_rfi(project_id):
    project = _get_project(project_id)
    data = require_object(request.get_json(silent=True))
    rfi = ProjectRFI(
        project_id=project.id,
        rfi_number=optional_text(data, 'rfiNumber'),
        date=optional_date(data, 'date'),
        status=optional_text(data, 'status'),
        remark=optional_text(data, 'remark'),
    )
    try:
        db.session.add(rfi)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error adding RFI to project {project_id}: {str(e)}")
        raise BackendUnavailable('Failed to add RFI', detail=str(e))
    return jsonify(rfi.to_dict()), 201
