# steelvault/routes/dashboard.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required
import logging

from ..middleware.auth import client_scope
from ..services import dashboard
from ..services.date_utils import get_server_timezone
from ..services.table_client import get_table_client

dashboard_bp = Blueprint('dashboard', __name__)
logger = logging.getLogger(__name__)


def _server_timezone():
    return get_server_timezone(current_app.config.get('TIMEZONE'))


@dashboard_bp.route('/status-breakdown', methods=['GET'])
@login_required
def status_breakdown():
    """Projects by canonical status with one-decimal percentages"""
    return jsonify(dashboard.project_status_breakdown(get_table_client(), client_scope()))


@dashboard_bp.route('/team-leads', methods=['GET'])
@login_required
def team_leads():
    """Projects per team lead; leads under the threshold are grouped into Other"""
    threshold = request.args.get('threshold', type=int) or current_app.config['OTHER_BUCKET_THRESHOLD']
    return jsonify(dashboard.team_lead_distribution(get_table_client(), threshold, client_scope()))


@dashboard_bp.route('/client-treemap', methods=['GET'])
@login_required
def client_treemap():
    return jsonify(dashboard.client_project_treemap(get_table_client(), client_scope()))


@dashboard_bp.route('/active-stats', methods=['GET'])
@login_required
def active_stats():
    return jsonify(dashboard.active_project_stats(get_table_client(), client_scope()))


@dashboard_bp.route('/clients-overview', methods=['GET'])
@login_required
def clients_overview():
    """Client tiers, synthetic statuses and the top clients by importance score"""
    overview = dashboard.clients_overview(
        get_table_client(),
        top=current_app.config['TOP_CLIENTS'],
        inactive_after_days=current_app.config['INACTIVE_AFTER_DAYS'],
        client_id=client_scope(),
    )
    return jsonify(overview)


@dashboard_bp.route('/upcoming-packages', methods=['GET'])
@login_required
def upcoming_packages():
    packages = dashboard.upcoming_packages(
        get_table_client(),
        window_days=current_app.config['UPCOMING_WINDOW_DAYS'],
        client_id=client_scope(),
        tz=_server_timezone(),
    )
    return jsonify(packages)


@dashboard_bp.route('/workload', methods=['GET'])
@login_required
def workload():
    granularity = request.args.get('granularity', 'day').lower()
    return jsonify(dashboard.workload_series(
        get_table_client(), granularity, client_id=client_scope(), tz=_server_timezone(),
    ))
