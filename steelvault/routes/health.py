from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..models import db
from ..services.date_utils import utc_now
from ..services.table_client import get_table_client

health_bp = Blueprint('health', __name__)

REQUIRED_TABLES = ('User', 'Client', 'Project', 'ProjectPackage', 'ProjectRFI')
CRITICAL_BLUEPRINTS = ('auth', 'dashboard', 'projects')


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Health check covering database connectivity, the dashboard tables,
    configuration and registered blueprints. Answers 503 when unhealthy.
    """
    health_status = {
        'status': 'healthy',
        'app': 'SteelVault Dashboard API',
        'version': '1.0.0',
        'timestamp': utc_now().isoformat(),
        'checks': {}
    }
    overall_healthy = True

    # Database connection
    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()

        db_url = current_app.config.get('SQLALCHEMY_DATABASE_URI', '')
        if 'sqlite' in db_url.lower():
            db_type = 'SQLite'
        elif 'postgres' in db_url.lower():
            db_type = 'PostgreSQL'
        else:
            db_type = 'Unknown'

        health_status['checks']['database'] = {
            'status': 'healthy',
            'type': db_type,
            'connected': True
        }
    except SQLAlchemyError as db_error:
        db.session.rollback()
        current_app.logger.error(f"Database health check failed: {db_error}")
        health_status['checks']['database'] = {
            'status': 'unhealthy',
            'connected': False,
            'error': str(db_error)
        }
        overall_healthy = False

    # Dashboard tables
    if overall_healthy:
        tables = get_table_client()
        missing_tables = [name for name in REQUIRED_TABLES if not tables.columns(name)]
        health_status['checks']['tables'] = {
            'status': 'healthy' if not missing_tables else 'unhealthy',
            'missing': missing_tables,
        }
        if missing_tables:
            current_app.logger.error(f"Missing tables: {missing_tables}")
            overall_healthy = False

    # Configuration
    config_issues = []
    if current_app.config.get('SECRET_KEY', '').startswith('dev-secret-key') and not current_app.debug \
            and not current_app.testing:
        config_issues.append('SECRET_KEY is the development default')
    if not current_app.config.get('CORS_ORIGINS'):
        config_issues.append('No CORS origins configured')
    health_status['checks']['configuration'] = {
        'status': 'healthy' if not config_issues else 'warning',
        'issues': config_issues,
    }
    if config_issues:
        current_app.logger.warning(f"Configuration issues detected: {config_issues}")

    # Application state
    registered_blueprints = [bp.name for bp in current_app.blueprints.values()]
    missing_blueprints = [bp for bp in CRITICAL_BLUEPRINTS if bp not in registered_blueprints]
    health_status['checks']['application'] = {
        'status': 'healthy' if not missing_blueprints else 'warning',
        'blueprints': {
            'registered': registered_blueprints,
            'missing_critical': missing_blueprints,
        },
        'routes': len([rule for rule in current_app.url_map.iter_rules() if rule.rule.startswith('/api/')]),
    }

    status_code = 200
    if not overall_healthy:
        health_status['status'] = 'unhealthy'
        status_code = 503
    elif any(check.get('status') == 'warning' for check in health_status['checks'].values()):
        health_status['status'] = 'degraded'

    current_app.logger.info(f"Health check completed: {health_status['status']}")
    return jsonify(health_status), status_code


@health_bp.route('/health/simple', methods=['GET'])
def simple_health_check():
    """Minimal check for load balancers: database connectivity only"""
    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Simple health check failed: {e}")
        return jsonify({'status': 'unhealthy', 'message': 'Database unreachable'}), 503
    return jsonify({'status': 'healthy', 'message': 'Service is running'}), 200
