import os
import logging
import click
from flask import Flask, request, jsonify
from flask_cors import CORS
from sqlalchemy import text

from .config import config, get_config_name
from .errors import DashboardError
from .middleware.auth import init_login_manager
from .models import db, User

BLUEPRINTS = [
    ('auth', 'auth_bp', '/api/auth'),
    ('dashboard', 'dashboard_bp', '/api/dashboard'),
    ('projects', 'projects_bp', '/api/projects'),
    ('clients', 'clients_bp', '/api/clients'),
    ('team', 'team_bp', '/api/team'),
    ('health', 'health_bp', '/api'),
]


def configure_logging(app, config_name):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level)
    logging.getLogger('steelvault').setLevel(level)
    app.logger.setLevel(level)

    if config_name == 'production' and not app.debug:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        app.logger.addHandler(handler)
        app.logger.info("Production logging configured")


def register_blueprints(app):
    registered = []
    for module_name, blueprint_name, url_prefix in BLUEPRINTS:
        module = __import__(f'steelvault.routes.{module_name}', fromlist=[blueprint_name])
        app.register_blueprint(getattr(module, blueprint_name), url_prefix=url_prefix)
        registered.append(blueprint_name)
        app.logger.debug(f"Registered {blueprint_name} blueprint at {url_prefix}")
    return registered


def register_error_handlers(app):
    @app.errorhandler(DashboardError)
    def handle_dashboard_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__} on {request.path}: {error.message} {error.details}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith(app.config.get('API_PREFIX', '/api/')):
            return jsonify({
                'error': 'Not Found',
                'message': f'The requested endpoint {request.path} does not exist',
            }), 404
        return jsonify({'error': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': 'Method Not Allowed',
            'message': f'The method {request.method} is not allowed for endpoint {request.path}',
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f"Internal server error: {error}")
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred. Please try again later.',
        }), 500


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create any missing tables."""
        db.create_all()
        click.echo('Database tables created/verified.')

    @app.cli.command('create-user')
    @click.option('--name', required=True)
    @click.option('--email', required=True)
    @click.option('--password', required=True)
    @click.option('--role', type=click.Choice(['admin', 'employee', 'client'], case_sensitive=False), default='admin')
    @click.option('--client-id', type=int, default=None)
    def create_user_command(name, email, password, role, client_id):
        """Create a login account."""
        if User.query.filter(db.func.lower(User.email) == email.lower()).first():
            raise click.ClickException(f"A user with email {email} already exists")
        user = User(name=name, email=email, user_type=role.lower(), client_id=client_id)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'Created {user.user_type} {user.email} (ID: {user.id})')


def create_app(config_name=None):
    """
    Application factory for the dashboard API.
    """
    if config_name is None:
        config_name = get_config_name()

    app = Flask(__name__)
    app.config.from_object(config[config_name]())

    configure_logging(app, config_name)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError as e:
        app.logger.warning(f"Could not create instance folder: {e}")

    db.init_app(app)

    CORS(app,
         origins=app.config.get('CORS_ORIGINS', []),
         supports_credentials=app.config.get('CORS_SUPPORTS_CREDENTIALS', True),
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS', 'PATCH'],
         allow_headers=['Content-Type', 'Authorization', 'X-Requested-With', 'Accept', 'Origin'],
         max_age=86400)

    init_login_manager(app)

    registered = register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route('/')
    def index():
        return jsonify({
            'message': 'SteelVault Dashboard API',
            'status': 'running',
            'version': '1.0.0',
            'environment': config_name,
            'blueprints': registered,
        })

    if config_name in ('development', 'testing'):
        with app.app_context():
            db.session.execute(text('SELECT 1'))
            db.create_all()
            app.logger.info("Database tables created/verified successfully")

    app.logger.info(f"SteelVault API created for {config_name} with {len(registered)} blueprints")
    return app


def main():
    local_app = create_app()
    port = int(os.environ.get('PORT', 5000))
    local_app.run(host='0.0.0.0', port=port, debug=local_app.config.get('DEBUG', False))


if __name__ == '__main__':
    main()
