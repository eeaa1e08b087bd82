import os
from datetime import timedelta
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(basedir, '.env'))


def _normalize_database_url(database_url):
    """Hosted Postgres providers still hand out postgres:// URLs; SQLAlchemy wants postgresql://"""
    if database_url and database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)
    return database_url


def _env_list(name, default):
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(',') if item.strip()]


class Config:
    """Base configuration for the SteelVault dashboard API"""

    # --- Security ---
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # --- Database ---
    SQLALCHEMY_DATABASE_URI = None  # Will be set in __init__
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }

    # --- Session cookie (holds the persisted auth blob) ---
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'False').lower() in ('true', '1', 't')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_NAME = 'steelvault_session'
    PERMANENT_SESSION_LIFETIME = timedelta(days=365)

    # --- Auth gate ---
    SESSION_KEY = os.environ.get('SESSION_KEY', 'auth:user')
    LOGIN_PATH = '/login'
    DEFAULT_PATH = '/'
    ROUTE_ROLES = {
        '/admin': ['admin'],
    }

    # --- CORS ---
    CORS_ORIGINS = _env_list('CORS_ORIGINS', ['http://localhost:5173', 'http://127.0.0.1:5173'])
    CORS_SUPPORTS_CREDENTIALS = True

    # --- Dashboard settings ---
    OTHER_BUCKET_THRESHOLD = int(os.environ.get('OTHER_BUCKET_THRESHOLD', 5))
    INACTIVE_AFTER_DAYS = int(os.environ.get('INACTIVE_AFTER_DAYS', 180))
    UPCOMING_WINDOW_DAYS = int(os.environ.get('UPCOMING_WINDOW_DAYS', 1))
    TOP_CLIENTS = int(os.environ.get('TOP_CLIENTS', 5))
    TIMEZONE = os.environ.get('TIMEZONE', 'Asia/Kolkata')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    API_PREFIX = '/api/'

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = self.get_database_url()

    @staticmethod
    def get_database_url():
        """Get properly formatted database URL string"""
        database_url = _normalize_database_url(os.environ.get('DATABASE_URL'))
        if database_url:
            return database_url
        return 'sqlite:///' + os.path.join(basedir, 'instance', 'steelvault.db')


class DevelopmentConfig(Config):
    """Development configuration for local testing"""
    DEBUG = True
    DEVELOPMENT = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

    def __init__(self):
        super().__init__()

        dev_database_url = _normalize_database_url(os.environ.get('DEV_DATABASE_URL'))
        if dev_database_url:
            self.SQLALCHEMY_DATABASE_URI = dev_database_url

        self.CORS_ORIGINS = self.CORS_ORIGINS + ['http://localhost:3000', 'http://127.0.0.1:3000']


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    DEVELOPMENT = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = 'None'

    def __init__(self):
        super().__init__()

        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable is required for production")
        self.SECRET_KEY = secret_key

        database_url = _normalize_database_url(os.environ.get('DATABASE_URL'))
        if not database_url:
            raise ValueError("DATABASE_URL environment variable is required for production")
        self.SQLALCHEMY_DATABASE_URI = database_url

        self.SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_recycle': 3600,
            'pool_pre_ping': True,
            'pool_size': 10,
            'max_overflow': 20,
            'pool_timeout': 30,
        }


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    LOG_LEVEL = 'DEBUG'
    # Seed data is dated by the UTC calendar
    TIMEZONE = 'UTC'

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.CORS_ORIGINS = ['*']


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config_name():
    """Detect environment from the process environment"""
    flask_env = os.environ.get('FLASK_ENV', '').lower()
    if flask_env in ['production', 'testing', 'development']:
        return flask_env

    if os.environ.get('TESTING') or os.environ.get('CI'):
        return 'testing'

    database_url = os.environ.get('DATABASE_URL', '')
    if database_url and 'sqlite' not in database_url:
        return 'production'

    return 'development'


__all__ = [
    'config',
    'get_config_name',
]
