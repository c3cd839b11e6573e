import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))

# Load environment variables from .env file, fallback to .env.development
env_path = os.path.join(basedir, '.env')
if not os.path.exists(env_path):
    env_path = os.path.join(basedir, '.env.development')
load_dotenv(env_path)


def _database_url(default=None):
    """Read DATABASE_URL, rewriting the legacy postgres:// scheme."""
    url = os.environ.get('DATABASE_URL')
    if url and url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url or default


class Config:
    """Base configuration class"""
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        if os.environ.get('FLASK_ENV') == 'production':
            raise ValueError("SECRET_KEY must be set in production")
        SECRET_KEY = 'dev-secret-key'

    SQLALCHEMY_DATABASE_URI = _database_url(
        'sqlite:///' + os.path.join(basedir, 'lab_assets.db')
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_POOL_SIZE = 10
    SQLALCHEMY_POOL_RECYCLE = 300
    SQLALCHEMY_POOL_TIMEOUT = 20
    SQLALCHEMY_MAX_OVERFLOW = 5
    SQLALCHEMY_CONNECT_TIMEOUT = 10
    DEBUG = os.environ.get('FLASK_ENV') == 'development'

    SESSION_COOKIE_SECURE = os.environ.get('FLASK_ENV') == 'production'
    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SECURE = os.environ.get('FLASK_ENV') == 'production'
    REMEMBER_COOKIE_HTTPONLY = True

    # Socket.IO fan-out and rate limit storage
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'eventlet')
    SOCKETIO_MESSAGE_QUEUE = None

    RATELIMIT_ENABLED = True
    RATELIMIT_STRATEGY = 'fixed-window'
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_DEFAULT = "200 per day;50 per hour"
    RATELIMIT_STORAGE_URI = 'memory://'

    # First HOD account, created on startup when a password is provided
    HOD_EMAIL = os.environ.get('HOD_EMAIL', 'hod@example.com')
    HOD_PASSWORD = os.environ.get('HOD_PASSWORD')
    HOD_NAME = os.environ.get('HOD_NAME', 'Head of Department')

    TIMEZONE = os.environ.get('TIMEZONE', 'Asia/Kolkata')

    # Asset codes look like RSCOE/CSBS/<lab>/<type>-<n>
    ASSET_ID_PREFIX = os.environ.get('ASSET_ID_PREFIX', 'RSCOE/CSBS')
    ACTIVITY_LOG_RETENTION_DAYS = int(
        os.environ.get('ACTIVITY_LOG_RETENTION_DAYS') or 90
    )
    ACTIVITY_LOG_PAGE_SIZE = 50
    NOTIFICATION_PAGE_SIZE = 20

    THEME_COOKIE_NAME = 'theme'
    THEME_COOKIE_MAX_AGE = 3600 * 24 * 365

    LOG_TO_STDOUT = os.environ.get('LOG_TO_STDOUT', 'false').lower() == 'true'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = _database_url()

    REDIS_URL = os.environ.get('REDIS_URL') or Config.REDIS_URL
    SOCKETIO_MESSAGE_QUEUE = REDIS_URL
    RATELIMIT_STORAGE_URI = REDIS_URL

    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    REMEMBER_COOKIE_DURATION = 3600 * 24 * 7  # 7 days in production

    LOG_TO_STDOUT = os.environ.get('LOG_TO_STDOUT', 'true').lower() == 'true'


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SOCKETIO_ASYNC_MODE = 'threading'
    SESSION_PROTECTION = 'basic'
    HOD_PASSWORD = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration class based on environment"""
    env = os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
