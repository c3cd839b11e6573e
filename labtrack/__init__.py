# labtrack/__init__.py

from flask import Flask, jsonify, request
from flask_login import current_user
from config import get_config
from labtrack.extensions import db, login_manager, socketio, migrate, limiter, csrf, engine_options
from labtrack.errors import NotFoundError, PermissionDeniedError
from labtrack.models import User
# socket handlers must be registered before socketio.init_app
from labtrack import socket_events  # noqa: F401,E402
import os
import logging
from logging.handlers import RotatingFileHandler
from sqlalchemy.exc import SQLAlchemyError, OperationalError, DisconnectionError


def configure_logging(app):
    """Attach production log handlers to app.logger."""
    if app.config['LOG_TO_STDOUT']:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        app.logger.addHandler(stream_handler)
    else:
        if not os.path.exists('logs'):
            os.mkdir('logs')
        file_handler = RotatingFileHandler('logs/lab_assets.log',
                                           maxBytes=10240000,
                                           backupCount=10)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info('Lab Asset Tracker startup')


def ensure_hod(app):
    """Create the bootstrap HOD account when a password is configured."""
    if not app.config.get('HOD_PASSWORD'):
        return
    email = app.config['HOD_EMAIL'].lower()
    if User.query.filter_by(email=email).first():
        return
    hod = User(email=email, name=app.config['HOD_NAME'], role=User.HOD)
    hod.set_password(app.config['HOD_PASSWORD'])
    db.session.add(hod)
    db.session.commit()
    app.logger.info(f'HOD account {email} created')


def create_app(config_class=None, test_config=None):
    app = Flask(__name__)
    app.config.from_object(config_class or get_config())
    if test_config:
        app.config.from_mapping(test_config)
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options(app.config)

    if not app.debug and not app.testing:
        configure_logging(app)

    # Initialize Flask extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)

    # Redis fans events out across workers in production
    socketio.init_app(
        app,
        message_queue=app.config.get('SOCKETIO_MESSAGE_QUEUE'),
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE')
    )

    limiter.init_app(app)
    csrf.init_app(app)

    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    login_manager.login_message_category = 'info'
    login_manager.session_protection = 'strong'

    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, user_id)
        return user if user and user.is_active else None

    from labtrack.main import bp as main_bp
    from labtrack.auth import bp as auth_bp
    from labtrack.assets import bp as assets_bp
    from labtrack.labs import bp as labs_bp
    from labtrack.transfers import bp as transfers_bp
    from labtrack.issues import bp as issues_bp
    from labtrack.users import bp as users_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(assets_bp, url_prefix='/assets')
    app.register_blueprint(labs_bp, url_prefix='/labs')
    app.register_blueprint(transfers_bp, url_prefix='/transfers')
    app.register_blueprint(issues_bp, url_prefix='/issues')
    app.register_blueprint(users_bp, url_prefix='/users')

    from labtrack.utils import format_timestamp
    from labtrack.services.notifications import format_relative_time, get_unread_count

    @app.template_filter('localtime')
    def localtime_filter(timestamp, fmt='%Y-%m-%d %H:%M'):
        local = format_timestamp(timestamp)
        return local.strftime(fmt) if local else ''

    app.add_template_filter(format_relative_time, 'timeago')

    @app.context_processor
    def inject_globals():
        theme = request.cookies.get(app.config['THEME_COOKIE_NAME'], 'light')
        unread = 0
        if current_user.is_authenticated:
            unread = get_unread_count(current_user.id)
        return dict(
            theme='dark' if theme == 'dark' else 'light',
            unread_notifications=unread,
            User=User
        )

    # Register CLI commands
    from labtrack.cli import init_cli
    init_cli(app)

    with app.app_context():
        db.create_all()
        ensure_hod(app)

    @app.errorhandler(NotFoundError)
    def handle_not_found(error):
        return jsonify({'error': str(error)}), 404

    @app.errorhandler(PermissionDeniedError)
    def handle_permission_denied(error):
        return jsonify({'error': str(error)}), 403

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        app.logger.error(f'Database error occurred: {str(error)}')
        db.session.rollback()
        if isinstance(error, OperationalError):
            return jsonify({'error': 'Database connection error. Please try again later.'}), 503
        elif isinstance(error, DisconnectionError):
            db.session.remove()  # Clean up the session
            return jsonify({'error': 'Lost connection to database. Please refresh the page.'}), 500
        return jsonify({'error': 'An unexpected database error occurred.'}), 500

    @app.teardown_appcontext
    def cleanup(resp_or_exc):
        """Ensure proper cleanup of database sessions"""
        db.session.remove()

    return app
