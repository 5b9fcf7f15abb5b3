from flask import Flask
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class())

    from app.utils.logging_setup import configure_logging
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    from app.routes import register_blueprints
    register_blueprints(app)

    from app.cli import register_commands
    register_commands(app)

    from app import models

    if app.config.get('ENABLE_SCHEDULER') and not app.config.get('TESTING'):
        from app.utils.scheduler import init_scheduler
        init_scheduler(app)

    app.logger.info("CA Office API initialised (env=%s)", app.config.get('APP_ENV'))
    return app


@login_manager.request_loader
def load_staff_from_request(request):
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    from app.utils.tokens import load_staff_from_header
    return load_staff_from_header(request.headers.get('Authorization'))


@login_manager.unauthorized_handler
def unauthorized():
    from flask import jsonify
    return jsonify({'success': False, 'message': 'Access token is required'}), 401
