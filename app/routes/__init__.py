from app.routes.auth import bp as auth_bp
from app.routes.license import bp as license_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(license_bp)
