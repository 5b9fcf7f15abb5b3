"""Builds the license service for the current Flask application."""

from flask import current_app

from app import db
from app.services.licensing import LicenseService, SqlAlchemyLicenseStore


def get_license_service() -> LicenseService:
    """Return a ``LicenseService`` bound to the app's database session.

    Tests can install a different service via ``app.extensions['license_service_factory']``.
    """
    factory = current_app.extensions.get('license_service_factory')
    if factory is not None:
        return factory()
    return LicenseService(
        SqlAlchemyLicenseStore(db.session),
        current_app.config['LICENSE_SECRET'],
        algorithm=current_app.config.get('LICENSE_ALGORITHM', 'HS256'),
        expiring_soon_days=current_app.config.get('LICENSE_EXPIRING_SOON_DAYS', 30),
    )
