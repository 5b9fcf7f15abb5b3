"""
Application services.

The licensing subsystem lives in ``app.services.licensing``;
``get_license_service`` builds it for the current Flask app.
"""

from app.services.license_service import get_license_service

__all__ = [
    'get_license_service',
]
