from functools import wraps
import logging

from flask import g, jsonify
from flask_login import current_user

from app.services.licensing import LicensePersistenceError

logger = logging.getLogger(__name__)


def role_required(*roles):
    """Decorator to require specific staff roles for a route."""
    def wrapper(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'success': False, 'message': 'Access token is required'}), 401
            if current_user.role not in roles:
                return jsonify({'success': False, 'message': f"{' or '.join(r.title() for r in roles)} access required"}), 403
            return f(*args, **kwargs)
        return decorated_function
    return wrapper


admin_required = role_required('admin')


def license_required(f):
    """
    Gate a route on the current license.

    Rejections carry ``requiresLicense``, ``expired`` or ``userLimitExceeded``
    so the client can tell them apart. On success the license claims are
    available as ``g.license``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from app.services import get_license_service
        from app.utils.audit_log import log_action

        g.pop('license', None)
        try:
            outcome = get_license_service().enforce()
        except LicensePersistenceError:
            logger.exception("License check failed: license store unavailable")
            return jsonify({'success': False, 'message': 'License verification failed'}), 500

        if not outcome.allowed:
            if outcome.auto_expired:
                log_action('LICENSE_AUTO_EXPIRED', f"License expired on access: {outcome.message}",
                           additional_info={'reason': outcome.message}, success=False)
            return jsonify(outcome.to_response()), outcome.status_code

        g.license = outcome.claims
        return f(*args, **kwargs)
    return decorated_function
