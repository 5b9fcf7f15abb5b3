"""
License routes: activation, status, and admin-only generation, extension,
inspection and deactivation of the current license.
"""
from flask import Blueprint, g, jsonify, request
from pydantic import ValidationError
import logging

from app.schemas import ActivateLicensePayload, ExtendLicensePayload, GenerateLicensePayload
from app.services import get_license_service
from app.services.licensing import LicenseIssueError, LicensePersistenceError
from app.utils.audit_log import log_action
from app.utils.decorators import admin_required, license_required

logger = logging.getLogger(__name__)

bp = Blueprint("license", __name__, url_prefix="/api/license")


def _validation_error(e: ValidationError):
    errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
    return jsonify({'success': False, 'message': 'Invalid request', 'errors': errors}), 400


@bp.errorhandler(LicensePersistenceError)
def handle_persistence_error(e):
    logger.error(f"License store error on {request.path}: {e.message}")
    return jsonify({'success': False, 'message': 'License service unavailable'}), 500


@bp.route('/activate', methods=['POST'])
def activate():
    """Activate a license key, replacing any active license"""
    try:
        payload = ActivateLicensePayload.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    if not payload.licenseKey:
        return jsonify({'success': False, 'message': 'License key is required'}), 400

    logger.info(f"License activation attempt (key length {len(payload.licenseKey)})")
    result = get_license_service().activate(payload.licenseKey, payload.companyName, payload.email)

    if not result.success:
        log_action('LICENSE_ACTIVATION_FAILED', f"License activation rejected: {result.message}",
                   additional_info={'reason': result.message,
                                    'error_kind': result.error_kind.value if result.error_kind else None},
                   success=False)
        return jsonify(result.to_dict()), 400

    log_action('LICENSE_ACTIVATED', f"License activated for {result.claims.company}",
               additional_info={'license_id': result.claims.license_id, 'record_id': result.record_id,
                                'max_users': result.claims.users, 'term': result.term})
    return jsonify(result.to_dict())


@bp.route('/status', methods=['GET'])
def status():
    """Report the current license without enforcing it"""
    body = get_license_service().get_status()
    body['success'] = True
    return jsonify(body)


@bp.route('/generate', methods=['POST'])
@admin_required
def generate():
    """Issue a new license key (admin only)"""
    try:
        payload = GenerateLicensePayload.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    try:
        issued = get_license_service().generate(
            payload.licenseType,
            payload.companyName,
            payload.email,
            duration_months=payload.durationMonths,
            max_users=payload.maxUsers,
            features=payload.features,
        )
    except LicenseIssueError as e:
        return jsonify({'success': False, 'message': e.message}), 400

    log_action('LICENSE_GENERATED', f"{issued['type'].title()} license generated for {issued['company']}",
               additional_info={'license_id': issued['licenseId'], 'company': issued['company'],
                                'max_users': issued['maxUsers'], 'expiry': issued['expiry']})
    return jsonify({'success': True, **issued})


@bp.route('/extend', methods=['POST'])
@admin_required
def extend():
    """Re-issue the active license with a later expiry (admin only)"""
    try:
        payload = ExtendLicensePayload.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    result = get_license_service().extend(payload.additionalDays)
    if not result.success:
        return jsonify(result.to_dict()), 400

    log_action('LICENSE_EXTENDED', f"License extended by {payload.additionalDays} days",
               additional_info={'additional_days': payload.additionalDays,
                                'new_expiry': result.to_dict()['newExpiry']})
    return jsonify(result.to_dict())


@bp.route('/info', methods=['GET'])
@admin_required
def info():
    """Detailed terms and usage statistics of the active license (admin only)"""
    details = get_license_service().info()
    if details is None:
        return jsonify({'success': False, 'message': 'No readable active license found'}), 404
    return jsonify({'success': True, 'license': details})


@bp.route('/features', methods=['GET'])
@license_required
def features():
    """Features of the enforced license, as attached to the request"""
    return jsonify({
        'success': True,
        'licenseId': g.license.license_id,
        'company': g.license.company,
        'maxUsers': g.license.users,
        'features': dict(g.license.features),
    })


@bp.route('/features/<feature_name>', methods=['GET'])
@license_required
def feature(feature_name):
    return jsonify({'success': True, 'feature': feature_name, 'enabled': g.license.has_feature(feature_name)})


@bp.route('/deactivate', methods=['DELETE'])
@admin_required
def deactivate():
    """Expire the active license (admin only); repeated calls are no-ops"""
    count = get_license_service().deactivate()
    log_action('LICENSE_DEACTIVATED', 'License deactivated', additional_info={'deactivated': count})
    return jsonify({'success': True, 'message': 'License deactivated successfully', 'deactivated': count})
