from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from pydantic import ValidationError
import logging

from app.models import Staff
from app.schemas import LoginPayload
from app.utils.tokens import create_access_token

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.route('/login', methods=['POST'])
def login():
    """Exchange email and password for a bearer token"""
    try:
        payload = LoginPayload.model_validate(request.get_json(silent=True) or {})
    except ValidationError:
        return jsonify({'success': False, 'message': 'Email and password are required'}), 400

    staff = Staff.query.filter_by(email=payload.email.strip().lower()).first()
    if staff is None or not staff.check_password(payload.password):
        logger.info("Failed login attempt")
        return jsonify({'success': False, 'message': 'Invalid email or password'}), 401
    if staff.status != 'active':
        return jsonify({'success': False, 'message': 'Account is inactive'}), 403

    return jsonify({
        'success': True,
        'token': create_access_token(staff),
        'user': {'id': staff.id, 'name': staff.name, 'email': staff.email, 'role': staff.role},
    })


@bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({
        'success': True,
        'user': {
            'id': current_user.id,
            'name': current_user.name,
            'email': current_user.email,
            'role': current_user.role,
        },
    })
