"""Bearer access tokens for staff API calls."""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import jwt
from flask import current_app

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ALGORITHM = 'HS256'


def create_access_token(staff) -> str:
    """Create a signed access token for ``staff``."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=current_app.config.get('ACCESS_TOKEN_EXPIRE_MINUTES', 24 * 60))
    payload = {
        'sub': str(staff.id),
        'email': staff.email,
        'role': staff.role,
        'exp': expire,
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm=ACCESS_TOKEN_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=[ACCESS_TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected access token: {type(e).__name__}")
    return None


def load_staff_from_header(header: Optional[str]):
    """Return the active staff member named by an ``Authorization`` header, if any."""
    if not header or not header.startswith('Bearer '):
        return None
    payload = decode_access_token(header[len('Bearer '):].strip())
    if not payload or not payload.get('sub'):
        return None

    from app import db
    from app.models import Staff
    try:
        staff_id = int(payload['sub'])
    except (TypeError, ValueError):
        return None
    staff = db.session.get(Staff, staff_id)
    if staff is None or staff.status != 'active':
        return None
    return staff
