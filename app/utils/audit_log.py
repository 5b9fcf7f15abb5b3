"""
Audit logging for sensitive operations (license activation, generation, deactivation...).
Each action is stored as an AuditLog row and mirrored to the ``audit`` logger.
"""

import logging
import json
from flask import request, has_request_context
from flask_login import current_user
from app import db

audit_logger = logging.getLogger('audit')

SENSITIVE_KEYS = ('password', 'token', 'secret', 'license_key', 'licensekey', 'new_token', 'newtoken')


def mask_details(additional_info):
    """Return a copy of ``additional_info`` with sensitive values replaced by ``***``."""
    masked = {}
    for k, v in (additional_info.items() if isinstance(additional_info, dict) else []):
        if k.lower() in SENSITIVE_KEYS:
            masked[k] = '***'
        else:
            masked[k] = v
    return masked


def _current_actor():
    if has_request_context() and current_user and getattr(current_user, 'is_authenticated', False):
        return current_user.id, getattr(current_user, 'role', None)
    return None, None


def log_action(action: str, description: str, subject=None, additional_info: dict = None, success: bool = True):
    """Record an audit entry in the database and the audit log stream.

    Example: log_action('LICENSE_DEACTIVATED', 'License deactivated', additional_info={'count': 1})

    Failures are logged and rolled back; they never break the calling request.
    """
    try:
        from app.models import AuditLog
        actor_id, actor_role = _current_actor()
        details = mask_details(additional_info) if additional_info else None

        entry = AuditLog(
            actor_id=actor_id,
            actor_role=actor_role,
            ip=request.remote_addr if has_request_context() else None,
            action=action,
            object_type=subject.__class__.__name__ if subject is not None else None,
            object_id=str(getattr(subject, 'id', None)) if getattr(subject, 'id', None) is not None else None,
            details=json.dumps(details, ensure_ascii=False, default=str) if details else None,
            success=bool(success),
        )
        db.session.add(entry)
        db.session.commit()

        audit_logger.info(description, extra={
            'audit_action': action,
            'actor_id': actor_id,
            'success': bool(success),
        })
        return entry
    except Exception:
        audit_logger.exception('Failed to write audit entry')
        try:
            db.session.rollback()
        except Exception:
            audit_logger.exception('Rollback after failed audit write also failed')
        return None
