"""
License service: per-request enforcement plus activation, status,
generation and deactivation of the single current license.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union
import logging

from app.services.licensing import codec, lifecycle, verifier
from app.services.licensing.claims import ErrorKind, LicenseClaims, LicenseType, format_instant, utcnow
from app.services.licensing.exceptions import LicensePersistenceError
from app.services.licensing.store import STATUS_ACTIVE, STATUS_EXPIRED, LicenseStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnforcementOutcome:
    allowed: bool
    status_code: int = 200
    claims: Optional[LicenseClaims] = None
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    requires_license: bool = False
    expired: bool = False
    user_limit_exceeded: bool = False
    auto_expired: bool = False
    expiry_date: Optional[datetime] = None
    max_users: Optional[int] = None
    active_users: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        if self.allowed:
            return {'success': True, 'license': self.claims.to_payload()}
        body: Dict[str, Any] = {
            'success': False,
            'message': self.message,
            'errorKind': self.error_kind.value,
        }
        if self.requires_license:
            body['requiresLicense'] = True
        if self.expired:
            body['expired'] = True
            body['expiryDate'] = format_instant(self.expiry_date) if self.expiry_date else None
        if self.user_limit_exceeded:
            body['userLimitExceeded'] = True
            body['maxUsers'] = self.max_users
            body['activeUsers'] = self.active_users
        return body


@dataclass(frozen=True)
class ActivationResult:
    success: bool
    message: str
    record_id: Optional[int] = None
    claims: Optional[LicenseClaims] = None
    term: Optional[str] = None
    display_company: Optional[str] = None
    display_email: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {
                'success': False,
                'message': self.message,
                'errorKind': self.error_kind.value if self.error_kind else None,
            }
        return {
            'success': True,
            'message': self.message,
            'licenseRecordId': self.record_id,
            'company': self.claims.company,
            'email': self.claims.email,
            'displayCompany': self.display_company,
            'displayEmail': self.display_email,
            'expiry': format_instant(self.claims.expiry),
            'maxUsers': self.claims.users,
            'licenseType': self.claims.type.value,
            'term': self.term,
            'licenseId': self.claims.license_id,
        }


class LicenseService:
    """Everything the web layer asks of the licensing subsystem.

    Args:
        store: persistence collaborator (see ``LicenseStore``)
        secret: token signing key; never logged or returned
        clock: callable returning the current aware UTC time (tests pin it)
    """

    def __init__(self, store: LicenseStore, secret: str, algorithm: str = codec.DEFAULT_ALGORITHM,
                 expiring_soon_days: int = verifier.EXPIRING_SOON_DAYS,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._secret = secret
        self.algorithm = algorithm
        self.expiring_soon_days = expiring_soon_days
        self._clock = clock or utcnow

    def __repr__(self):
        return f"<LicenseService store={type(self.store).__name__} algorithm={self.algorithm}>"

    def now(self) -> datetime:
        return self._clock()

    def verify(self, token: str) -> verifier.VerificationResult:
        return verifier.verify(token, self._secret, now=self.now(), algorithm=self.algorithm,
                               expiring_soon_days=self.expiring_soon_days)

    # ------------------------------------------------------------------
    # Enforcement
    # ------------------------------------------------------------------

    def enforce(self) -> EnforcementOutcome:
        """Gate a request on the current license.

        Checks run in a fixed order and the first failure wins: no active
        license, invalid or expired license, seat limit exceeded.
        Raises ``LicensePersistenceError`` if the store cannot be read.
        """
        record = self.store.get_active_license_record()
        if record is None:
            return EnforcementOutcome(
                allowed=False,
                status_code=403,
                message='No active license found. Please activate your license.',
                error_kind=ErrorKind.NO_ACTIVE_LICENSE,
                requires_license=True,
            )

        result = self.verify(record.license_key)
        if not result.valid:
            auto_expired = self._expire_record(record.id, result.reason)
            return EnforcementOutcome(
                allowed=False,
                status_code=403,
                message=result.reason,
                error_kind=result.error_kind,
                expired=True,
                auto_expired=auto_expired,
                expiry_date=record.expiry_date,
            )

        allowed_users = result.data.users
        active_users = self.store.count_active_staff()
        if active_users > allowed_users:
            # Seat overage is correctable, so the license stays active
            logger.warning(f"License {record.id}: {active_users} active users exceed limit of {allowed_users}")
            return EnforcementOutcome(
                allowed=False,
                status_code=403,
                message=(f"User limit exceeded. License allows {allowed_users} users, "
                         f"but you have {active_users} active users."),
                error_kind=ErrorKind.SEAT_LIMIT_EXCEEDED,
                user_limit_exceeded=True,
                max_users=allowed_users,
                active_users=active_users,
            )

        self._touch(record.id)
        return EnforcementOutcome(allowed=True, claims=result.data)

    def _expire_record(self, record_id: int, reason: Optional[str]) -> bool:
        try:
            with self.store.atomic():
                self.store.set_license_status(record_id, STATUS_EXPIRED)
        except LicensePersistenceError:
            logger.error(f"License {record_id} failed verification ({reason}) but could not be marked expired")
            return False
        logger.warning(f"License {record_id} marked expired: {reason}")
        return True

    def _touch(self, record_id: int) -> None:
        try:
            with self.store.atomic():
                self.store.touch_license(record_id, self.now())
        except LicensePersistenceError:
            logger.debug(f"Could not record last validation for license {record_id}")

    # ------------------------------------------------------------------
    # Activation / status / deactivation
    # ------------------------------------------------------------------

    def activate(self, raw_token: str, company_override: Optional[str] = None,
                 email_override: Optional[str] = None) -> ActivationResult:
        """Verify ``raw_token`` and make it the single active license.

        An invalid token never reaches the store. The overrides are stored as
        display names only; the signed claims stay authoritative.
        """
        if not raw_token or not str(raw_token).strip():
            return ActivationResult(success=False, message='License key is required',
                                    error_kind=ErrorKind.MALFORMED)

        token = str(raw_token).strip()
        result = self.verify(token)
        if not result.valid:
            logger.info(f"License activation rejected: {result.reason}")
            return ActivationResult(success=False, message=result.reason or 'Invalid license key',
                                    error_kind=result.error_kind)

        claims = result.data
        term = lifecycle.classify_term(claims.issued, claims.expiry)
        fields = {
            'license_key': token,
            'license_id': claims.license_id,
            'company_name': claims.company,
            'email': claims.email,
            'display_company': company_override or None,
            'display_email': email_override or None,
            'max_users': claims.users,
            'features': dict(claims.features),
            'license_type': claims.type.value,
            'term': term,
            'issue_date': claims.issued,
            'expiry_date': claims.expiry,
            'status': STATUS_ACTIVE,
            'activated_at': self.now(),
        }

        with self.store.atomic():
            demoted = self.store.expire_active_licenses()
            record_id = self.store.insert_license_record(fields)

        logger.info(f"License {claims.license_id} activated as record {record_id} "
                    f"for {claims.company} ({claims.users} users, {term}); {demoted} previous license(s) expired")
        return ActivationResult(
            success=True,
            message='License activated successfully',
            record_id=record_id,
            claims=claims,
            term=term,
            display_company=company_override or None,
            display_email=email_override or None,
        )

    def get_status(self) -> Dict[str, Any]:
        record = self.store.get_active_license_record()
        if record is None:
            return {'activated': False, 'message': 'No active license found'}

        result = self.verify(record.license_key)
        status = {
            'activated': True,
            'valid': result.valid,
            'status': STATUS_ACTIVE if result.valid else STATUS_EXPIRED,
            'company': record.company_name,
            'email': record.email,
            'displayCompany': record.display_company,
            'displayEmail': record.display_email,
            'issueDate': format_instant(record.issue_date),
            'expiryDate': format_instant(record.expiry_date),
            'daysRemaining': result.days_remaining if result.valid else 0,
            'isExpiringSoon': result.is_expiring_soon,
            'maxUsers': record.max_users,
            'activeUsers': self.store.count_active_staff(),
            'licenseType': record.license_type,
            'term': record.term,
            'features': dict(record.features),
        }
        if not result.valid:
            status['reason'] = result.reason
            status['errorKind'] = result.error_kind.value if result.error_kind else None
            if result.days_expired is not None:
                status['daysExpired'] = result.days_expired
        return status

    def deactivate(self) -> int:
        """Expire every active license. Safe to call repeatedly."""
        with self.store.atomic():
            count = self.store.expire_active_licenses()
        if count:
            logger.info(f"Deactivated {count} license(s)")
        else:
            logger.debug("Deactivate called with no active license")
        return count

    # ------------------------------------------------------------------
    # Admin helpers
    # ------------------------------------------------------------------

    def generate(self, kind: Union[LicenseType, str], company: str, email: str,
                 duration_months: Optional[int] = None, max_users: Optional[int] = None,
                 features: Optional[Mapping[str, Any]] = None,
                 expiry: Optional[datetime] = None) -> Dict[str, Any]:
        """Issue a token; raises ``LicenseIssueError`` for invalid terms."""
        claims = lifecycle.build_claims(kind, company, email, expiry=expiry, duration_months=duration_months,
                                        max_users=max_users, features=features, issued=self.now())
        token = codec.encode(claims, self._secret, algorithm=self.algorithm)
        logger.info(f"Generated {claims.type.value} license {claims.license_id} for {claims.company}")
        return {
            'licenseKey': token,
            'licenseId': claims.license_id,
            'type': claims.type.value,
            'company': claims.company,
            'email': claims.email,
            'issued': format_instant(claims.issued),
            'expiry': format_instant(claims.expiry),
            'maxUsers': claims.users,
            'durationMonths': duration_months,
            'features': dict(claims.features),
        }

    def extend(self, additional_days: int) -> lifecycle.ExtensionResult:
        """Re-issue the stored license with a later expiry.

        The new token is returned, not activated.
        """
        record = self.store.get_active_license_record()
        if record is None:
            return lifecycle.ExtensionResult(success=False, error='No active license found')
        return lifecycle.extend(record.license_key, self._secret, additional_days, algorithm=self.algorithm)

    def info(self) -> Optional[Dict[str, Any]]:
        record = self.store.get_active_license_record()
        if record is None:
            return None
        return lifecycle.license_info(record.license_key, self._secret, now=self.now(),
                                      algorithm=self.algorithm, expiring_soon_days=self.expiring_soon_days)

