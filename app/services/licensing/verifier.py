"""License verifier: present-tense validity and derived day counts."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from app.services.licensing import codec
from app.services.licensing.claims import ErrorKind, LicenseClaims, ensure_utc, utcnow

SECONDS_PER_DAY = 86400
EXPIRING_SOON_DAYS = 30

REASONS = {
    ErrorKind.MALFORMED: 'Invalid or corrupted license key',
    ErrorKind.BAD_SIGNATURE: 'Invalid license signature',
    ErrorKind.NOT_YET_VALID: 'License not yet valid',
    ErrorKind.EXPIRED: 'License expired',
}


def whole_days(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, truncated toward zero."""
    return int((end - start).total_seconds() / SECONDS_PER_DAY)


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    data: Optional[LicenseClaims] = None
    reason: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    days_remaining: Optional[int] = None
    days_expired: Optional[int] = None
    is_expiring_soon: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'valid': self.valid,
            'data': self.data.to_payload() if self.data else None,
        }
        if self.valid:
            result['daysRemaining'] = self.days_remaining
            result['isExpiringSoon'] = self.is_expiring_soon
        else:
            result['reason'] = self.reason
            result['errorKind'] = self.error_kind.value if self.error_kind else None
            if self.days_expired is not None:
                result['daysExpired'] = self.days_expired
        return result


def verify(token: str, secret: str, now: Optional[datetime] = None,
           algorithm: str = codec.DEFAULT_ALGORITHM,
           expiring_soon_days: int = EXPIRING_SOON_DAYS) -> VerificationResult:
    now = ensure_utc(now) if now is not None else utcnow()

    decoded = codec.decode_verified(token, secret, algorithm=algorithm)
    if not decoded.ok:
        return VerificationResult(
            valid=False,
            reason=REASONS.get(decoded.error_kind, 'Invalid license key'),
            error_kind=decoded.error_kind,
        )

    claims = decoded.claims
    if claims.expiry < now:
        return VerificationResult(
            valid=False,
            data=claims,
            reason=REASONS[ErrorKind.EXPIRED],
            error_kind=ErrorKind.EXPIRED,
            days_expired=whole_days(claims.expiry, now),
        )

    days_remaining = whole_days(now, claims.expiry)
    return VerificationResult(
        valid=True,
        data=claims,
        days_remaining=days_remaining,
        is_expiring_soon=days_remaining < expiring_soon_days,
    )

