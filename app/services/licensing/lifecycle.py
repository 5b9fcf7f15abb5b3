"""
License lifecycle: issuing tokens for each commercial tier, extending them,
and inspecting features and usage statistics.

Tiers are looked up in ``LICENSE_TIERS`` by ``LicenseType``; adding a tier
means adding an entry there.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Union
import calendar
import logging

from app.services.licensing import codec, verifier
from app.services.licensing.claims import (
    KNOWN_FEATURES,
    STANDARD_FEATURES,
    ClaimsError,
    LicenseClaims,
    LicenseType,
    ensure_utc,
    format_instant,
    normalize_features,
    to_utc,
    utcnow,
)
from app.services.licensing.exceptions import LicenseIssueError

logger = logging.getLogger(__name__)

LIFETIME_YEARS = 99


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class LicenseTier:
    default_users: int
    default_features: Callable[[], Dict[str, bool]]
    default_months: Optional[int] = None
    lifetime: bool = False
    lifetime_fallback: bool = False


def _no_features() -> Dict[str, bool]:
    return {}


def _subscription_features() -> Dict[str, bool]:
    return {'advancedReports': True, 'prioritySupport': True}


def _standard_features() -> Dict[str, bool]:
    return {name: True for name in STANDARD_FEATURES}


def _all_features() -> Dict[str, bool]:
    return {name: True for name in KNOWN_FEATURES}


LICENSE_TIERS: Dict[LicenseType, LicenseTier] = {
    LicenseType.COMMERCIAL: LicenseTier(default_users=5, default_features=_no_features),
    LicenseType.SUBSCRIPTION: LicenseTier(default_users=5, default_features=_subscription_features, default_months=12),
    LicenseType.LIFETIME: LicenseTier(default_users=10, default_features=_standard_features, lifetime=True),
    LicenseType.ENTERPRISE: LicenseTier(default_users=50, default_features=_all_features, lifetime_fallback=True),
}


def _resolve_kind(kind: Union[LicenseType, str]) -> LicenseType:
    try:
        return LicenseType(kind)
    except ValueError:
        raise LicenseIssueError(f"Unknown license type: {kind!r}") from None


def _resolve_expiry(tier: LicenseTier, issued: datetime, expiry: Optional[datetime],
                    duration_months: Optional[int]) -> datetime:
    if tier.lifetime:
        return add_months(issued, LIFETIME_YEARS * 12)
    if expiry is not None:
        return to_utc(expiry)
    if duration_months is not None:
        if duration_months < 1:
            raise LicenseIssueError("duration_months must be at least 1")
        return add_months(issued, duration_months)
    if tier.default_months is not None:
        return add_months(issued, tier.default_months)
    if tier.lifetime_fallback:
        return add_months(issued, LIFETIME_YEARS * 12)
    raise LicenseIssueError("An expiry date or a duration in months is required")


def build_claims(kind: Union[LicenseType, str], company: str, email: str,
                 expiry: Optional[datetime] = None, duration_months: Optional[int] = None,
                 max_users: Optional[int] = None, features: Optional[Mapping[str, Any]] = None,
                 issued: Optional[datetime] = None) -> LicenseClaims:
    license_type = _resolve_kind(kind)
    tier = LICENSE_TIERS[license_type]

    if not company or not str(company).strip():
        raise LicenseIssueError("Company name is required")
    if not email or not str(email).strip():
        raise LicenseIssueError("Email is required")

    issued = to_utc(issued) if issued is not None else to_utc(utcnow())
    users = tier.default_users if max_users is None else max_users

    try:
        resolved_expiry = _resolve_expiry(tier, issued, expiry, duration_months)
    except LicenseIssueError:
        raise
    except (OverflowError, ValueError):
        raise LicenseIssueError("License term is out of range") from None

    try:
        return LicenseClaims(
            company=str(company).strip(),
            email=str(email).strip(),
            issued=issued,
            expiry=resolved_expiry,
            users=users,
            type=license_type,
            features=normalize_features(tier.default_features(), features),
        )
    except ClaimsError as e:
        raise LicenseIssueError(str(e)) from e


def issue(kind: Union[LicenseType, str], company: str, email: str, secret: str,
          expiry: Optional[datetime] = None, duration_months: Optional[int] = None,
          max_users: Optional[int] = None, features: Optional[Mapping[str, Any]] = None,
          issued: Optional[datetime] = None, algorithm: str = codec.DEFAULT_ALGORITHM) -> str:
    claims = build_claims(kind, company, email, expiry=expiry, duration_months=duration_months,
                          max_users=max_users, features=features, issued=issued)
    logger.info(f"Issued {claims.type.value} license {claims.license_id} for {claims.company} "
                f"({claims.users} users, expires {format_instant(claims.expiry)})")
    return codec.encode(claims, secret, algorithm=algorithm)


@dataclass(frozen=True)
class ExtensionResult:
    success: bool
    new_token: Optional[str] = None
    old_expiry: Optional[datetime] = None
    new_expiry: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {'success': False, 'error': self.error}
        return {
            'success': True,
            'newToken': self.new_token,
            'oldExpiry': format_instant(self.old_expiry),
            'newExpiry': format_instant(self.new_expiry),
        }


def extend(token: str, secret: str, additional_days: int,
           algorithm: str = codec.DEFAULT_ALGORITHM) -> ExtensionResult:
    """Re-issue ``token`` with its expiry pushed out by ``additional_days``.

    Expired tokens can be extended; only undecodable or forged ones fail.
    """
    if isinstance(additional_days, bool) or not isinstance(additional_days, int) or additional_days < 1:
        return ExtensionResult(success=False, error='additional_days must be a positive integer')

    decoded = codec.decode_verified(token, secret, algorithm=algorithm)
    if not decoded.ok:
        return ExtensionResult(success=False, error='Invalid license key')

    claims = decoded.claims
    try:
        renewed = claims.with_expiry(claims.expiry + timedelta(days=additional_days))
    except (OverflowError, ValueError):
        return ExtensionResult(success=False, error='Extension is out of range')
    logger.info(f"Extended license {claims.license_id} by {additional_days} days as {renewed.license_id}")
    return ExtensionResult(
        success=True,
        new_token=codec.encode(renewed, secret, algorithm=algorithm),
        old_expiry=claims.expiry,
        new_expiry=renewed.expiry,
    )


def has_feature(token: str, secret: str, feature_name: str, now: Optional[datetime] = None,
                algorithm: str = codec.DEFAULT_ALGORITHM) -> bool:
    result = verifier.verify(token, secret, now=now, algorithm=algorithm)
    if not result.valid or result.data is None:
        return False
    return result.data.has_feature(feature_name)


def license_info(token: str, secret: str, now: Optional[datetime] = None,
                 algorithm: str = codec.DEFAULT_ALGORITHM,
                 expiring_soon_days: int = verifier.EXPIRING_SOON_DAYS) -> Optional[Dict[str, Any]]:
    result = verifier.verify(token, secret, now=now, algorithm=algorithm,
                             expiring_soon_days=expiring_soon_days)
    if result.data is None:
        return None

    claims = result.data
    now = ensure_utc(now) if now is not None else utcnow()
    total_days = verifier.whole_days(claims.issued, claims.expiry)
    days_used = verifier.whole_days(claims.issued, now)
    days_remaining = verifier.whole_days(now, claims.expiry)
    if total_days > 0:
        percentage_used = min(100, round(days_used / total_days * 100))
    else:
        percentage_used = 100

    return {
        'valid': result.valid,
        'company': claims.company,
        'email': claims.email,
        'type': claims.type.value,
        'maxUsers': claims.users,
        'licenseId': claims.license_id,
        'issued': format_instant(claims.issued),
        'expiry': format_instant(claims.expiry),
        'features': dict(claims.features),
        'statistics': {
            'totalDays': total_days,
            'daysUsed': days_used,
            'daysRemaining': max(0, days_remaining),
            'percentageUsed': percentage_used,
            'isExpired': not result.valid,
            'isExpiringSoon': 0 < days_remaining < expiring_soon_days,
        },
    }


def classify_term(issued: datetime, expiry: datetime) -> str:
    """Bucket a license duration the way the billing UI labels it."""
    duration = verifier.whole_days(issued, expiry)
    if duration <= 31:
        return 'trial'
    if duration <= 400:
        return '1year'
    if duration <= 1200:
        return '3year'
    if duration <= 2000:
        return '5year'
    return 'lifetime'
