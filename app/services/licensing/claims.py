"""
License claims: the commercial terms carried inside a signed license token.

Claims are immutable. Extending a license builds a new ``LicenseClaims``
instead of changing an existing one.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import uuid


STANDARD_FEATURES = ('advancedReports', 'apiAccess', 'customBranding', 'prioritySupport')
ENTERPRISE_FEATURES = ('multiLocation', 'auditTrails', 'sso')
KNOWN_FEATURES = STANDARD_FEATURES + ENTERPRISE_FEATURES

_REQUIRED_KEYS = ('company', 'email', 'issued', 'expiry', 'users', 'type', 'licenseId')


class LicenseType(str, Enum):
    COMMERCIAL = 'commercial'
    SUBSCRIPTION = 'subscription'
    LIFETIME = 'lifetime'
    ENTERPRISE = 'enterprise'


class ErrorKind(str, Enum):
    """Machine-checkable reasons a license is refused."""
    MALFORMED = 'MALFORMED'
    BAD_SIGNATURE = 'BAD_SIGNATURE'
    NOT_YET_VALID = 'NOT_YET_VALID'
    EXPIRED = 'EXPIRED'
    NO_ACTIVE_LICENSE = 'NO_ACTIVE_LICENSE'
    SEAT_LIMIT_EXCEEDED = 'SEAT_LIMIT_EXCEEDED'
    PERSISTENCE_FAILURE = 'PERSISTENCE_FAILURE'


class ClaimsError(ValueError):
    """Raised when a payload cannot be turned into valid claims."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise to an aware UTC instant truncated to whole seconds."""
    return ensure_utc(value).replace(microsecond=0)


def parse_instant(value: Any) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str) or not value:
        raise ClaimsError(f"Invalid timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError as e:
        raise ClaimsError(f"Invalid timestamp: {value!r}") from e
    return to_utc(parsed)


def format_instant(value: datetime) -> str:
    return to_utc(value).isoformat().replace('+00:00', 'Z')


def normalize_features(defaults: Mapping[str, bool], overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, bool]:
    """Known keys start as ``False``, then tier defaults, then caller overrides.

    Unknown override keys are kept as-is.
    """
    features = {name: False for name in KNOWN_FEATURES}
    features.update(defaults)
    for name, enabled in (overrides or {}).items():
        features[str(name)] = bool(enabled)
    return features


@dataclass(frozen=True)
class LicenseClaims:
    company: str
    email: str
    issued: datetime
    expiry: datetime
    users: int
    type: LicenseType = LicenseType.COMMERCIAL
    license_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    features: Dict[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'issued', to_utc(self.issued))
        object.__setattr__(self, 'expiry', to_utc(self.expiry))
        object.__setattr__(self, 'type', LicenseType(self.type))
        object.__setattr__(self, 'features', dict(self.features))
        if not isinstance(self.users, int) or isinstance(self.users, bool) or self.users < 1:
            raise ClaimsError(f"users must be a positive integer, got {self.users!r}")
        if self.expiry <= self.issued:
            raise ClaimsError("expiry must be after issued")

    def has_feature(self, name: str) -> bool:
        return self.features.get(name) is True

    def with_expiry(self, expiry: datetime) -> 'LicenseClaims':
        """Return new claims with a new expiry and a fresh license id."""
        return replace(self, expiry=expiry, license_id=str(uuid.uuid4()))

    def to_payload(self) -> Dict[str, Any]:
        return {
            'company': self.company,
            'email': self.email,
            'issued': format_instant(self.issued),
            'expiry': format_instant(self.expiry),
            'users': self.users,
            'type': self.type.value,
            'licenseId': self.license_id,
            'features': dict(self.features),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> 'LicenseClaims':
        if not isinstance(payload, Mapping):
            raise ClaimsError("payload must be an object")
        missing = [key for key in _REQUIRED_KEYS if key not in payload]
        if missing:
            raise ClaimsError(f"missing claims: {', '.join(missing)}")
        features = payload.get('features') or {}
        if not isinstance(features, Mapping):
            raise ClaimsError("features must be an object")
        try:
            license_type = LicenseType(payload['type'])
        except ValueError as e:
            raise ClaimsError(f"unknown license type: {payload['type']!r}") from e
        return cls(
            company=str(payload['company']),
            email=str(payload['email']),
            issued=parse_instant(payload['issued']),
            expiry=parse_instant(payload['expiry']),
            users=payload['users'],
            type=license_type,
            license_id=str(payload['licenseId']),
            features={str(k): v for k, v in features.items()},
        )
