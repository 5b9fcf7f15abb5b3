"""
Licensing subsystem.

Signed license tokens gate use of the application by expiry date and seat
count. The codec signs and parses tokens, the verifier judges them against
the clock, lifecycle issues and inspects them, and ``LicenseService`` ties
them to the stored current license for activation and per-request
enforcement.
"""

from app.services.licensing.claims import (
    KNOWN_FEATURES,
    ErrorKind,
    LicenseClaims,
    LicenseType,
)
from app.services.licensing.codec import decode_unverified, decode_verified, encode
from app.services.licensing.enforcement import ActivationResult, EnforcementOutcome, LicenseService
from app.services.licensing.exceptions import LicenseError, LicenseIssueError, LicensePersistenceError
from app.services.licensing.lifecycle import extend, has_feature, issue, license_info
from app.services.licensing.store import LicenseRecord, LicenseStore, SqlAlchemyLicenseStore
from app.services.licensing.verifier import VerificationResult, verify

__all__ = [
    'KNOWN_FEATURES',
    'ErrorKind',
    'LicenseClaims',
    'LicenseType',
    'encode',
    'decode_unverified',
    'decode_verified',
    'verify',
    'VerificationResult',
    'issue',
    'extend',
    'has_feature',
    'license_info',
    'LicenseService',
    'EnforcementOutcome',
    'ActivationResult',
    'LicenseRecord',
    'LicenseStore',
    'SqlAlchemyLicenseStore',
    'LicenseError',
    'LicenseIssueError',
    'LicensePersistenceError',
]
