"""
Token codec: LicenseClaims <-> signed compact JWS.

The codec checks signatures and structure only. Expiry is left to the
verifier so that an expired but genuine token still decodes (renewal needs
that) and EXPIRED is never confused with a bad signature.
"""

from dataclasses import dataclass
from typing import Optional
import binascii
import json
import logging

import jwt
from jwt.utils import base64url_decode, base64url_encode

from app.services.licensing.claims import ClaimsError, ErrorKind, LicenseClaims

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = 'HS256'


@dataclass(frozen=True)
class DecodeResult:
    ok: bool
    claims: Optional[LicenseClaims] = None
    error_kind: Optional[ErrorKind] = None


def _preview(token) -> str:
    if not isinstance(token, str):
        return repr(type(token))
    return f"{token[:12]}... ({len(token)} chars)"


def _header_and_payload_readable(token: str) -> bool:
    parts = token.split('.')
    if len(parts) != 3:
        return False
    try:
        for segment in parts[:2]:
            if not isinstance(json.loads(base64url_decode(segment)), dict):
                return False
    except (ValueError, TypeError, binascii.Error):
        return False
    return True


def _signature_is_canonical(token: str) -> bool:
    # Decoders ignore the unused trailing bits; only the canonical spelling is accepted
    signature = token.rsplit('.', 1)[-1]
    try:
        return base64url_encode(base64url_decode(signature)).decode('ascii') == signature
    except (ValueError, TypeError, binascii.Error):
        return False


def encode(claims: LicenseClaims, secret: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    payload = claims.to_payload()
    payload['exp'] = int(claims.expiry.timestamp())
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_unverified(token: str) -> Optional[LicenseClaims]:
    """Read claims without checking the signature.

    For inspection and debugging only; the result must never grant access.
    """
    try:
        payload = jwt.decode(token, options={'verify_signature': False})
        return LicenseClaims.from_payload(payload)
    except (jwt.PyJWTError, ClaimsError, TypeError, ValueError) as e:
        logger.debug(f"decode_unverified: unreadable token {_preview(token)}: {type(e).__name__}")
        return None


def decode_verified(token: str, secret: str, algorithm: str = DEFAULT_ALGORITHM) -> DecodeResult:
    if not isinstance(token, str) or not token.strip():
        return DecodeResult(ok=False, error_kind=ErrorKind.MALFORMED)

    try:
        payload = jwt.decode(
            token.strip(),
            secret,
            algorithms=[algorithm],
            options={'verify_exp': False, 'require': ['exp']},
        )
    except jwt.InvalidSignatureError:
        return DecodeResult(ok=False, error_kind=ErrorKind.BAD_SIGNATURE)
    except jwt.InvalidAlgorithmError:
        # Covers alg=none and any algorithm other than the configured one
        return DecodeResult(ok=False, error_kind=ErrorKind.BAD_SIGNATURE)
    except jwt.ImmatureSignatureError:
        return DecodeResult(ok=False, error_kind=ErrorKind.NOT_YET_VALID)
    except jwt.MissingRequiredClaimError:
        return DecodeResult(ok=False, error_kind=ErrorKind.MALFORMED)
    except jwt.DecodeError:
        # An undecodable signature on an otherwise readable token is tampering
        if _header_and_payload_readable(token.strip()):
            return DecodeResult(ok=False, error_kind=ErrorKind.BAD_SIGNATURE)
        return DecodeResult(ok=False, error_kind=ErrorKind.MALFORMED)
    except jwt.PyJWTError as e:
        # Exception messages never include the key, only the token problem
        logger.debug(f"decode_verified: malformed token {_preview(token)}: {type(e).__name__}")
        return DecodeResult(ok=False, error_kind=ErrorKind.MALFORMED)

    if not _signature_is_canonical(token.strip()):
        return DecodeResult(ok=False, error_kind=ErrorKind.BAD_SIGNATURE)

    try:
        claims = LicenseClaims.from_payload(payload)
    except (ClaimsError, TypeError) as e:
        logger.warning(f"decode_verified: signed token carries invalid claims: {e}")
        return DecodeResult(ok=False, error_kind=ErrorKind.MALFORMED)

    if int(claims.expiry.timestamp()) != payload['exp']:
        logger.warning("decode_verified: exp claim does not match license expiry")
        return DecodeResult(ok=False, error_kind=ErrorKind.MALFORMED)

    return DecodeResult(ok=True, claims=claims)
