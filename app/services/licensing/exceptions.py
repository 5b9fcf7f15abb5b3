"""Exceptions raised by the licensing services."""

from typing import Optional

from app.services.licensing.claims import ErrorKind


class LicenseError(Exception):
    """Base exception for licensing errors"""
    error_code = 'LICENSE_ERROR'

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class LicenseIssueError(LicenseError, ValueError):
    """Issuance was asked for terms that cannot form a valid license."""
    error_code = 'INVALID_LICENSE_TERMS'


class LicensePersistenceError(LicenseError):
    """The license store could not be read or written."""
    error_code = ErrorKind.PERSISTENCE_FAILURE.value

    def __init__(self, message: str = 'License store unavailable'):
        super().__init__(message)
