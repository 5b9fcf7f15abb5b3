from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional

from app.services.licensing import LicenseType


class LoginPayload(BaseModel):
    email: str
    password: str


class ActivateLicensePayload(BaseModel):
    licenseKey: Optional[str] = None
    # Display-only; the signed claims decide company and email
    companyName: Optional[str] = None
    email: Optional[str] = None

    @field_validator('licenseKey', 'companyName', 'email', mode='before')
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class GenerateLicensePayload(BaseModel):
    companyName: str = Field(min_length=1)
    email: str = Field(min_length=3)
    licenseType: LicenseType = LicenseType.COMMERCIAL
    durationMonths: Optional[int] = Field(default=None, ge=1, le=1200)
    maxUsers: Optional[int] = Field(default=None, ge=1)
    features: Dict[str, bool] = {}

    @field_validator('email')
    def email_has_at(cls, v):
        if '@' not in v:
            raise ValueError('Invalid email format')
        return v.strip()


class ExtendLicensePayload(BaseModel):
    additionalDays: int = Field(ge=1, le=36500)
