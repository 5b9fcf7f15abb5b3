import os
from pydantic_settings import BaseSettings
from pydantic import model_validator, field_validator
from typing import Optional

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DEFAULT_DB_URI = f'sqlite:///{os.path.join(BASE_DIR, "caoffice.db")}'


class Config(BaseSettings):
    # Security configuration
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # License signing. LICENSE_SECRET must never be logged or returned.
    LICENSE_SECRET: str
    LICENSE_ALGORITHM: str = 'HS256'
    LICENSE_EXPIRING_SOON_DAYS: int = 30

    # Database
    DATABASE_URL: str = DEFAULT_DB_URI
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}

    # Audit retention (days)
    AUDIT_RETENTION_DAYS: int = 30
    ENABLE_SCHEDULER: bool = False

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False

    # Application environment: development | staging | production
    APP_ENV: str = os.getenv('FLASK_ENV', 'development')

    @model_validator(mode='after')
    def set_database_config(self) -> 'Config':
        """Set SQLALCHEMY_DATABASE_URI from DATABASE_URL and configure engine options"""
        self.SQLALCHEMY_DATABASE_URI = self.DATABASE_URL

        if 'mysql' in self.DATABASE_URL or 'mariadb' in self.DATABASE_URL:
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                'pool_size': 10,
                'pool_recycle': 3600,
                'pool_pre_ping': True,
                'max_overflow': 20,
                'connect_args': {
                    'charset': 'utf8mb4',
                }
            }

        return self

    @model_validator(mode='after')
    def reject_development_secrets(self) -> 'Config':
        """Refuse to start a production deployment with placeholder secrets."""
        if self.APP_ENV.lower() != 'production':
            return self
        for name in ('SECRET_KEY', 'LICENSE_SECRET'):
            value = getattr(self, name)
            if value.startswith('dev') or len(value) < 16:
                raise ValueError(f'{name} must be set to a strong value in production')
        return self

    @field_validator('LOG_LEVEL', mode='before')
    def _normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('LICENSE_ALGORITHM')
    def _reject_unsigned_algorithm(cls, v):
        if not v.upper().startswith('HS'):
            raise ValueError('LICENSE_ALGORITHM must be an HMAC algorithm (HS256/HS384/HS512)')
        return v.upper()

    class Config:
        env_file = '.env'
        env_file_encoding = 'utf-8'
        case_sensitive = False
        extra = 'ignore'  # Ignore extra fields from .env
