import pytest
from pydantic import ValidationError

from config import Config

STRONG = 'a-long-random-production-secret'


def _config(**overrides):
    values = {'SECRET_KEY': STRONG, 'LICENSE_SECRET': STRONG + '-license', 'DATABASE_URL': 'sqlite:///:memory:'}
    values.update(overrides)
    return Config(_env_file=None, **values)


def test_defaults():
    config = _config()
    assert config.LICENSE_ALGORITHM == 'HS256'
    assert config.LICENSE_EXPIRING_SOON_DAYS == 30
    assert config.SQLALCHEMY_DATABASE_URI == 'sqlite:///:memory:'
    assert config.SQLALCHEMY_ENGINE_OPTIONS == {}


def test_mysql_gets_pool_options():
    config = _config(DATABASE_URL='mysql+pymysql://u:p@localhost/caoffice')
    assert config.SQLALCHEMY_ENGINE_OPTIONS['pool_pre_ping'] is True


def test_production_rejects_placeholder_secrets():
    with pytest.raises(ValidationError):
        _config(APP_ENV='production', LICENSE_SECRET='dev-license-secret-please-change')
    with pytest.raises(ValidationError):
        _config(APP_ENV='production', SECRET_KEY='short')


def test_development_allows_placeholder_secrets():
    assert _config(LICENSE_SECRET='dev').LICENSE_SECRET == 'dev'


def test_algorithm_must_be_hmac():
    assert _config(LICENSE_ALGORITHM='hs512').LICENSE_ALGORITHM == 'HS512'
    with pytest.raises(ValidationError):
        _config(LICENSE_ALGORITHM='none')
    with pytest.raises(ValidationError):
        _config(LICENSE_ALGORITHM='RS256')


def test_log_level_is_normalised():
    assert _config(LOG_LEVEL=' debug ').LOG_LEVEL == 'DEBUG'
