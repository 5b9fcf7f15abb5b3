"""Logging configuration: plain or JSON output, with signing secrets redacted."""

import logging

from pythonjsonlogger import jsonlogger

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'
REDACTED = '***'
RESERVED_ATTRS = frozenset(vars(logging.LogRecord('', logging.INFO, '', 0, '', None, None))) | {'message', 'asctime'}


class SecretRedactingFilter(logging.Filter):
    """Replace configured secret values wherever they appear in a record."""

    def __init__(self, secrets):
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def _redact(self, text):
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text

    def filter(self, record):
        message = record.getMessage()
        redacted = self._redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        if record.exc_info and not record.exc_text:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = self._redact(record.exc_text)
        for key, value in list(vars(record).items()):
            if key not in RESERVED_ATTRS and isinstance(value, str):
                setattr(record, key, self._redact(value))
        return True


def configure_logging(app):
    """Attach one handler to the root logger according to LOG_LEVEL / LOG_JSON."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    handler = logging.StreamHandler()
    if app.config.get('LOG_JSON'):
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler.addFilter(SecretRedactingFilter([
        app.config.get('SECRET_KEY'),
        app.config.get('LICENSE_SECRET'),
    ]))
    handler.set_name('caoffice')

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == 'caoffice':
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)
    return handler
