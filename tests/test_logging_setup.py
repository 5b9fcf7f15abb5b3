import io
import json
import logging

from pythonjsonlogger import jsonlogger

from app.utils.logging_setup import REDACTED, SecretRedactingFilter, configure_logging

from conftest import LICENSE_SECRET


def _capture(handler_filter, formatter=None):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(handler_filter)
    if formatter is not None:
        handler.setFormatter(formatter)
    logger = logging.getLogger('tests.redaction')
    logger.handlers = [handler]
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    return logger, stream


def test_secret_in_message_is_redacted():
    logger, stream = _capture(SecretRedactingFilter(['hunter2-signing-key']))
    logger.info("signing with %s", 'hunter2-signing-key')
    assert 'hunter2-signing-key' not in stream.getvalue()
    assert REDACTED in stream.getvalue()


def test_secret_in_traceback_is_redacted():
    logger, stream = _capture(SecretRedactingFilter(['hunter2-signing-key']))
    try:
        raise ValueError('bad key hunter2-signing-key')
    except ValueError:
        logger.exception('decode failed')
    assert 'hunter2-signing-key' not in stream.getvalue()
    assert 'decode failed' in stream.getvalue()


def test_secret_in_extra_fields_is_redacted():
    logger, stream = _capture(SecretRedactingFilter(['hunter2-signing-key']), jsonlogger.JsonFormatter('%(message)s'))
    logger.warning('activation failed', extra={'key': 'prefix-hunter2-signing-key', 'attempt': 2})
    record = json.loads(stream.getvalue().strip())
    assert record['key'] == 'prefix-***'
    assert record['attempt'] == 2
    assert record['message'] == 'activation failed'


def test_empty_secrets_are_ignored():
    logger, stream = _capture(SecretRedactingFilter([None, '']))
    logger.info('nothing to hide')
    assert stream.getvalue().strip() == 'nothing to hide'


def test_configure_logging_installs_one_redacting_handler(app):
    configure_logging(app)
    handler = configure_logging(app)

    root = logging.getLogger()
    assert [h for h in root.handlers if h.get_name() == 'caoffice'] == [handler]

    stream = io.StringIO()
    handler.setStream(stream)
    logging.getLogger('tests.configured').warning('leaking %s', LICENSE_SECRET)
    assert LICENSE_SECRET not in stream.getvalue()


def test_json_log_output(app):
    app.config['LOG_JSON'] = True
    handler = configure_logging(app)
    stream = io.StringIO()
    handler.setStream(stream)

    logging.getLogger('tests.json').warning('license check done')
    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record['message'] == 'license check done'
    assert record['levelname'] == 'WARNING'
