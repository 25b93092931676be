import logging

import pytest

from autocompress.logger_setup import ROOT_LOGGER, ColoredFormatter, get_logger, setup_logging

pytestmark = pytest.mark.usefixtures("reset_logging")


def _console_handler(logger):
    return next(h for h in logger.handlers
                if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler))


def test_packaged_config_writes_under_logs_dir(tmp_path):
    logs = tmp_path / 'logs'
    logger = setup_logging(logs_dir=str(logs))

    logger.error("probe exploded")
    for handler in logger.handlers:
        handler.flush()

    assert logger.name == ROOT_LOGGER
    assert "probe exploded" in (logs / 'autocompress.log').read_text(encoding='utf-8')
    assert "probe exploded" in (logs / 'errors.log').read_text(encoding='utf-8')
    assert isinstance(_console_handler(logger).formatter, ColoredFormatter)


def test_missing_config_file_uses_built_in_default(tmp_path):
    logger = setup_logging(config_path=str(tmp_path / 'nope.yaml'), log_level='debug',
                           logs_dir=str(tmp_path / 'logs'))
    assert _console_handler(logger).level == logging.DEBUG
    assert {type(h) for h in logger.handlers} >= {logging.FileHandler}


def test_console_level_defaults_to_warning(tmp_path):
    logger = setup_logging(logs_dir=str(tmp_path / 'logs'))
    assert _console_handler(logger).level == logging.WARNING


def test_colored_formatter_leaves_record_untouched():
    formatter = ColoredFormatter(fmt='%(levelname)s %(message)s')
    record = logging.LogRecord('autocompress', logging.ERROR, __file__, 1, "boom", None, None)

    text = formatter.format(record)

    assert text.endswith("ERROR\x1b[0m boom")
    assert record.levelname == 'ERROR'


def test_get_logger_namespaces_under_root():
    assert get_logger().name == ROOT_LOGGER
    assert get_logger('batch').name == f'{ROOT_LOGGER}.batch'
