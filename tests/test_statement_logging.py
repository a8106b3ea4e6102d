import logging

import pytest

from statement_logging import PKG_LOGGER_NAME, configure_logging, get_logger, parse_level


@pytest.mark.parametrize(
    "level, expected",
    [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), ("15", 15), ("bogus", logging.INFO)],
)
def test_parse_level(level, expected):
    assert parse_level(level) == expected


def test_parse_level_falls_back_to_env(monkeypatch):
    monkeypatch.setenv("DBS_STATEMENT_LOG_LEVEL", "ERROR")
    assert parse_level(None) == logging.ERROR

    monkeypatch.delenv("DBS_STATEMENT_LOG_LEVEL")
    assert parse_level(None) == logging.INFO


def test_get_logger_is_child_of_package_logger():
    logger = get_logger("dbs_statement.parser")
    assert logger.name.startswith(PKG_LOGGER_NAME + ".")
    assert logging.getLogger(PKG_LOGGER_NAME).handlers


def test_configure_logging_writes_to_stderr_current_at_call(capsys):
    configure_logging("INFO")
    get_logger("dbs_statement.cli").info("parsed 3 transactions")

    assert "dbs_statement.cli INFO parsed 3 transactions" in capsys.readouterr().err


def test_configure_logging_only_once(capsys):
    configure_logging("WARNING")
    configure_logging("DEBUG")
    get_logger("dbs_statement.parser").info("hidden")

    assert "hidden" not in capsys.readouterr().err
    assert len(logging.getLogger(PKG_LOGGER_NAME).handlers) == 1
