"""Tests for logging configuration."""

import logging

from nutrisnap.app_logging import configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("nutrisnap")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging("debug")
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.level == logging.DEBUG


def test_formatter_appends_user_id() -> None:
    logger = logging.getLogger("nutrisnap")
    logger.handlers.clear()
    configure_logging()
    formatter = logger.handlers[0].formatter
    assert formatter is not None

    with_user = logging.LogRecord(
        "nutrisnap.services.tracker", logging.INFO, __file__, 1, "Loaded", None, None
    )
    with_user.user_id = "u1"
    without_user = logging.LogRecord(
        "nutrisnap.services.tracker", logging.INFO, __file__, 1, "Loaded", None, None
    )

    assert formatter.format(with_user).endswith("Loaded [user_id=u1]")
    assert formatter.format(without_user).endswith("Loaded")
