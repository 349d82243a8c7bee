"""Logging configuration helpers."""

import logging


class _UserContextFormatter(logging.Formatter):
    """Appends the ``user_id`` passed via ``extra`` when a record carries one."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        user_id = getattr(record, "user_id", None)
        if user_id is None:
            return message
        return f"{message} [user_id={user_id}]"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure the nutrisnap logger with a single stream handler."""
    logger = logging.getLogger("nutrisnap")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        _UserContextFormatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
