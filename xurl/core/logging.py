"""Root logging configuration for the xurl CLI.

Library modules only create module-level loggers; the CLI calls
``configure_logging`` once at startup.
"""

import logging

NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Ensure HTTP client noise only surfaces at DEBUG level."""

    noisy_level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for logger_name in NOISY_HTTP_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Downgrade noisy third-party HTTP logs to DEBUG."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO:
            for prefix in self.prefixes:
                if record.name.startswith(prefix):
                    record.levelno = logging.DEBUG
                    record.levelname = logging.getLevelName(logging.DEBUG)
                    break
        return True


def configure_logging(log_level: str = "WARNING") -> logging.Logger:
    """Install a single stream handler on the root logger.

    Args:
        log_level: Level name; anything after the first word is ignored
            so values like ``"INFO  # comment"`` from .env files work.

    Returns:
        The configured root logger
    """
    level_name = log_level.split()[0].upper() if log_level.strip() else "WARNING"
    if level_name not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_name = "WARNING"

    handler = logging.StreamHandler()
    handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name))

    set_noisy_http_logger_levels(level_name)
    return root_logger


__all__ = [
    "NOISY_HTTP_LOGGERS",
    "HttpRequestLogDowngradeFilter",
    "configure_logging",
    "set_noisy_http_logger_levels",
]
