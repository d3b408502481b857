import logging
import sys

from app.utils.logging_redaction import install_redaction_filter

_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler")


def setup_logging(level: str = "INFO") -> None:
    """
    Configure centralized application logging.

    Installs the secret-redaction filter on the root logger and quiets
    chatty third-party loggers (one line per HTTP call / scheduled job).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    install_redaction_filter()
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve a namespaced logger.
    """
    return logging.getLogger(name)
