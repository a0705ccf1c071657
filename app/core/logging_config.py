import logging
import sys
from typing import Optional

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> None:
    """
    Configure the root logger once with a console handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        log_format: Custom format string; defaults to DEFAULT_LOG_FORMAT
    """
    global _configured
    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # SQL echo is controlled by the engine, not the app log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
