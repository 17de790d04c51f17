"""
Logging setup for Puzzle Craft.

Configures the root logger once per process. Modules log through
logging.getLogger(__name__); request handlers may also use current_app.logger.
"""
import logging
import os
import sys

LOG_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ('httpx', 'httpcore', 'botocore', 'boto3', 's3transfer', 'urllib3')

_configured = False


def setup_logging(level: str = None) -> None:
    """
    Configure root logging with a single stream handler.

    Args:
        level: Log level name; defaults to the LOG_LEVEL env var or INFO
    """
    global _configured
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)
