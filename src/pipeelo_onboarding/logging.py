"""
Logging setup for the onboarding service.

Configures the root logger once. Modules log through
logging.getLogger(__name__) and pass context via `extra`.
"""

import logging
import sys

from pipeelo_onboarding.settings import get_settings

_configured = False


def setup_logging(level: str | None = None) -> None:
    """
    Configure root logging from settings.

    Safe to call multiple times; only the first call installs a handler.

    Args:
        level: Optional level name overriding LOG_LEVEL
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel((level or settings.LOG_LEVEL).upper())

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
