"""
Logging bootstrap.

Modules only ever call logging.getLogger(__name__); the host app calls
configure_logging() once at startup.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the client.

    Args:
        level: Level name (e.g. "DEBUG"); defaults to settings.LOG_LEVEL
    """
    if level is None:
        from baraya.core.settings import settings
        level = settings.LOG_LEVEL

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
