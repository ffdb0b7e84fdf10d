"""
Logging setup.

Every module logs through logging.getLogger(__name__). The runtime calls
configure_logging() once at startup; later calls are no-ops unless
`force` is set.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_CONFIGURED = False


def configure_logging(level: Optional[str] = None, force: bool = False) -> None:
    """Configure process-wide logging once."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    logging.basicConfig(
        level=(level or "INFO").upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=force,
    )
    _CONFIGURED = True

