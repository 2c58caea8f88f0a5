"""
Logging setup for applications embedding trackersync.

Library modules only create loggers; handlers are the embedding
application's choice. configure_logging() is a convenience for scripts.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(debug: bool = False) -> None:
    """
    Configure stderr logging for trackersync.

    Args:
        debug: If True, enable DEBUG level logging (retries, timer arming,
            data-state summaries)
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("trackersync").setLevel(level)
