"""
Unit tests for logging setup.
"""

import logging
from contextlib import contextmanager

from trackersync.log import LOG_FORMAT, configure_logging


@contextmanager
def bare_root_logger():
    """Temporarily strip root handlers so basicConfig installs its own."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    root_level = root.level
    package_logger = logging.getLogger("trackersync")
    package_level = package_logger.level
    root.handlers.clear()
    try:
        yield root
    finally:
        root.handlers[:] = handlers
        root.setLevel(root_level)
        package_logger.setLevel(package_level)


class TestConfigureLogging:
    def test_info_by_default(self):
        with bare_root_logger():
            configure_logging()
            assert logging.getLogger("trackersync").level == logging.INFO

    def test_debug(self):
        with bare_root_logger():
            configure_logging(debug=True)
            assert logging.getLogger("trackersync").level == logging.DEBUG

    def test_installs_formatted_handler(self):
        with bare_root_logger() as root:
            configure_logging()
            assert len(root.handlers) == 1
            assert root.handlers[0].formatter._fmt == LOG_FORMAT

    def test_module_loggers_inherit_level(self):
        with bare_root_logger():
            configure_logging(debug=True)
            child = logging.getLogger("trackersync.core.sync.orchestrator")
            assert child.getEffectiveLevel() == logging.DEBUG
