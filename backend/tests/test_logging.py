"""
Tests for loguru setup and stdlib interception.
"""

import logging

from loguru import logger

from tradecup.core.logging import INTERCEPTED, InterceptHandler, setup_logging


class TestSetupLogging:

    def test_routes_stdlib_records_to_log_file(self, tmp_path):
        try:
            setup_logging(log_level="DEBUG", log_dir=str(tmp_path))
            logging.getLogger("sqlalchemy.engine").warning("pool exhausted")
            logger.info("cycle finished")
        finally:
            logger.remove()

        content = (tmp_path / "ranking.log").read_text()
        assert "pool exhausted" in content
        assert "cycle finished" in content

    def test_library_loggers_are_intercepted(self, tmp_path):
        try:
            setup_logging(log_dir=str(tmp_path))
        finally:
            logger.remove()

        for name in INTERCEPTED:
            handlers = logging.getLogger(name).handlers
            assert len(handlers) == 1
            assert isinstance(handlers[0], InterceptHandler)
