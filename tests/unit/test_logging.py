"""Tests for logging configuration and behavior."""

import logging

from ksengine import Simulation
from ksengine.logging import DEEP_DEBUG, KsLogger, getLogger, level_value


class TestKsLogger:
    """Test custom KsLogger functionality."""

    def test_logger_has_deep_method(self):
        """KsLogger should have a deep() method."""
        logger = getLogger("test")
        assert isinstance(logger, KsLogger)
        assert callable(logger.deep)

    def test_deep_level_exists(self):
        """DEEP_DEBUG level should be registered."""
        assert DEEP_DEBUG == 5
        assert logging.getLevelName(DEEP_DEBUG) == "DEEP"

    def test_deep_logging_when_enabled(self, caplog):
        """deep() should log when level is DEEP_DEBUG."""
        logger = getLogger("test.deep")
        logger.setLevel(DEEP_DEBUG)

        with caplog.at_level(DEEP_DEBUG, logger="test.deep"):
            logger.deep("Deep debug message")

        assert "Deep debug message" in caplog.text

    def test_deep_logging_when_disabled(self, caplog):
        """deep() should not log when level is INFO."""
        logger = getLogger("test.deep_disabled")
        logger.setLevel(logging.INFO)

        with caplog.at_level(logging.INFO, logger="test.deep_disabled"):
            logger.deep("Should not appear")

        assert "Should not appear" not in caplog.text

    def test_level_value(self):
        assert level_value("DEEP_DEBUG") == DEEP_DEBUG
        assert level_value("WARNING") == logging.WARNING


class TestLoggingConfiguration:
    """Test logging configuration via Simulation.init()."""

    def test_default_log_level(self):
        """Default log level should be INFO."""
        Simulation.init(n_firms=10, n_banks=2, seed=42)
        assert logging.getLogger("ksengine").level == logging.INFO

    def test_set_default_level_debug(self):
        Simulation.init(logging={"default_level": "DEBUG"})
        assert logging.getLogger("ksengine").level == logging.DEBUG

    def test_per_check_levels(self):
        Simulation.init(
            logging={"default_level": "WARNING", "checks": {"testSFC": "DEEP_DEBUG"}}
        )
        assert logging.getLogger("ksengine").level == logging.WARNING
        assert logging.getLogger("ksengine.checks.testSFC").level == DEEP_DEBUG
        logging.getLogger("ksengine.checks.testSFC").setLevel(logging.NOTSET)

    def test_engine_traces_evaluations_at_deep_level(self, caplog):
        sim = Simulation.init(n_firms=4, n_banks=1, seed=1)
        with caplog.at_level(DEEP_DEBUG, logger="ksengine.core.engine"):
            sim.step()
        assert "eval Country[1].G" in caplog.text
