"""Tests for core logging module."""

import logging
from io import StringIO

import pytest

from .lib import get_logger, setup_logging


class TestLogging:
    """Test core logging API."""

    @pytest.mark.unit
    def test_get_logger_namespaced(self) -> None:
        """Short names are placed under the paperkit namespace."""
        logger = get_logger("pipeline")
        assert logger.name == "paperkit.pipeline"
        assert isinstance(logger, logging.Logger)

    @pytest.mark.unit
    def test_get_logger_keeps_module_names(self) -> None:
        """Module names already under paperkit are unchanged."""
        assert get_logger("paperkit.client.lib").name == "paperkit.client.lib"

    @pytest.mark.unit
    def test_get_logger_default_name(self) -> None:
        """Verify default logger name."""
        assert get_logger().name == "paperkit"

    @pytest.mark.unit
    def test_setup_logging(self) -> None:
        """setup_logging leaves child logger levels untouched."""
        stream = StringIO()
        setup_logging(level=logging.DEBUG, stream=stream)
        logger = get_logger("test_setup")
        logger.debug("test message")

        # basicConfig is a no-op if logging was configured earlier
        assert logger.level == logging.NOTSET
