"""Tests for logging configuration."""

import os
from unittest.mock import MagicMock, patch

import structlog

from exposecontroller.logging_config import (
    COMPONENT,
    bind_component,
    get_logger,
    log_k8s_operation,
    log_reconcile_event,
    setup_logging,
)


class TestLoggingConfig:
    """Tests for logging configuration."""

    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_setup_logging_default(self):
        """Test default logging setup."""
        with patch.dict(os.environ, {}, clear=True):
            setup_logging()

            logger = get_logger("test")
            assert hasattr(logger, 'info')
            assert hasattr(logger, 'debug')
            assert hasattr(logger, 'error')

    def test_setup_logging_verbose(self):
        """Test verbose logging setup."""
        with patch.dict(os.environ, {}, clear=True):
            setup_logging(verbose=True)

            logger = get_logger("test")
            logger.debug("Test debug message")

    def test_setup_logging_env_var(self):
        """Test logging setup with LOG_LEVEL environment variable."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            setup_logging()

            logger = get_logger("test")
            logger.warning("Test warning message")

    def test_json_format_env_var(self):
        """Test JSON format with LOG_FORMAT environment variable."""
        with patch.dict(os.environ, {"LOG_FORMAT": "json"}):
            setup_logging()
            logger = get_logger("test")
            logger.info("Test message", key="value")

    def test_invalid_log_level_defaults_to_info(self):
        """Test that invalid LOG_LEVEL defaults to INFO."""
        with patch.dict(os.environ, {"LOG_LEVEL": "INVALID"}):
            setup_logging()
            logger = get_logger("test")
            logger.info("Test message with invalid log level")

    def test_component_bound_once(self):
        """Test that setup binds the component identity process-wide."""
        setup_logging()
        assert structlog.contextvars.get_contextvars()["component"] == COMPONENT

    def test_bind_custom_component(self):
        """Test binding a different component identity."""
        bind_component("other-controller")
        assert structlog.contextvars.get_contextvars()["component"] == "other-controller"


class TestLogHelpers:
    """Tests for structured log helpers."""

    def test_log_k8s_operation(self):
        """Test Kubernetes operations are logged at debug."""
        logger = MagicMock()
        log_k8s_operation(logger, "delete_ingress", "ns1/svc1", host="x")
        logger.debug.assert_called_once_with(
            "Kubernetes operation", operation="delete_ingress", key="ns1/svc1", host="x"
        )

    def test_log_reconcile_event(self):
        """Test reconcile events are logged at info."""
        logger = MagicMock()
        log_reconcile_event(logger, "exposed", key="ns1/svc1")
        logger.info.assert_called_once_with("Reconcile event", event_type="exposed", key="ns1/svc1")
