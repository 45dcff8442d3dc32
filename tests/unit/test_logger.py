"""
Unit tests for logger utilities.

Tests ContextAwareLogger, GstinContextFilter and AzureQueueHandler.
"""

import json
import logging
import sys
from unittest.mock import Mock, patch

import pytest

from tax_gateway_core.context.company_context import company_context
from tax_gateway_core.utils.logger import (
    LOGGER_NAME,
    AzureQueueHandler,
    ContextAwareLogger,
    GstinContextFilter,
    configure_logging,
    get_logger,
)


def make_record(msg="Portal request failed", extra=None, exc_info=None):
    logger = logging.getLogger("test.record")
    return logger.makeRecord(
        "test.record", logging.WARNING, __file__, 10, msg, None, exc_info, func="execute", extra=extra
    )


class TestContextAwareLogger:
    def setup_method(self):
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_no_extras(self):
        self.context_logger.info("Gateway authentication successful")

        self.mock_logger.info.assert_called_once_with("Gateway authentication successful", extra={})

    def test_extras_appended_to_message(self):
        extra = {"endpoint": "/api/v1/gst/compliance/e-invoice", "attempt": 1}

        self.context_logger.warning("Portal request failed, retrying", extra=extra)

        self.mock_logger.warning.assert_called_once_with(
            "Portal request failed, retrying | endpoint=/api/v1/gst/compliance/e-invoice | attempt=1",
            extra=extra,
        )

    def test_passes_through_other_kwargs(self):
        self.context_logger.error("Failed", exc_info=True)

        self.mock_logger.error.assert_called_once_with("Failed", extra={}, exc_info=True)

    def test_set_level(self):
        self.context_logger.set_level(logging.DEBUG)

        self.mock_logger.setLevel.assert_called_once_with(logging.DEBUG)


class TestGstinContextFilter:
    def test_adds_current_gstin(self):
        record = make_record()

        with company_context("29ABCDE1234F1Z5"):
            assert GstinContextFilter().filter(record) is True

        assert record.gstin == "29ABCDE1234F1Z5"

    def test_no_company(self):
        record = make_record()

        GstinContextFilter().filter(record)

        assert not hasattr(record, "gstin")


class TestAzureQueueHandler:
    def test_build_entry_collects_context(self):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")
        record = make_record(extra={"endpoint": "/e-invoice", "attempt": 2})
        record.gstin = "29ABCDE1234F1Z5"

        entry = handler.build_entry(record)

        assert entry["level"] == "WARNING"
        assert entry["message"] == "Portal request failed"
        assert entry["function"] == "execute"
        assert entry["gstin"] == "29ABCDE1234F1Z5"
        assert entry["context"] == {"endpoint": "/e-invoice", "attempt": 2}

    def test_build_entry_with_exception(self):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = make_record(exc_info=sys.exc_info())

        entry = handler.build_entry(record)

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad payload"

    @patch("tax_gateway_core.utils.logger.QueueClient")
    def test_batches_until_full(self, mock_queue_client):
        client = mock_queue_client.from_connection_string.return_value
        handler = AzureQueueHandler(
            queue_name="logs-queue", connection_string="UseDevelopmentStorage=true", batch_size=2
        )

        handler.emit(make_record("first"))
        client.send_message.assert_not_called()

        handler.emit(make_record("second"))

        mock_queue_client.from_connection_string.assert_called_once_with(
            conn_str="UseDevelopmentStorage=true", queue_name="logs-queue"
        )
        assert client.send_message.call_count == 2
        sent = json.loads(client.send_message.call_args_list[0].args[0])
        assert sent["message"] == "first"
        assert handler.log_buffer == []

    @patch("tax_gateway_core.utils.logger.QueueClient")
    def test_close_flushes_remaining(self, mock_queue_client):
        client = mock_queue_client.from_connection_string.return_value
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true", batch_size=10)

        handler.emit(make_record("pending"))
        handler.close()

        client.send_message.assert_called_once()

    @patch("tax_gateway_core.utils.logger.QueueClient")
    def test_without_connection_string_nothing_sent(self, mock_queue_client, monkeypatch):
        monkeypatch.delenv("AzureWebJobsStorage", raising=False)
        handler = AzureQueueHandler(connection_string=None, batch_size=1)

        handler.emit(make_record())

        mock_queue_client.from_connection_string.assert_not_called()


class TestConfigureLogging:
    def teardown_method(self):
        logger = logging.getLogger(LOGGER_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

    def test_console_only(self):
        wrapped = configure_logging(log_level="DEBUG", enable_queue=False)

        logger = logging.getLogger(LOGGER_NAME)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert get_logger() is wrapped

    @patch("tax_gateway_core.utils.logger.QueueClient")
    def test_with_queue(self, mock_queue_client):
        configure_logging(
            log_level="INFO", enable_queue=True, queue_name="gateway-logs", connection_string="UseDevelopmentStorage=true"
        )

        handlers = logging.getLogger(LOGGER_NAME).handlers
        queue_handlers = [h for h in handlers if isinstance(h, AzureQueueHandler)]
        assert len(queue_handlers) == 1
        assert queue_handlers[0].queue_name == "gateway-logs"

    def test_reconfigure_replaces_handlers(self):
        configure_logging(log_level="INFO", enable_queue=False)
        configure_logging(log_level="INFO", enable_queue=False)

        assert len(logging.getLogger(LOGGER_NAME).handlers) == 1

    def test_get_logger_without_configuration(self):
        logger = get_logger()

        assert isinstance(logger, ContextAwareLogger)
        assert logger.logger.name == LOGGER_NAME
