"""
Unit tests for structured logging helpers
"""

import json
import logging

import pytest

from multistream_rtsp.logging_utils import (
    get_component_logger,
    get_trace_id,
    setup_structured_logging,
    trace_context,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestTraceContext:
    def test_trace_id_bound_inside_block_only(self):
        assert get_trace_id() is None

        with trace_context("conn-7") as trace_id:
            assert trace_id == "conn-7"
            assert get_trace_id() == "conn-7"

        assert get_trace_id() is None

    def test_generated_trace_id(self):
        with trace_context() as trace_id:
            assert trace_id.startswith("trace-")


class TestComponentLogger:
    def test_adds_component_and_trace_id(self, caplog):
        logger = get_component_logger("multistream_rtsp.test", "tracker")

        with caplog.at_level(logging.INFO, logger="multistream_rtsp.test"):
            with trace_context("conn-1"):
                logger.info("Client connected", extra={"event": "client_connected"})

        record = caplog.records[-1]
        assert record.component == "tracker"
        assert record.trace_id == "conn-1"
        assert record.event == "client_connected"

    def test_caller_extra_overrides_component(self, caplog):
        logger = get_component_logger("multistream_rtsp.test", "tracker")

        with caplog.at_level(logging.INFO, logger="multistream_rtsp.test"):
            logger.info("x", extra={"component": "other"})

        assert caplog.records[-1].component == "other"


class TestSetupStructuredLogging:
    def test_json_records_to_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "server.log"
        setup_structured_logging(level="INFO", json_format=True, output_file=str(log_file))

        logger = get_component_logger("multistream_rtsp.server", "server")
        with trace_context("conn-2"):
            logger.info("Mounted /cam1", extra={"event": "stream_mounted", "mount_point": "/cam1"})

        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert record["message"] == "Mounted /cam1"
        assert record["level"] == "INFO"
        assert record["logger"] == "multistream_rtsp.server"
        assert record["component"] == "server"
        assert record["event"] == "stream_mounted"
        assert record["trace_id"] == "conn-2"

    def test_human_readable_line(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "server.log"
        setup_structured_logging(level="DEBUG", json_format=False, output_file=str(log_file))

        logging.getLogger("multistream_rtsp.registry").debug("plain record")

        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert "| DEBUG    |" in line
        assert "registry" in line
        assert line.endswith("plain record")

    def test_unknown_level_raises_error(self, restore_root_logger):
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_structured_logging(level="LOUD")
