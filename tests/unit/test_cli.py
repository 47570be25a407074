"""
Unit tests for the CLI entry point

Runs the click command with CliRunner and a FakeEngine in place of GStreamer.
"""

import pytest
from click.testing import CliRunner

from multistream_rtsp import cli
from multistream_rtsp.server import StreamServer

from fakes import FakeEngine


@pytest.fixture
def engine(monkeypatch):
    fake = FakeEngine()
    monkeypatch.setattr(StreamServer, "_default_engine", lambda self: fake)
    monkeypatch.setattr(cli, "setup_structured_logging", lambda **kwargs: None)
    monkeypatch.delenv("MONITOR_CONNECTIONS", raising=False)
    monkeypatch.delenv("RTSP_BIND_ADDRESS", raising=False)
    return fake


def test_serves_streams_and_exits_zero(engine):
    result = CliRunner().invoke(cli.main, ["--port", "9000", "/a", "spec1", "/b", "spec2"])

    assert result.exit_code == 0
    assert engine.attached_port == 9000
    assert set(engine.mounts) == {"/a", "/b"}
    assert "Added stream: /a" in result.output
    assert "Added stream: /b" in result.output
    assert "rtsp://0.0.0.0:9000/" in result.output


def test_default_port(engine):
    result = CliRunner().invoke(cli.main, ["/cam1", "( videotestsrc ! x264enc ! rtph264pay name=pay0 )"])

    assert result.exit_code == 0
    assert engine.attached_port == 8554
    assert list(engine.mounts) == ["/cam1"]


def test_pipeline_tokens_starting_with_dash_pass_through(engine):
    result = CliRunner().invoke(cli.main, ["/cam1", "-v"])

    assert result.exit_code == 0
    assert engine.mounts["/cam1"].pipeline_spec == "-v"


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["/a"],
        ["/a", "spec", "/b"],
        ["--port"],
        ["--port", "9000"],
        ["--port", "nope", "/a", "spec"],
    ],
)
def test_bad_arguments_print_usage_and_fail(engine, argv):
    result = CliRunner().invoke(cli.main, argv)

    assert result.exit_code == -1
    assert "Usage:" in result.output
    assert engine.calls == []


def test_duplicate_mount_point_fails(engine):
    result = CliRunner().invoke(cli.main, ["/a", "spec1", "/a", "spec2"])

    assert result.exit_code == -1
    assert "Mount point already registered: /a" in result.output
    assert engine.mounts == {}


def test_bind_failure_fails(engine):
    engine.attach_succeeds = False

    result = CliRunner().invoke(cli.main, ["/a", "spec"])

    assert result.exit_code == -1
    assert "Failed to attach the server" in result.output
    assert engine.loop_runs == 0


def test_monitoring_can_be_disabled_from_env(engine, monkeypatch):
    monkeypatch.setenv("MONITOR_CONNECTIONS", "false")

    result = CliRunner().invoke(cli.main, ["/a", "spec"])

    assert result.exit_code == 0
    assert engine.observers == []


def test_bind_address_from_env(engine, monkeypatch):
    monkeypatch.setenv("RTSP_BIND_ADDRESS", "127.0.0.1")

    result = CliRunner().invoke(cli.main, ["/a", "spec"])

    assert result.exit_code == 0
    assert "rtsp://127.0.0.1:8554/" in result.output


def test_unknown_log_level_fails(engine, monkeypatch):
    from multistream_rtsp.logging_utils import setup_structured_logging

    monkeypatch.setattr(cli, "setup_structured_logging", setup_structured_logging)
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    result = CliRunner().invoke(cli.main, ["/a", "spec"])

    assert result.exit_code == -1
    assert "Unknown log level: 'verbose'" in result.output
    assert engine.calls == []
