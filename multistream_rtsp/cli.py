"""
CLI entry point for multistream-rtsp
"""

import os
import sys

import click

from multistream_rtsp.arguments import parse_arguments, usage
from multistream_rtsp.config import DEFAULT_BIND_ADDRESS, ConfigurationError
from multistream_rtsp.logging_utils import get_component_logger, setup_structured_logging
from multistream_rtsp.registry import MountPointError, MountPointRegistry
from multistream_rtsp.server import BindError, StreamServer

logger = get_component_logger(__name__, "cli")

EXIT_FAILURE = -1


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


def _fail(message: str, show_usage: bool = False, prog: str = "multistream-rtsp") -> None:
    click.echo(message, err=True)
    if show_usage:
        click.echo(usage(prog), err=True)
    sys.exit(EXIT_FAILURE)


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def main(ctx, args):
    """
    Serve GStreamer pipelines over RTSP, one mount point per pipeline.

    \b
    ARGS: [--port <port>] <mount_point> <pipeline_spec> [<mount_point> <pipeline_spec> ...]

    \b
    Environment:
      LOG_LEVEL            DEBUG, INFO (default), WARNING, ERROR
      JSON_LOGS            "true" for JSON log records
      LOG_FILE             write logs to a rotated file instead of stderr
      MONITOR_CONNECTIONS  "false" to disable the connection log
      RTSP_BIND_ADDRESS    listening address (default 0.0.0.0)
    """
    prog = ctx.command_path

    try:
        setup_structured_logging(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_format=_env_flag("JSON_LOGS", False),
            output_file=os.getenv("LOG_FILE") or None,
        )
    except ValueError as e:
        _fail(f"Error: {e}", prog=prog)

    try:
        parsed = parse_arguments(
            args,
            bind_address=os.getenv("RTSP_BIND_ADDRESS", DEFAULT_BIND_ADDRESS),
            monitor_connections=_env_flag("MONITOR_CONNECTIONS", True),
        )
        registry = MountPointRegistry.from_descriptors(parsed.streams)
    except MountPointError as e:
        logger.error(str(e), extra={"event": "invalid_mount_point"})
        _fail(f"Error: {e}", prog=prog)
    except ConfigurationError as e:
        logger.error(str(e), extra={"event": "invalid_arguments"})
        _fail(f"Error: {e}", show_usage=True, prog=prog)

    server = StreamServer(parsed.config, registry)

    try:
        server.start()
    except BindError as e:
        _fail(str(e), prog=prog)
    except ImportError as e:
        logger.error(str(e), extra={"event": "engine_unavailable"})
        _fail(f"Error: {e}", prog=prog)
    except KeyboardInterrupt:
        server.stop()

    sys.exit(0)


if __name__ == "__main__":
    main()
