"""
Command Line Arguments
======================

Turns the raw argument list into a ServerConfig and ordered StreamDescriptors.

Only arity is checked here. Mount point syntax is enforced by the registry and
pipeline descriptions are left to the streaming engine, which reports broken
pipelines when a client first asks for that stream.
"""

from dataclasses import dataclass, field
from typing import Sequence, Tuple

from multistream_rtsp.config import DEFAULT_BIND_ADDRESS, ConfigurationError, ServerConfig
from multistream_rtsp.registry import StreamDescriptor

PORT_FLAG = "--port"

EXAMPLE_PIPELINE = '"( v4l2src device=/dev/video0 ! ... )"'


@dataclass(frozen=True)
class ParsedArguments:
    """Result of parsing the command line"""

    config: ServerConfig
    """Server settings (port taken from --port, default 8554)"""

    streams: Tuple[StreamDescriptor, ...] = field(default_factory=tuple)
    """Mount point / pipeline pairs in the order given"""


def usage(prog: str = "multistream-rtsp") -> str:
    """
    Usage text printed to stderr when the arguments are unusable.

    Example:
        >>> print(usage("srv").splitlines()[0])
        Usage: srv [--port <port>] [mount_point pipeline_description]...
    """
    return "\n".join(
        [
            f"Usage: {prog} [{PORT_FLAG} <port>] [mount_point pipeline_description]...",
            f"Example: {prog} /cam1 {EXAMPLE_PIPELINE}",
            f"Example: {prog} {PORT_FLAG} 8555 /cam1 {EXAMPLE_PIPELINE}",
        ]
    )


def parse_port(value: str) -> int:
    """
    Parse the value following --port.

    Raises:
        ConfigurationError: If value is not an integer in 1..65535
    """
    try:
        port = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid port: must be numeric, got {value!r}") from e

    if not (1 <= port <= 65535):
        raise ConfigurationError(f"Invalid port: {port} (must be 1-65535)")

    return port


def parse_arguments(
    argv: Sequence[str],
    bind_address: str = DEFAULT_BIND_ADDRESS,
    monitor_connections: bool = True,
) -> ParsedArguments:
    """
    Parse `[--port <port>] <mount_point> <pipeline_spec> [...]`.

    --port is only recognised as the very first token; anywhere else it is an
    ordinary mount point or pipeline token.

    Args:
        argv: Arguments without the program name
        bind_address: Passed through to ServerConfig
        monitor_connections: Passed through to ServerConfig

    Returns:
        ParsedArguments with the config and descriptors in argument order

    Raises:
        ConfigurationError: Missing port value, bad port, zero pairs or an
            unpaired trailing token

    Examples:
        >>> parsed = parse_arguments(["--port", "9000", "/a", "spec1", "/b", "spec2"])
        >>> parsed.config.listening_port
        9000
        >>> [s.mount_point for s in parsed.streams]
        ['/a', '/b']
    """
    tokens = list(argv)
    config_kwargs = {
        "bind_address": bind_address,
        "monitor_connections": monitor_connections,
    }

    if tokens and tokens[0] == PORT_FLAG:
        if len(tokens) < 2:
            raise ConfigurationError(f"Missing value for {PORT_FLAG}")
        config_kwargs["listening_port"] = parse_port(tokens[1])
        pairs = tokens[2:]
    else:
        pairs = tokens

    if not pairs:
        raise ConfigurationError("At least one mount_point pipeline_description pair is required")

    if len(pairs) % 2 != 0:
        raise ConfigurationError(
            f"Mount point {pairs[-1]!r} has no pipeline description "
            f"(got {len(pairs)} stream arguments, expected pairs)"
        )

    streams = tuple(
        StreamDescriptor(mount_point=pairs[i], pipeline_spec=pairs[i + 1])
        for i in range(0, len(pairs), 2)
    )

    return ParsedArguments(config=ServerConfig(**config_kwargs), streams=streams)
