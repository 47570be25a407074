"""
Multistream RTSP - Multi-Stream RTSP Server
===========================================

Serves several GStreamer pipelines over RTSP, one shared stream per mount point,
and logs every client connection.

Usage:
    from multistream_rtsp import MountPointRegistry, ServerConfig, StreamServer

    registry = MountPointRegistry()
    registry.register("/cam1", "( v4l2src device=/dev/video0 ! ... )")

    server = StreamServer(ServerConfig(listening_port=8554), registry)
    server.start()  # Blocks until Ctrl+C
"""

from multistream_rtsp.arguments import ParsedArguments, parse_arguments
from multistream_rtsp.config import ConfigurationError, ServerConfig
from multistream_rtsp.events import ConnectionEvent
from multistream_rtsp.registry import (
    DuplicateMountPointError,
    InvalidMountPointError,
    MountPointError,
    MountPointRegistry,
    StreamDescriptor,
)
from multistream_rtsp.server import BindError, StreamServer
from multistream_rtsp.tracker import ConnectionCounter, ConnectionTracker

__version__ = "0.1.0"


# GstRtspEngine needs PyGObject + gst-rtsp-server; only import it on demand
def __getattr__(name):
    if name == "GstRtspEngine":
        from multistream_rtsp.gstreamer import GstRtspEngine
        return GstRtspEngine
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "BindError",
    "ConfigurationError",
    "ConnectionCounter",
    "ConnectionEvent",
    "ConnectionTracker",
    "DuplicateMountPointError",
    "GstRtspEngine",
    "InvalidMountPointError",
    "MountPointError",
    "MountPointRegistry",
    "ParsedArguments",
    "ServerConfig",
    "StreamDescriptor",
    "StreamServer",
    "parse_arguments",
]
