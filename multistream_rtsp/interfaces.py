"""
Interfaces for the Streaming Engine
===================================

Protocols describing what the server needs from the engine that actually
speaks RTSP and runs media pipelines.

Concrete implementation: GstRtspEngine (multistream_rtsp/gstreamer.py)
Test implementation: FakeEngine (tests/unit/fakes.py)
"""

from typing import Callable, Optional, Protocol

ConnectionObserver = Callable[[Optional[str]], object]
"""Called once per accepted client session with the client address (or None)."""


class MediaFactory(Protocol):
    """
    Produces the media for one mount point.

    Concrete implementation: GstRtspServer.RTSPMediaFactory
    """

    def set_shared(self, shared: bool) -> None:
        """
        Share one media instance between all clients of the mount point.

        Args:
            shared: True for one pipeline per mount point, False for one per client
        """
        ...


class StreamingEngine(Protocol):
    """
    RTSP service plus pipeline runtime.

    The engine interprets pipeline descriptions itself and only fails on a bad
    one when a client first requests that stream.
    """

    def new_factory(self, pipeline_spec: str) -> MediaFactory:
        """Create a factory that will launch pipeline_spec on demand."""
        ...

    def mount(self, mount_point: str, factory: MediaFactory) -> None:
        """Expose factory at mount_point."""
        ...

    def attach(self, port: int) -> bool:
        """
        Bind the listening socket.

        Returns:
            False if the port could not be bound
        """
        ...

    def on_connection_established(self, callback: ConnectionObserver) -> None:
        """Register callback for every new client session."""
        ...

    def run_blocking_loop(self) -> None:
        """Serve clients until quit() is called."""
        ...

    def quit(self) -> None:
        """Make run_blocking_loop() return."""
        ...
