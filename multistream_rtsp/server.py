"""
RTSP Server
===========

Wires the mount-point registry and the connection tracker into a streaming
engine, binds the port and runs the engine's loop until a signal arrives.
"""

import signal
from typing import Callable, Dict, List, Optional

import click

from multistream_rtsp.config import ServerConfig
from multistream_rtsp.interfaces import MediaFactory, StreamingEngine
from multistream_rtsp.logging_utils import get_component_logger
from multistream_rtsp.registry import MountPointRegistry
from multistream_rtsp.tracker import ConnectionTracker

logger = get_component_logger(__name__, "server")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class BindError(RuntimeError):
    """Listening port could not be bound."""

    def __init__(self, port: int):
        super().__init__(f"Failed to attach the server on port {port}")
        self.port = port


class StreamServer:
    """
    Server facade.

    Responsibilities:
    - Bind one shared media factory per registered mount point
    - Register the ConnectionTracker as connection observer
    - Attach to the listening port (BindError on failure, no retry)
    - Run the engine loop until SIGINT/SIGTERM

    Args:
        config: ServerConfig instance
        registry: Fully built MountPointRegistry (read-only from here on)
        tracker: ConnectionTracker (a fresh one if omitted)
        engine: StreamingEngine (GstRtspEngine if omitted)
        echo: Console writer for banner lines (default: click.echo)

    Example:
        >>> registry = MountPointRegistry()
        >>> _ = registry.register("/cam1", "( videotestsrc ! x264enc ! rtph264pay name=pay0 )")
        >>> server = StreamServer(ServerConfig(), registry)
        >>> server.start()  # Blocks until Ctrl+C
    """

    def __init__(
        self,
        config: ServerConfig,
        registry: MountPointRegistry,
        tracker: Optional[ConnectionTracker] = None,
        engine: Optional[StreamingEngine] = None,
        echo: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.registry = registry
        self.tracker = tracker if tracker is not None else ConnectionTracker()
        self.engine = engine
        self._echo = echo if echo is not None else click.echo

        self.factories: Dict[str, MediaFactory] = {}
        self.is_running = False
        self._previous_handlers: Dict[int, object] = {}

    def start(self, install_signal_handlers: bool = True) -> None:
        """
        Bind everything and serve until stopped.

        Order:
        1. Connection observer (before any client can arrive)
        2. One factory per mount point
        3. Attach to the port
        4. Banner
        5. Blocking loop

        Raises:
            BindError: If the engine cannot bind config.listening_port
        """
        if self.engine is None:
            self.engine = self._default_engine()

        logger.info(
            f"Starting RTSP server with {len(self.registry)} streams",
            extra={
                "event": "server_start",
                "stream_count": len(self.registry),
                **self.config.to_status_dict(),
            },
        )

        if self.config.monitor_connections:
            self.engine.on_connection_established(self._on_connection_established)

        self._bind_mount_points()
        self._attach()
        self._print_banner()

        if install_signal_handlers:
            self._install_signal_handlers()

        self.is_running = True
        try:
            self.engine.run_blocking_loop()
        finally:
            self.is_running = False
            if install_signal_handlers:
                self._restore_signal_handlers()

        logger.info(
            "RTSP server stopped",
            extra={"event": "server_stopped", "connections": self.tracker.connection_count},
        )

    def stop(self) -> None:
        """Make start() return after the current loop iteration."""
        if self.engine is not None:
            self.engine.quit()

    def stream_urls(self) -> List[str]:
        """
        Client URL of every registered stream.

        Example:
            >>> server.stream_urls()
            ['rtsp://0.0.0.0:8554/cam1']
        """
        base = self.config.base_url.rstrip("/")
        return [f"{base}{mount_point}" for mount_point in self.registry.mount_points()]

    # ========================================================================
    # Private
    # ========================================================================

    def _default_engine(self) -> StreamingEngine:
        from multistream_rtsp.gstreamer import GstRtspEngine

        return GstRtspEngine(bind_address=self.config.bind_address)

    def _bind_mount_points(self) -> None:
        # Resolved once here; later clients reuse the shared factory.
        for mount_point in self.registry.mount_points():
            descriptor = self.registry.resolve(mount_point)

            factory = self.engine.new_factory(descriptor.pipeline_spec)
            factory.set_shared(descriptor.shared)
            self.engine.mount(mount_point, factory)
            self.factories[mount_point] = factory

            self._echo(f"Added stream: {mount_point}")
            logger.info(
                f"Mounted {mount_point}",
                extra={
                    "event": "stream_mounted",
                    "mount_point": mount_point,
                    "shared": descriptor.shared,
                },
            )

    def _attach(self) -> None:
        port = self.config.listening_port
        if not self.engine.attach(port):
            logger.error(
                f"Failed to bind port {port}",
                extra={"event": "bind_failed", "port": port},
            )
            raise BindError(port)

    def _print_banner(self) -> None:
        self._echo(f"\nRTSP server is listening on {self.config.base_url}")
        for url in self.stream_urls():
            self._echo(f"  {url}")
        if self.config.monitor_connections:
            self._echo("Connection monitoring enabled - will show client connections")
        self._echo("Press Ctrl+C to stop the server\n")

    def _on_connection_established(self, remote_address: Optional[str]) -> None:
        # Runs inside the engine's signal emission; errors stop here.
        try:
            self.tracker.on_connect(remote_address)
        except Exception as e:
            logger.error(
                "Connection observer failed",
                extra={
                    "event": "observer_failed",
                    "remote_address": remote_address,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )

    def _signal_handler(self, signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "shutdown_signal", "signal": signum},
        )
        self.stop()

    def _install_signal_handlers(self) -> None:
        for signum in SHUTDOWN_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._signal_handler)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
