"""
GStreamer RTSP Engine
=====================

StreamingEngine implementation on top of gst-rtsp-server (PyGObject bindings).

gi is imported lazily so the rest of the package (parsing, registry, tracker)
works and is testable on machines without GStreamer.
"""

from typing import Optional, Set

from multistream_rtsp.interfaces import ConnectionObserver
from multistream_rtsp.logging_utils import get_component_logger

logger = get_component_logger(__name__, "gstreamer")


def _load_gi():
    try:
        import gi

        gi.require_version("Gst", "1.0")
        gi.require_version("GstRtspServer", "1.0")
        from gi.repository import GLib, Gst, GstRtspServer
    except (ImportError, ValueError) as e:
        raise ImportError(
            "GStreamer RTSP server bindings not found. Install PyGObject and "
            f"gst-rtsp-server (gir1.2-gst-rtsp-server-1.0): {e}"
        ) from e

    Gst.init(None)
    return GLib, Gst, GstRtspServer


class GstRtspEngine:
    """
    RTSP service backed by GstRtspServer.RTSPServer and a GLib main loop.

    Each mount point gets its own RTSPMediaFactory, so a pipeline that fails to
    prepare only affects clients of that mount point.

    Args:
        bind_address: Address for the listening socket (default: all interfaces)

    Usage:
        >>> engine = GstRtspEngine()
        >>> factory = engine.new_factory("( videotestsrc ! x264enc ! rtph264pay name=pay0 )")
        >>> factory.set_shared(True)
        >>> engine.mount("/test", factory)
        >>> engine.attach(8554)
        True
        >>> engine.run_blocking_loop()  # Blocks until quit()
    """

    def __init__(self, bind_address: Optional[str] = None):
        self._GLib, self._Gst, self._GstRtspServer = _load_gi()

        self.server = self._GstRtspServer.RTSPServer.new()
        if bind_address:
            self.server.set_address(bind_address)

        self.loop = self._GLib.MainLoop()
        self._source_id: Optional[int] = None
        self._failed_media: Set[int] = set()

    def new_factory(self, pipeline_spec: str):
        factory = self._GstRtspServer.RTSPMediaFactory.new()
        factory.set_launch(pipeline_spec)
        return factory

    def mount(self, mount_point: str, factory) -> None:
        factory.connect("media-configure", self._on_media_configure, mount_point)

        mounts = self.server.get_mount_points()
        mounts.add_factory(mount_point, factory)

    def attach(self, port: int) -> bool:
        self.server.set_service(str(port))
        source_id = self.server.attach(None)
        if source_id == 0:
            return False

        self._source_id = source_id
        logger.info(
            f"RTSP service attached on port {port}",
            extra={"event": "server_attached", "port": port},
        )
        return True

    def on_connection_established(self, callback: ConnectionObserver) -> None:
        def _on_client_connected(server, client):
            callback(self._client_address(client))

        self.server.connect("client-connected", _on_client_connected)

    def run_blocking_loop(self) -> None:
        self.loop.run()

    def quit(self) -> None:
        if self.loop.is_running():
            self.loop.quit()

    # ========================================================================
    # Private: signal handlers
    # ========================================================================

    @staticmethod
    def _client_address(client) -> Optional[str]:
        connection = client.get_connection()
        if connection is None:
            return None
        return connection.get_ip()

    def _on_media_configure(self, factory, media, mount_point: str):
        # Fires when a pipeline is instantiated; for shared factories this is
        # once per mount point while at least one client is attached.
        logger.info(
            f"Media instantiated for {mount_point}",
            extra={
                "event": "media_configured",
                "mount_point": mount_point,
                "shared": factory.is_shared(),
            },
        )
        media.connect("new-state", self._on_media_new_state, mount_point)
        media.connect("unprepared", self._on_media_unprepared, mount_point)

    def _on_media_new_state(self, media, state, mount_point: str):
        if self._media_failed(media):
            self._report_media_error(media, mount_point, state=state)

    def _on_media_unprepared(self, media, mount_point: str):
        # A pipeline that fails to preroll goes straight to unprepared
        if self._media_failed(media):
            self._report_media_error(media, mount_point)
        self._failed_media.discard(id(media))

        logger.info(
            f"Media released for {mount_point}",
            extra={"event": "media_unprepared", "mount_point": mount_point},
        )

    def _media_failed(self, media) -> bool:
        return media.get_status() == self._GstRtspServer.RTSPMediaStatus.ERROR

    def _report_media_error(self, media, mount_point: str, state=None):
        if id(media) in self._failed_media:
            return
        self._failed_media.add(id(media))

        logger.error(
            f"Media error on {mount_point}",
            extra={
                "event": "media_error",
                "mount_point": mount_point,
                "state": str(state) if state is not None else None,
            },
        )
