"""
Connection Tracker
==================

Counts client connections and prints one block per accepted session.

The streaming engine calls on_connect from whichever thread accepted the
client, so increment, timestamp capture and output happen under a single lock:
sequence numbers stay unique and gapless, and blocks never interleave.
Disconnects are not tracked.
"""

import threading
from datetime import datetime
from typing import Callable, Optional

import click

from multistream_rtsp.events import ConnectionEvent, normalize_address
from multistream_rtsp.logging_utils import get_component_logger, trace_context

logger = get_component_logger(__name__, "tracker")


class ConnectionCounter:
    """
    Process-wide connection counter.

    Monotonic, starts at zero, never reset or decremented. The only way to
    change it is increment(), which returns the new value atomically.

    Example:
        >>> counter = ConnectionCounter()
        >>> counter.increment(), counter.increment()
        (1, 2)
        >>> counter.value
        2
    """

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one and return the new value."""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        """Connections counted so far."""
        with self._lock:
            return self._value


class ConnectionTracker:
    """
    Connection-established observer.

    Args:
        counter: Shared ConnectionCounter (a fresh one if omitted)
        writer: Callable receiving each rendered block (default: click.echo to stdout)
        clock: Returns the current local time (default: datetime.now)

    Usage:
        >>> lines = []
        >>> tracker = ConnectionTracker(writer=lines.append)
        >>> tracker.on_connect("203.0.113.5").sequence
        1
    """

    def __init__(
        self,
        counter: Optional[ConnectionCounter] = None,
        writer: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.counter = counter if counter is not None else ConnectionCounter()
        self._writer = writer if writer is not None else click.echo
        self._clock = clock if clock is not None else datetime.now
        self._emit_lock = threading.Lock()

    def on_connect(self, remote_address: Optional[str]) -> ConnectionEvent:
        """
        Record one accepted client session.

        Args:
            remote_address: Client IP, or None when the engine could not tell

        Returns:
            The ConnectionEvent that was written
        """
        address = normalize_address(remote_address)

        with self._emit_lock:
            sequence = self.counter.increment()
            event = ConnectionEvent(
                sequence=sequence,
                timestamp=self._clock(),
                remote_address=address,
            )

            with trace_context(f"conn-{sequence}"):
                self._writer(event.render())
                logger.info(
                    f"Client {address} connected",
                    extra={
                        "event": "client_connected",
                        "sequence": sequence,
                        "remote_address": address,
                        "connected_at": event.formatted_timestamp,
                    },
                )

        return event

    @property
    def connection_count(self) -> int:
        return self.counter.value
