"""
Mount-Point Registry
====================

Maps each mount point (e.g. "/cam1") to the descriptor of the stream served there.

The registry is built once at startup, before the engine's main loop runs, and
is only read afterwards. Every descriptor is shared: one media pipeline per
mount point feeds all of its concurrent viewers.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from multistream_rtsp.config import ConfigurationError
from multistream_rtsp.logging_utils import get_component_logger

logger = get_component_logger(__name__, "registry")

MOUNT_POINT_SEPARATOR = "/"


class MountPointError(ConfigurationError):
    """Mount point cannot be registered."""
    pass


class DuplicateMountPointError(MountPointError):
    """Mount point is already registered."""

    def __init__(self, mount_point: str):
        super().__init__(f"Mount point already registered: {mount_point}")
        self.mount_point = mount_point


class InvalidMountPointError(MountPointError):
    """Mount point does not start with a path separator."""

    def __init__(self, mount_point: str):
        super().__init__(
            f"Invalid mount point: {mount_point!r} (must start with '{MOUNT_POINT_SEPARATOR}')"
        )
        self.mount_point = mount_point


@dataclass(frozen=True)
class StreamDescriptor:
    """One addressable stream: where it is mounted and how it is produced"""

    mount_point: str
    """Path clients request, e.g. "/cam1" """

    pipeline_spec: str
    """Launch description handed verbatim to the streaming engine"""

    shared: bool = True
    """One media instance serves every concurrent viewer of this mount point"""


class MountPointRegistry:
    """
    Insertion-ordered table of StreamDescriptors keyed by mount point.

    Duplicate mount points are rejected: the first registration wins and the
    caller gets a DuplicateMountPointError.

    Example:
        >>> registry = MountPointRegistry()
        >>> _ = registry.register("/cam1", "( videotestsrc ! x264enc ! rtph264pay name=pay0 )")
        >>> registry.resolve("/cam1").shared
        True
        >>> registry.resolve("/missing") is None
        True
    """

    def __init__(self):
        self._descriptors: Dict[str, StreamDescriptor] = {}

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[StreamDescriptor]) -> "MountPointRegistry":
        """
        Build a registry from parsed descriptors, in order.

        Raises:
            DuplicateMountPointError: If two descriptors share a mount point
            InvalidMountPointError: If a mount point lacks the leading separator
        """
        registry = cls()
        for descriptor in descriptors:
            registry.register(descriptor.mount_point, descriptor.pipeline_spec)
        return registry

    def register(self, mount_point: str, pipeline_spec: str) -> StreamDescriptor:
        """
        Register a stream at mount_point.

        Args:
            mount_point: Path starting with "/"
            pipeline_spec: Opaque launch description

        Returns:
            The stored StreamDescriptor

        Raises:
            InvalidMountPointError: If mount_point does not start with "/"
            DuplicateMountPointError: If mount_point is already registered
        """
        if not mount_point.startswith(MOUNT_POINT_SEPARATOR):
            raise InvalidMountPointError(mount_point)

        if mount_point in self._descriptors:
            logger.warning(
                f"Rejected duplicate mount point {mount_point}",
                extra={"event": "duplicate_mount_point", "mount_point": mount_point},
            )
            raise DuplicateMountPointError(mount_point)

        descriptor = StreamDescriptor(mount_point=mount_point, pipeline_spec=pipeline_spec, shared=True)
        self._descriptors[mount_point] = descriptor

        logger.debug(
            f"Registered {mount_point}",
            extra={
                "event": "stream_registered",
                "mount_point": mount_point,
                "pipeline_spec": pipeline_spec,
            },
        )
        return descriptor

    def resolve(self, mount_point: str) -> Optional[StreamDescriptor]:
        """Descriptor for mount_point, None if nothing is mounted there."""
        return self._descriptors.get(mount_point)

    def mount_points(self) -> List[str]:
        """Registered mount points in registration order."""
        return list(self._descriptors)

    def __iter__(self) -> Iterator[StreamDescriptor]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, mount_point: object) -> bool:
        return mount_point in self._descriptors
