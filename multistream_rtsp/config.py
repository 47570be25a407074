"""
Server Configuration
====================

Immutable configuration for the RTSP server.
"""

from dataclasses import dataclass

DEFAULT_PORT = 8554
DEFAULT_BIND_ADDRESS = "0.0.0.0"


class ConfigurationError(ValueError):
    """Invalid command line or server configuration."""
    pass


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the multi-stream RTSP server"""

    listening_port: int = DEFAULT_PORT
    """TCP port the RTSP service listens on (1-65535)"""

    bind_address: str = DEFAULT_BIND_ADDRESS
    """Address the RTSP service binds to"""

    monitor_connections: bool = True
    """Log every client connection through the ConnectionTracker"""

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If any validation fails
        """
        if isinstance(self.listening_port, bool) or not isinstance(self.listening_port, int):
            raise ConfigurationError(
                f"listening_port must be int, got {type(self.listening_port).__name__}"
            )

        if not (1 <= self.listening_port <= 65535):
            raise ConfigurationError(f"Invalid port: {self.listening_port} (must be 1-65535)")

        if not self.bind_address or not self.bind_address.strip():
            raise ConfigurationError("bind_address cannot be empty")

    @property
    def base_url(self) -> str:
        """
        Root URL clients use to reach the server.

        Example:
            >>> ServerConfig(listening_port=8555).base_url
            'rtsp://0.0.0.0:8555/'
        """
        return f"rtsp://{self.bind_address}:{self.listening_port}/"

    def to_status_dict(self) -> dict:
        """Serialize config for startup logging."""
        return {
            "listening_port": self.listening_port,
            "bind_address": self.bind_address,
            "monitor_connections": self.monitor_connections,
        }
