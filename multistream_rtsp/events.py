"""
Connection Event Schema
=======================

Pydantic model for one accepted client session.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
UNKNOWN_ADDRESS = "unknown"
SEPARATOR_LINE = "-" * 40


class ConnectionEvent(BaseModel):
    """Client connection accepted by the server"""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "sequence": 3,
                "timestamp": "2025-10-25T10:30:00",
                "remote_address": "203.0.113.5",
            }
        },
    )

    sequence: int = Field(ge=1, description="Connection number since process start (1-based)")
    timestamp: datetime = Field(description="Local wall-clock time the session was established")
    remote_address: str = Field(default=UNKNOWN_ADDRESS, description="Client IP address")

    @property
    def formatted_timestamp(self) -> str:
        """Timestamp as YYYY-MM-DD HH:MM:SS."""
        return self.timestamp.strftime(TIMESTAMP_FORMAT)

    def render_lines(self) -> List[str]:
        """
        Console block for this connection.

        Example:
            >>> event = ConnectionEvent(sequence=3, timestamp=datetime(2025, 1, 2, 3, 4, 5),
            ...                         remote_address="203.0.113.5")
            >>> event.render_lines()[1]
            '[2025-01-02 03:04:05] NEW CONNECTION #3'
        """
        return [
            "",
            f"[{self.formatted_timestamp}] NEW CONNECTION #{self.sequence}",
            f"  Client IP: {self.remote_address}",
            "  Connection established",
            SEPARATOR_LINE,
        ]

    def render(self) -> str:
        return "\n".join(self.render_lines())


def normalize_address(remote_address) -> str:
    """Client address as text, "unknown" when missing or blank."""
    if remote_address is None:
        return UNKNOWN_ADDRESS
    text = str(remote_address).strip()
    return text or UNKNOWN_ADDRESS
