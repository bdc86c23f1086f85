"""Pydantic models for Open Killer."""

import sys
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Sentinel defaults for fields a tool could not supply
UNKNOWN_PID = "N/A"
UNKNOWN_ADDRESS = "N/A"
UNKNOWN_PROCESS = "Unknown"
SYSTEM_PROCESS = "System process"
DEFAULT_PROTOCOL = "TCP"

MAX_PORT = 65535


class Platform(str, Enum):
    """Host platform families with distinct tooling."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"

    @classmethod
    def from_tag(cls, tag: "str | Platform | None") -> "Platform":
        """Map a platform tag to a family. Unknown tags fall back to LINUX."""
        if isinstance(tag, Platform):
            return tag
        try:
            return cls(str(tag).strip().lower())
        except ValueError:
            return cls.LINUX


def detect_platform(system: str | None = None) -> Platform:
    """Detect the platform family from a ``sys.platform`` style identifier."""
    system = (system or sys.platform).lower()
    if system.startswith(("win32", "cygwin")):
        return Platform.WINDOWS
    if system.startswith("darwin"):
        return Platform.MACOS
    return Platform.LINUX


def parse_port(token: str) -> int | str:
    """Parse a port token, keeping non-numeric or out-of-range tokens as-is."""
    token = token.strip()
    if token.isascii() and token.isdigit() and int(token) <= MAX_PORT:
        return int(token)
    return token


def port_sort_key(port: int | str) -> int:
    """Numeric ordering key for a port. Opaque ports sort as 0."""
    return port if isinstance(port, int) else 0


class PortRecord(BaseModel):
    """A single listening socket and its owning process."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    port: int | str
    pid: str = UNKNOWN_PID
    protocol: str = DEFAULT_PROTOCOL
    address: str = UNKNOWN_ADDRESS
    process_name: str = UNKNOWN_PROCESS
    observed_at: datetime = Field(default_factory=datetime.now)

    @property
    def sort_key(self) -> int:
        return port_sort_key(self.port)

    @property
    def has_pid(self) -> bool:
        return self.pid != UNKNOWN_PID

    @property
    def has_name(self) -> bool:
        return self.process_name not in (UNKNOWN_PROCESS, SYSTEM_PROCESS)


class KillResult(BaseModel):
    """Outcome of a termination request."""
    success: bool
    message: str
