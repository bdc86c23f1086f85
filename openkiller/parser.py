"""Parsers for listening-socket tool output.

Each platform family has one line grammar: a pure function that takes a
single line of tool output and returns a ``PortRecord`` or ``None`` when the
line does not have the expected shape.

Windows (``netstat -ano | findstr LISTENING``)::

    TCP    0.0.0.0:3000    0.0.0.0:0    LISTENING    1234

macOS (``lsof -iTCP -sTCP:LISTEN -n -P``)::

    node  1234 user 20u IPv4 0x1a2b 0t0 TCP *:3000 (LISTEN)

Linux (``ss -tlnp``, ``ss -tulnp`` or ``netstat -tlnp``)::

    LISTEN 0 128 0.0.0.0:3000 0.0.0.0:* users:(("node",pid=4821,fd=20))
    tcp LISTEN 0 128 0.0.0.0:3000 0.0.0.0:* users:(("node",pid=4821,fd=20))
    tcp 0 0 0.0.0.0:22 0.0.0.0:* LISTEN 812/sshd
"""

import logging
import re
from datetime import datetime
from typing import Callable

from openkiller.models import (
    DEFAULT_PROTOCOL,
    SYSTEM_PROCESS,
    UNKNOWN_PID,
    Platform,
    PortRecord,
    parse_port,
)

logger = logging.getLogger(__name__)

LISTEN_MARKER = "LISTEN"

SS_PID_PATTERN = re.compile(r"pid=(\d+)")
SS_NAME_PATTERN = re.compile(r'users:\(\("([^"]+)"')
NETSTAT_OWNER_PATTERN = re.compile(r"^(\d+)/(.+)$")

LineGrammar = Callable[[str, datetime], "PortRecord | None"]


def _port_of(address: str) -> str:
    """Text after the last colon of an ``address:port`` token."""
    return address.rsplit(":", 1)[-1]


def parse_windows_line(line: str, observed_at: datetime | None = None) -> PortRecord | None:
    """Parse one ``netstat -ano`` row."""
    parts = line.split()
    if len(parts) < 5:
        return None
    address = parts[1]
    if ":" not in address:
        return None
    port = parse_port(_port_of(address))
    if port == "":
        return None
    return PortRecord(
        port=port,
        pid=parts[-1],
        protocol=parts[0].upper(),
        address=address,
        process_name=SYSTEM_PROCESS,
        observed_at=observed_at or datetime.now(),
    )


def parse_macos_line(line: str, observed_at: datetime | None = None) -> PortRecord | None:
    """Parse one ``lsof`` row."""
    parts = line.split()
    if len(parts) < 9:
        return None
    address = parts[8]
    if ":" not in address:
        return None
    port = parse_port(_port_of(address))
    if port == "":
        return None
    return PortRecord(
        port=port,
        pid=parts[1],
        protocol=parts[7].upper(),
        address=address,
        process_name=parts[0],
        observed_at=observed_at or datetime.now(),
    )


def _linux_owner(parts: list[str]) -> tuple[str, str]:
    """Extract (pid, name) from the process column of a row."""
    column = parts[-1]
    pid_match = SS_PID_PATTERN.search(column)
    name_match = SS_NAME_PATTERN.search(column)
    if pid_match or name_match:
        return (
            pid_match.group(1) if pid_match else UNKNOWN_PID,
            name_match.group(1) if name_match else SYSTEM_PROCESS,
        )
    # netstat -p prints "<pid>/<name>", and the name may contain spaces
    for part in parts[1:]:
        owner_match = NETSTAT_OWNER_PATTERN.match(part)
        if owner_match:
            return owner_match.group(1), owner_match.group(2).rstrip(":")
    return UNKNOWN_PID, SYSTEM_PROCESS


def parse_linux_line(line: str, observed_at: datetime | None = None) -> PortRecord | None:
    """Parse one ``ss`` or ``netstat`` row."""
    if LISTEN_MARKER not in line:
        return None
    parts = line.split()
    if len(parts) < 5:
        return None

    # ss -tlnp has no protocol column; its first column is the state
    protocol = DEFAULT_PROTOCOL if parts[0].upper().startswith(LISTEN_MARKER) else parts[0].upper()

    # Local address is the first address:port token after the leading columns
    address = next((p for p in parts[1:] if ":" in p), None)
    if address is None:
        return None
    port = parse_port(_port_of(address))
    if port == "":
        return None

    pid, name = _linux_owner(parts)
    return PortRecord(
        port=port,
        pid=pid,
        protocol=protocol,
        address=address,
        process_name=name,
        observed_at=observed_at or datetime.now(),
    )


GRAMMARS: dict[Platform, LineGrammar] = {
    Platform.WINDOWS: parse_windows_line,
    Platform.MACOS: parse_macos_line,
    Platform.LINUX: parse_linux_line,
}


def parse(raw_text: str, platform: Platform | str) -> list[PortRecord]:
    """Parse raw tool output into candidate records, in encounter order.

    Lines that do not fit the platform grammar are skipped. All records from
    one call share the same ``observed_at`` timestamp.
    """
    grammar = GRAMMARS[Platform.from_tag(platform)]

    observed_at = datetime.now()
    records: list[PortRecord] = []
    for line in raw_text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = grammar(line, observed_at)
        except ValueError as e:
            logger.debug(f"Skipping unparseable line {line!r}: {e}")
            continue
        if record is None:
            logger.debug(f"Skipping line {line!r}")
            continue
        records.append(record)
    return records
