"""Per-call port registry: dedup and ordering of parsed records."""

from typing import Iterable

from openkiller.models import PortRecord, port_sort_key


def register(candidates: Iterable[PortRecord]) -> list[PortRecord]:
    """Build a snapshot from candidate records.

    The first record seen for a port wins; later records for the same port
    (IPv4 and IPv6 listeners, for instance) are dropped without merging.
    Records without a port are never admitted. The result is sorted by
    numeric port, with opaque ports sorting as 0 and ties kept in encounter
    order.
    """
    seen: set[int | str] = set()
    unique: list[PortRecord] = []
    for record in candidates:
        if record.port == "" or record.port in seen:
            continue
        seen.add(record.port)
        unique.append(record)
    return sorted(unique, key=lambda record: port_sort_key(record.port))
