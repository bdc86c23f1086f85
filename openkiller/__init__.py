"""Open Killer: list listening ports and kill the processes behind them."""

__version__ = "0.1.0"

from openkiller.models import KillResult, Platform, PortRecord, detect_platform
from openkiller.service import PortService, get_process_name, kill_process, list_ports

__all__ = [
    "KillResult",
    "Platform",
    "PortRecord",
    "PortService",
    "__version__",
    "detect_platform",
    "get_process_name",
    "kill_process",
    "list_ports",
]
