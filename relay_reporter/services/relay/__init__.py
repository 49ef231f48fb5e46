"""Syncthing relay status access"""

from .client import RelayClient
from .models import RATE_WINDOWS, RelayStatus

__all__ = ["RelayClient", "RelayStatus", "RATE_WINDOWS"]
