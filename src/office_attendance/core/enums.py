from __future__ import annotations

from enum import Enum


class Direction(str, Enum):
    """Result of a scan: the member walked in or out."""

    IN = "in"
    OUT = "out"


class SweeperState(str, Enum):
    """Lifecycle of the nightly sign-out thread."""

    IDLE = "idle"
    WAITING = "waiting"
    SWEEPING = "sweeping"
    STOPPED = "stopped"
