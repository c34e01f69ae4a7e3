from __future__ import annotations

import os
import signal
from enum import Enum


class ControlSignal(str, Enum):
    """Signal roles understood by a gunicorn master."""

    RELOAD = "reload"
    SPAWN_DUPLICATE = "spawn_duplicate"
    DRAIN_WORKERS = "drain_workers"
    TERMINATE = "terminate"

    @property
    def signum(self) -> signal.Signals:
        return SIGNAL_NUMBERS[self]


SIGNAL_NUMBERS = {
    ControlSignal.RELOAD: signal.SIGHUP,
    ControlSignal.SPAWN_DUPLICATE: signal.SIGUSR2,
    ControlSignal.DRAIN_WORKERS: signal.SIGWINCH,
    ControlSignal.TERMINATE: signal.SIGTERM,
}


class Signaller:
    """Delivers control signals to server processes."""

    def send(self, pid: int, role: ControlSignal) -> bool:
        """Signal `pid`; returns False when the process has already exited."""
        try:
            os.kill(pid, role.signum)
        except ProcessLookupError:
            return False
        return True
