from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from uni.core.models import RestartTimeouts


class RestartMode(str, Enum):
    """How a running generation is replaced."""

    QUICK = "quick"
    FULL = "full"


class RestartPhase(str, Enum):
    """States of one orchestrator invocation."""

    IDLE = "idle"
    LAUNCHING = "launching"
    QUICK_RESTART = "quick_restart"
    FULL_RESTART = "full_restart"
    ROLLBACK = "rollback"
    SHUTTING_DOWN = "shutting_down"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RestartEvent(str, Enum):
    """Events that drive phase transitions."""

    LAUNCH = "launch"
    RESTART_QUICK = "restart_quick"
    RESTART_FULL = "restart_full"
    SHUTDOWN = "shutdown"
    ABORT = "abort"
    COMPLETE = "complete"
    FAIL = "fail"


class RestartStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class RestartOutcome(BaseModel):
    """Final result reported back to the CLI."""

    model_config = ConfigDict(extra="forbid")

    status: RestartStatus
    message: str
    mode: Optional[RestartMode] = None
    rolled_back: bool = False

    @property
    def exit_code(self) -> int:
        return 0 if self.status == RestartStatus.SUCCESS else 1


TERMINAL_PHASES = {RestartPhase.SUCCEEDED, RestartPhase.FAILED}


def transition_restart_phase(current: RestartPhase, event: RestartEvent) -> RestartPhase:
    """Compute the next phase for a given event.

    Invalid transitions raise ValueError.
    """

    if current in TERMINAL_PHASES:
        raise ValueError(f"Invalid restart transition: {current} -> {event}")

    if current == RestartPhase.IDLE:
        if event == RestartEvent.LAUNCH:
            return RestartPhase.LAUNCHING
        if event == RestartEvent.RESTART_QUICK:
            return RestartPhase.QUICK_RESTART
        if event == RestartEvent.RESTART_FULL:
            return RestartPhase.FULL_RESTART
        if event == RestartEvent.SHUTDOWN:
            return RestartPhase.SHUTTING_DOWN
        raise ValueError(f"Invalid restart transition: {current} -> {event}")

    if current == RestartPhase.FULL_RESTART:
        if event == RestartEvent.ABORT:
            return RestartPhase.ROLLBACK

    if current == RestartPhase.ROLLBACK:
        # A rolled back full restart never counts as a success.
        if event in {RestartEvent.COMPLETE, RestartEvent.FAIL}:
            return RestartPhase.FAILED
        raise ValueError(f"Invalid restart transition: {current} -> {event}")

    if event == RestartEvent.COMPLETE:
        return RestartPhase.SUCCEEDED
    if event == RestartEvent.FAIL:
        return RestartPhase.FAILED
    raise ValueError(f"Invalid restart transition: {current} -> {event}")


@dataclass
class RestartSession:
    """Transient state of one restart attempt; never persisted."""

    old_pid: int
    expected_workers: int
    timeouts: RestartTimeouts
    mode: RestartMode
    new_pid: Optional[int] = None
