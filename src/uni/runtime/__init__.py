"""Restart orchestration components."""

from uni.runtime.config_store import ConfigStore
from uni.runtime.contracts import (
	RestartEvent,
	RestartMode,
	RestartOutcome,
	RestartPhase,
	RestartSession,
	RestartStatus,
	transition_restart_phase,
)
from uni.runtime.orchestrator import RestartOrchestrator
from uni.runtime.probe import ConnectionProbe
from uni.runtime.processes import ProcessLocator, WorkerEnumerator
from uni.runtime.signals import ControlSignal, Signaller
from uni.runtime.waiter import Waiter

__all__ = [
	"ConfigStore",
	"ConnectionProbe",
	"ControlSignal",
	"ProcessLocator",
	"RestartEvent",
	"RestartMode",
	"RestartOrchestrator",
	"RestartOutcome",
	"RestartPhase",
	"RestartSession",
	"RestartStatus",
	"Signaller",
	"Waiter",
	"WorkerEnumerator",
	"transition_restart_phase",
]
