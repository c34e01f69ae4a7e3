from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, List, MutableMapping, NoReturn, Optional, Set

from rich.console import Console

from uni.core.instance import Instance
from uni.core.models import ServerConfig, UniSettings
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
from uni.runtime.probe import ConnectionProbe
from uni.runtime.processes import ProcessLocator, WorkerEnumerator
from uni.runtime.signals import ControlSignal, Signaller
from uni.runtime.waiter import Waiter
from uni.utils.errors import ConfigurationError, LaunchError, UniError, WaitTimeout

LogCallback = Callable[..., None]


class NewMasterDied(UniError):
    """The duplicate master exited before its workers came up."""


def _silent(message: str, severity: str = "info") -> None:
    return None


class RestartOrchestrator:
    """Launches an instance, or replaces its running generation without dropping traffic.

    Every collaborator is injected so the state machine can be driven by
    fakes. Use :meth:`for_instance` to wire the real ones.
    """

    def __init__(
        self,
        instance: Instance,
        settings: UniSettings,
        config_store: ConfigStore,
        locator: ProcessLocator,
        workers: WorkerEnumerator,
        probe: ConnectionProbe,
        signaller: Signaller,
        waiter: Waiter,
        log: Optional[LogCallback] = None,
        execvpe: Callable[[str, List[str], Dict[str, str]], None] = os.execvpe,
        chdir: Callable[[Path], None] = os.chdir,
        environ: Optional[MutableMapping[str, str]] = None,
    ) -> None:
        self.instance = instance
        self.settings = settings
        self.config_store = config_store
        self.locator = locator
        self.workers = workers
        self.probe = probe
        self.signaller = signaller
        self.waiter = waiter
        self.log = log or _silent
        self.execvpe = execvpe
        self.chdir = chdir
        self.environ = os.environ if environ is None else environ
        self.phase = RestartPhase.IDLE

    @classmethod
    def for_instance(
        cls,
        name: str,
        settings: UniSettings,
        console: Optional[Console] = None,
        log: Optional[LogCallback] = None,
    ) -> "RestartOrchestrator":
        instance = Instance(name=name, home=settings.home)
        # Config files read PIDFILE while being evaluated.
        instance.export_environment(settings.hook_path)
        return cls(
            instance=instance,
            settings=settings,
            config_store=ConfigStore(
                instance,
                on_warning=(lambda message: log(message, severity="warning")) if log else None,
            ),
            locator=ProcessLocator(instance.pid_file, settings.server_token),
            workers=WorkerEnumerator(),
            probe=ConnectionProbe(),
            signaller=Signaller(),
            waiter=Waiter(console=console, interval=settings.poll_interval),
            log=log,
        )

    @property
    def config(self) -> ServerConfig:
        return self.config_store.current

    def run(self) -> RestartOutcome:
        """Launch the instance when nothing is running, otherwise restart it."""
        pid = self.locator.find()
        if pid is None:
            self.launch()
        else:
            return self.restart(pid)

    def decide_mode(self) -> RestartMode:
        """Pick the restart mode the *running* generation needs."""
        return RestartMode.FULL if self.config_store.active_preload() else RestartMode.QUICK

    def restart(self, pid: int) -> RestartOutcome:
        if self.decide_mode() == RestartMode.FULL:
            return self.restart_full(pid)
        return self.restart_quick(pid)

    def launch(self) -> NoReturn:
        """Replace this process with the server start command."""
        self._advance(RestartEvent.LAUNCH)
        config = self.config
        work_dir = Path(config.working_directory).expanduser()

        env = dict(self.environ)
        env.update(self.instance.server_environment(self.settings.hook_path))
        self._activate_virtualenv(work_dir, env)

        self.instance.make_run_dir()
        self.config_store.save()

        try:
            self.chdir(work_dir)
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot enter working_directory: {exc}", str(self.instance.config_file)
            ) from exc

        command = [
            part.format(config_file=self.instance.config_file, name=self.instance.name)
            for part in self.settings.server_command
        ]
        self.log(f"Launching '{self.instance.name}': {' '.join(command)}")
        try:
            self.execvpe(command[0], command, env)
        except OSError as exc:
            self._advance(RestartEvent.FAIL)
            raise LaunchError(f"Failed to exec {command[0]}: {exc}") from exc

        self._advance(RestartEvent.FAIL)
        raise LaunchError("exec failed")

    def _activate_virtualenv(self, work_dir: Path, env: Dict[str, str]) -> None:
        venv = work_dir / self.settings.virtualenv_dir
        bin_dir = venv / "bin"
        if not bin_dir.is_dir():
            return

        env["VIRTUAL_ENV"] = str(venv)
        env["PATH"] = os.pathsep.join(
            part for part in (str(bin_dir), env.get("PATH", "")) if part
        )
        env.pop("PYTHONHOME", None)
        self.log(f"Using virtualenv {venv}.")

    def restart_quick(self, pid: int) -> RestartOutcome:
        """Reload workers in place on an existing master."""
        self._advance(RestartEvent.RESTART_QUICK)
        session = self._session(pid, RestartMode.QUICK)
        try:
            self._replace_workers(session)
        except WaitTimeout:
            self._advance(RestartEvent.FAIL)
            raise

        self._advance(RestartEvent.COMPLETE)
        return RestartOutcome(
            status=RestartStatus.SUCCESS,
            mode=RestartMode.QUICK,
            message="READY: Quick restart complete.",
        )

    def restart_full(self, old_pid: int) -> RestartOutcome:
        """Start a new master generation next to the old one, then retire the old one."""
        self._advance(RestartEvent.RESTART_FULL)
        session = self._session(old_pid, RestartMode.FULL)

        self.log(f"Sending launch signal to existing server (PID {old_pid}).")
        self._send(old_pid, ControlSignal.SPAWN_DUPLICATE, required=True)

        try:
            new_pid = self.waiter.wait(
                self.settings.spawn_timeout,
                "Waiting for new process",
                lambda: self.locator.find(reject=old_pid),
            )
        except WaitTimeout:
            self._advance(RestartEvent.FAIL)
            raise

        session.new_pid = new_pid
        self.log(f"New server launched: {new_pid}")

        try:
            worker_pids = self._wait_for_new_generation(session)

            self.log("Shutting down workers for old server.")
            self._send(old_pid, ControlSignal.DRAIN_WORKERS)

            self._wait_for_connection(session, worker_pids)

            self.log("Shutting down old server.")
            self._send(old_pid, ControlSignal.TERMINATE)
            self.config_store.save()
        except NewMasterDied as exc:
            self.log(str(exc), severity="warning")
            return self._rollback(session)
        except WaitTimeout:
            return self._rollback(session)
        except UniError as exc:
            # The old master may already be draining, so it must be recovered.
            self.log(str(exc), severity="error")
            return self._rollback(session)

        self._advance(RestartEvent.COMPLETE)
        return RestartOutcome(
            status=RestartStatus.SUCCESS,
            mode=RestartMode.FULL,
            message="READY: Full restart complete.",
        )

    def _wait_for_new_generation(self, session: RestartSession) -> Set[int]:
        new_pid = session.new_pid
        worker_pids: Set[int] = set()

        def ready() -> bool:
            nonlocal worker_pids
            # The old master takes the pid file back when its child dies.
            if self.locator.find(reject=new_pid) == session.old_pid:
                raise NewMasterDied(f"New server (PID {new_pid}) died.")
            worker_pids = self.workers.workers_of(new_pid)
            return len(worker_pids) >= session.expected_workers

        self.waiter.wait(session.timeouts.workers, "Waiting for workers", ready)
        return worker_pids

    def _rollback(self, session: RestartSession) -> RestartOutcome:
        self._advance(RestartEvent.ABORT)

        new_pid = session.new_pid
        if new_pid is not None and self.locator.is_server(new_pid):
            self.log("Shutting down new server.")
            self._send(new_pid, ControlSignal.TERMINATE)
        elif new_pid is not None:
            self.log(f"New server (PID {new_pid}) has already exited.", severity="warning")

        recovery = self._session(session.old_pid, RestartMode.QUICK)
        try:
            self._replace_workers(recovery)
        except UniError as exc:
            self.log(f"Old server did not recover: {exc}", severity="error")
            self._advance(RestartEvent.FAIL)
        else:
            self._advance(RestartEvent.COMPLETE)

        return RestartOutcome(
            status=RestartStatus.FAILURE,
            mode=RestartMode.FULL,
            message="FAILED: Server rolled back.",
            rolled_back=True,
        )

    def _replace_workers(self, session: RestartSession) -> None:
        pid = session.old_pid
        old_workers = self.workers.workers_of(pid)

        self.log(f"Sending restart signal to existing server (PID {pid}).")
        self._send(pid, ControlSignal.RELOAD, required=True)
        # The master re-reads the config file as workers cycle.
        self.config_store.save()

        new_workers: Set[int] = set()

        def ready() -> bool:
            nonlocal new_workers
            new_workers = self.workers.workers_of(pid) - old_workers
            return len(new_workers) >= session.expected_workers

        self.waiter.wait(session.timeouts.workers, "Waiting for workers", ready)
        self._wait_for_connection(session, new_workers)

    def _wait_for_connection(self, session: RestartSession, worker_pids: Set[int]) -> None:
        host, port = self.config.listen_address
        self.waiter.wait(
            session.timeouts.connect,
            "Waiting for a new worker connection",
            lambda: self.probe.confirms(host, port, worker_pids),
        )

    def shutdown(self) -> RestartOutcome:
        """Gracefully stop the running master and wait for it to exit."""
        pid = self.locator.find()
        if pid is None:
            return RestartOutcome(
                status=RestartStatus.FAILURE,
                message=f"No '{self.instance.name}' server is running.",
            )

        self._advance(RestartEvent.SHUTDOWN)
        self.log(f"Sending shutdown signal to server (PID {pid}).")
        self._send(pid, ControlSignal.TERMINATE)

        try:
            self.waiter.wait(
                self.settings.shutdown_timeout,
                "Waiting for process to exit",
                lambda: self.locator.find() is None,
            )
        except WaitTimeout:
            self._advance(RestartEvent.FAIL)
            raise

        self._advance(RestartEvent.COMPLETE)
        return RestartOutcome(status=RestartStatus.SUCCESS, message="Server has shut down.")

    def _session(self, pid: int, mode: RestartMode) -> RestartSession:
        timeouts = self.settings.full if mode == RestartMode.FULL else self.settings.quick
        return RestartSession(
            old_pid=pid,
            expected_workers=self.config.worker_processes,
            timeouts=timeouts,
            mode=mode,
        )

    def _send(self, pid: int, role: ControlSignal, required: bool = False) -> None:
        if self.signaller.send(pid, role):
            return
        if required:
            raise UniError(f"Server (PID {pid}) exited before it received {role.value}.")
        self.log(f"Process {pid} had already exited ({role.value} not delivered).", severity="warning")

    def _advance(self, event: RestartEvent) -> None:
        self.phase = transition_restart_phase(self.phase, event)
