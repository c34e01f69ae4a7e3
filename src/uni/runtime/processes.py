from __future__ import annotations

from pathlib import Path
from typing import Optional, Set

import psutil


def read_pid_file(pid_file: Path) -> Optional[int]:
    """Return the recorded pid, None when the file is missing, 0 when unparseable."""
    try:
        content = pid_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None

    try:
        return int(content.strip() or 0)
    except ValueError:
        return 0


def process_command_line(pid: int) -> Optional[str]:
    """Return the command line of a live process, or None if it is gone."""
    try:
        process = psutil.Process(pid)
        if process.status() == psutil.STATUS_ZOMBIE:
            return None
        return " ".join(process.cmdline()) or process.name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


def child_pids(pid: int) -> Set[int]:
    """Return the pids of the immediate children of a process."""
    try:
        return {child.pid for child in psutil.Process(pid).children(recursive=False)}
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return set()


class ProcessLocator:
    """Resolves an instance pid file to a live server master pid."""

    def __init__(self, pid_file: Path, server_token: str = "gunicorn") -> None:
        self.pid_file = pid_file
        self.server_token = server_token

    def find(self, reject: Optional[int] = None) -> Optional[int]:
        """Return the live master pid, or None when not running, stale, or equal to `reject`."""
        pid = read_pid_file(self.pid_file)
        if pid is None or pid <= 0 or pid == reject:
            return None

        return pid if self.is_server(pid) else None

    def is_server(self, pid: int) -> bool:
        """Return True when `pid` is alive and its command still looks like our server."""
        # pids are reused once a process exits.
        command = process_command_line(pid)
        return command is not None and self.server_token in command


class WorkerEnumerator:
    """Lists worker processes forked by a master."""

    def workers_of(self, pid: int) -> Set[int]:
        return child_pids(pid)
