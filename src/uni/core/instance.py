from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, MutableMapping, Optional

from uni.utils.errors import ConfigurationError


@dataclass(frozen=True)
class Instance:
    """A named server instance and the files that belong to it."""

    name: str
    home: Path

    def __post_init__(self) -> None:
        if not self.name or self.name.startswith(".") or "/" in self.name or os.sep in self.name:
            raise ConfigurationError(f"Invalid instance name: '{self.name}'")
        # PIDFILE is read after the server has changed directory.
        object.__setattr__(self, "home", Path(self.home).expanduser().absolute())

    @property
    def config_dir(self) -> Path:
        return self.home / "conf"

    @property
    def run_dir(self) -> Path:
        return self.home / "run"

    @property
    def config_file(self) -> Path:
        return self.config_dir / f"{self.name}.conf.py"

    @property
    def pid_file(self) -> Path:
        return self.run_dir / f"{self.name}.pid"

    @property
    def snapshot_file(self) -> Path:
        return self.run_dir / f"{self.name}.yml"

    def make_run_dir(self) -> Path:
        self.run_dir.mkdir(parents=True, exist_ok=True)
        return self.run_dir

    def server_environment(self, hook_path: Optional[str] = None) -> Dict[str, str]:
        """Return the variables a launched server (and its config file) reads."""
        env = {
            "PIDFILE": str(self.pid_file),
            "UNI_CONFIG_NAME": self.name,
        }
        if hook_path:
            env["UNI_HOOK_PATH"] = hook_path
        return env

    def export_environment(
        self,
        hook_path: Optional[str] = None,
        environ: Optional[MutableMapping[str, str]] = None,
    ) -> None:
        """Publish server variables so config files evaluated in-process can see them."""
        target = os.environ if environ is None else environ
        target.update(self.server_environment(hook_path))
