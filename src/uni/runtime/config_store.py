from __future__ import annotations

from typing import Callable, Optional

import yaml
from pydantic import ValidationError

from uni.config.loader import load_server_config
from uni.core.instance import Instance
from uni.core.models import ServerConfig


class ConfigStore:
    """Current server configuration plus the snapshot of the last applied one."""

    def __init__(
        self,
        instance: Instance,
        on_warning: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.instance = instance
        self.on_warning = on_warning
        self._current: Optional[ServerConfig] = None
        self._previous: Optional[ServerConfig] = None
        self._previous_loaded = False

    @property
    def current(self) -> ServerConfig:
        """Configuration as it reads from the instance config file right now."""
        if self._current is None:
            self._current = load_server_config(self.instance.config_file, self.instance.pid_file)
        return self._current

    @property
    def previous(self) -> Optional[ServerConfig]:
        """Configuration last confirmed active, or None without a usable snapshot."""
        if not self._previous_loaded:
            self._previous = self._load_snapshot()
            self._previous_loaded = True
        return self._previous

    def active_preload(self) -> bool:
        """Return whether the running generation was started with preload_app."""
        return (self.previous or self.current).preload_app

    def save(self) -> None:
        """Record the current configuration as the last applied one."""
        config = self.current
        self.instance.make_run_dir()
        payload = yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False)
        self.instance.snapshot_file.write_text(payload, encoding="utf-8")

    def _load_snapshot(self) -> Optional[ServerConfig]:
        snapshot_file = self.instance.snapshot_file
        if not snapshot_file.exists():
            return None

        try:
            payload = yaml.safe_load(snapshot_file.read_text(encoding="utf-8"))
            return ServerConfig.model_validate(payload)
        except (OSError, yaml.YAMLError, ValidationError) as exc:
            if self.on_warning is not None:
                self.on_warning(f"Ignoring unreadable configuration snapshot {snapshot_file}: {exc}")
            return None
