import os
import re
import runpy
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from uni.core.models import ServerConfig, UniSettings
from uni.utils.errors import ConfigurationError

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]+))?\}")

SETTINGS_FILE_NAME = "uni.yaml"

# gunicorn setting name -> ServerConfig field
SERVER_SETTING_KEYS = {
    "chdir": "working_directory",
    "preload_app": "preload_app",
    "workers": "worker_processes",
    "bind": "listen",
}

def interpolate_env_vars(content: str) -> str:
    """Replace ${VAR} or ${VAR:default} with environment variables."""
    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, content)

def load_settings_file(path: Path) -> Dict[str, Any]:
    """
    Load uni.yaml with environment variable interpolation.

    Unknown keys are dropped; a missing file yields an empty mapping.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text()
        interpolated_content = interpolate_env_vars(content)
        data = yaml.safe_load(interpolated_content) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Unreadable settings file: {exc}", str(path)) from exc

    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must contain a mapping.", str(path))

    allowed_keys = set(UniSettings.model_fields)
    return {k: v for k, v in data.items() if k in allowed_keys}

def load_settings(home: Optional[Path] = None) -> UniSettings:
    """
    Build settings from UNI_* environment variables, overlaid by <home>/uni.yaml.
    """
    try:
        settings = UniSettings() if home is None else UniSettings(home=home)
        file_data = load_settings_file(settings.home / SETTINGS_FILE_NAME)
        if not file_data:
            return settings
        file_data.setdefault("home", settings.home)
        return UniSettings(**file_data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc

def load_server_config(path: Path, pid_file: Path) -> ServerConfig:
    """
    Execute a gunicorn config file and extract the restart-relevant settings.

    Every key in SERVER_SETTING_KEYS plus ``pidfile`` must be assigned
    explicitly, even when it matches the gunicorn default, and ``pidfile``
    must point at the pid file uni supplies through ``PIDFILE``.
    """
    if not path.exists():
        raise ConfigurationError("Configuration not found.", str(path))

    try:
        namespace = runpy.run_path(str(path))
    except Exception as exc:
        raise ConfigurationError(f"Failed to evaluate configuration: {exc}", str(path)) from exc

    for key in (*SERVER_SETTING_KEYS, "pidfile"):
        if key not in namespace:
            raise ConfigurationError(f"Config parameter not found: {key}", str(path))

    configured_pid = namespace["pidfile"]
    if not configured_pid or Path(configured_pid) != pid_file:
        raise ConfigurationError(
            "pidfile must be set to os.environ['PIDFILE'] "
            f"(expected {pid_file}, found {configured_pid!r})",
            str(path),
        )

    data = {field: namespace[key] for key, field in SERVER_SETTING_KEYS.items()}

    # Only the last bind address is probed.
    if isinstance(data["listen"], (list, tuple)):
        if not data["listen"]:
            raise ConfigurationError("bind must name at least one address.", str(path))
        data["listen"] = data["listen"][-1]

    try:
        return ServerConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}", str(path)) from exc
