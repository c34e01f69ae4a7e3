from pathlib import Path
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


WILDCARD_HOSTS = {"", "0.0.0.0", "::", "[::]"}


class RestartTimeouts(BaseModel):
    """
    Wait budgets (seconds) for one restart mode.
    """
    model_config = ConfigDict(extra='ignore')

    workers: int = Field(gt=0)
    connect: int = Field(gt=0)


class UniSettings(BaseSettings):
    """
    Tool-level settings (the optional <home>/uni.yaml file, or UNI_* environment variables).
    """
    model_config = SettingsConfigDict(env_prefix='UNI_', extra='ignore')

    home: Path = Field(default_factory=lambda: Path.home() / ".uni")
    server_token: str = "gunicorn"
    server_command: List[str] = Field(
        default_factory=lambda: ["gunicorn", "--daemon", "--config", "{config_file}"]
    )
    virtualenv_dir: str = ".venv"
    hook_path: Optional[str] = None
    poll_interval: float = Field(default=1.0, gt=0)
    spawn_timeout: int = Field(default=10, gt=0)
    shutdown_timeout: int = Field(default=30, gt=0)

    # A full restart waits long for a cold app load, then briefly for traffic.
    full: RestartTimeouts = Field(default_factory=lambda: RestartTimeouts(workers=60, connect=20))

    # A quick restart forks fast, but lingering connections delay the cutover.
    quick: RestartTimeouts = Field(default_factory=lambda: RestartTimeouts(workers=20, connect=60))

    @field_validator("home")
    @classmethod
    def _absolute_home(cls, value: Path) -> Path:
        # Launched servers run from their own working directory.
        return Path(value).expanduser().absolute()


class ServerConfig(BaseModel):
    """
    The subset of a server configuration file that restarts depend on.

    Also the shape of the last-applied snapshot persisted in the run directory.
    """
    model_config = ConfigDict(frozen=True, extra='ignore')

    working_directory: str
    preload_app: StrictBool
    worker_processes: int = Field(gt=0)
    listen: str

    @field_validator("listen")
    @classmethod
    def _validate_listen(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit() or host.startswith("unix"):
            raise ValueError(f"listen must be a TCP 'host:port' address, got '{value}'")
        if not 1 <= int(port) <= 65535:
            raise ValueError(f"listen port out of range: '{value}'")
        return value

    @property
    def listen_address(self) -> Tuple[str, int]:
        """Return (host, port), mapping wildcard hosts to loopback."""
        host, _, port = self.listen.rpartition(":")
        if host in WILDCARD_HOSTS:
            host = "127.0.0.1"
        return host.strip("[]"), int(port)
