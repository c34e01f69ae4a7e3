from typing import Optional


class UniError(Exception):
    """
    Base class for failures that end a uni invocation with a non-zero exit.
    """


class ConfigurationError(UniError):
    """
    Raised when an instance configuration file is missing or incomplete.
    """
    def __init__(self, message: str, config_path: Optional[str] = None):
        self.message = message
        self.config_path = config_path
        ctx = f" ({config_path})" if config_path else ""
        super().__init__(f"Configuration Error{ctx}: {message}")


class LaunchError(UniError):
    """
    Raised when the server command could not replace the current process.
    """


class WaitTimeout(UniError):
    """
    Raised when a bounded wait exhausts its budget without a truthy result.
    """
    def __init__(self, label: str, timeout_seconds: float):
        self.label = label
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Timed out after {timeout_seconds:g}s: {label}")
