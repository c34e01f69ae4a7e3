from rich.console import Console
from rich.markup import escape
from uni.runtime.contracts import RestartOutcome, RestartStatus

# Create a stderr console for logging
error_console = Console(stderr=True)

class OutputFormatter:
    """
    Handles output formatting for the CLI.
    System messages and wait progress share one stderr console so dots line up.
    """

    @staticmethod
    def log(message: str, severity: str = "info") -> None:
        """
        Print system messages to stderr with color coding.
        """
        style = "white"
        prefix = "[UNI]"

        if severity == "warning":
            style = "yellow"
        elif severity == "error":
            style = "red"
        elif severity == "critical":
            style = "bold red"
        elif severity == "success":
            style = "green"

        error_console.print(f"[{style}]{prefix} {escape(message)}[/{style}]", highlight=False, soft_wrap=True)

    @staticmethod
    def print_outcome(outcome: RestartOutcome) -> None:
        """
        Print the final line of a launch/restart/shutdown run.
        """
        if outcome.status == RestartStatus.SUCCESS:
            error_console.print()
            OutputFormatter.log(outcome.message, severity="success")
        elif outcome.rolled_back:
            error_console.print()
            OutputFormatter.log(outcome.message, severity="critical")
        else:
            OutputFormatter.log(outcome.message, severity="error")
