import typer
from pathlib import Path
from typing import Optional

from uni import __version__
from uni.cli.formatter import OutputFormatter, error_console
from uni.config.loader import load_settings
from uni.runtime import RestartOrchestrator
from uni.utils.errors import UniError

app = typer.Typer(
    name="uni",
    help="Launch, restart, or shut down a gunicorn instance without dropping connections.",
    rich_markup_mode=None,
    add_completion=False,
)

ACTIONS = {"down"}


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"uni {__version__}")
        raise typer.Exit()


@app.command()
def uni(
    name: str = typer.Argument(..., help="Instance name; reads <home>/conf/<name>.conf.py."),
    action: Optional[str] = typer.Argument(None, help="'down' to shut the instance down."),
    home: Optional[Path] = typer.Option(None, "--home", help="Override the uni home directory (default ~/.uni)."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
):
    """
    Start the instance if it is not running, otherwise perform a rolling restart.

    A quick restart (HUP) is used unless the running generation preloads the
    application, in which case a full restart (USR2) replaces the master too.
    """
    if action is not None and action not in ACTIONS:
        raise typer.BadParameter(f"Unknown action '{action}'. Only 'down' is supported.")

    try:
        settings = load_settings(home)
        orchestrator = RestartOrchestrator.for_instance(
            name,
            settings,
            console=error_console,
            log=OutputFormatter.log,
        )
        if action == "down":
            outcome = orchestrator.shutdown()
        else:
            outcome = orchestrator.run()
    except UniError as exc:
        error_console.print()
        OutputFormatter.log(str(exc), severity="error")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        error_console.print()
        OutputFormatter.log(
            "Interrupted. Check for leftover server processes; two masters may still be running.",
            severity="warning",
        )
        raise typer.Exit(code=130)

    OutputFormatter.print_outcome(outcome)
    raise typer.Exit(code=outcome.exit_code)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
