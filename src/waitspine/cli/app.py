"""
Root Typer application for the waitspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from waitspine.core.logging import configure_logging
from waitspine.core.settings import get_settings

app = Typer(
    name="waitspine",
    help="waitspine: poll a command or a path until it succeeds.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("wait-spine")
        except PackageNotFoundError:
            from waitspine import __version__ as v
        typer.echo(f"waitspine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Override WAITSPINE_LOG_LEVEL."
    ),
) -> None:
    """waitspine CLI: retry/backoff polling from the shell."""
    settings = get_settings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.log_json)


# ── Sub-command registration ─────────────────────────────────────────────

from waitspine.cli.config import app as config_app  # noqa: E402
from waitspine.cli.poll import run_command, wait_for_file  # noqa: E402

app.command("run")(run_command)
app.command("file")(wait_for_file)
app.add_typer(config_app, name="config", help="Configuration inspection.")
