"""
CLI: ``waitspine run`` / ``waitspine file`` - poll from the shell.

Typical CI use::

    waitspine run --delay 500 --timeout 60000 -- pg_isready -h db
    waitspine file --timeout 10000 /tmp/app.sock
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from waitspine.cli.utils import console, output_error, output_result, policy_options
from waitspine.core.errors import WaitError
from waitspine.core.logging import get_logger
from waitspine.execution.scheduler import wait_for_sync

logger = get_logger(__name__)


def command_succeeds(command: list[str], *, show_output: bool = False):
    """Build a predicate that runs ``command`` and is truthy when it exits 0."""
    stream = None if show_output else asyncio.subprocess.DEVNULL

    async def predicate() -> bool:
        process = await asyncio.create_subprocess_exec(
            *command, stdout=stream, stderr=stream
        )
        code = await process.wait()
        logger.debug("cli.command_exited", command=command[0], returncode=code)
        return code == 0

    return predicate


def path_exists(path: Path):
    """Build a predicate that is truthy once ``path`` exists."""

    def predicate() -> bool:
        return path.exists()

    return predicate


def _poll(predicate, options: dict, *, as_json: bool, title: str) -> None:
    try:
        result = wait_for_sync(predicate, options)
    except WaitError as exc:
        output_error(exc, as_json=as_json)
    else:
        output_result(result, as_json=as_json, title=title)


def run_command(
    command: list[str] = typer.Argument(..., help="Command to run, after --"),
    delay: float | None = typer.Option(None, "--delay", "-d", help="Delay between attempts (ms)"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Give up after (ms)"),
    max_retries: int | None = typer.Option(None, "--max-retries", "-r", help="Maximum attempts"),
    backoff: float | None = typer.Option(None, "--backoff", help="Exponential backoff factor"),
    jitter: float | None = typer.Option(None, "--jitter", help="Jitter range in [0, 1)"),
    min_delay: float | None = typer.Option(None, "--min-delay", help="Delay floor (ms)"),
    max_delay: float | None = typer.Option(None, "--max-delay", help="Delay cap (ms)"),
    show_output: bool = typer.Option(False, "--show-output", help="Pass command output through"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Run COMMAND until it exits with status 0."""
    options = policy_options(
        delay=delay,
        timeout=timeout,
        max_retries=max_retries,
        backoff=backoff,
        jitter=jitter,
        min_delay=min_delay,
        max_delay=max_delay,
    )
    if not as_json:
        console.print(f"[dim]Waiting for:[/dim] {' '.join(command)}")
    predicate = command_succeeds(command, show_output=show_output)
    _poll(predicate, options, as_json=as_json, title="Command succeeded")


def wait_for_file(
    path: Path = typer.Argument(..., help="Path to wait for"),
    delay: float | None = typer.Option(None, "--delay", "-d", help="Delay between attempts (ms)"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Give up after (ms)"),
    max_retries: int | None = typer.Option(None, "--max-retries", "-r", help="Maximum attempts"),
    backoff: float | None = typer.Option(None, "--backoff", help="Exponential backoff factor"),
    jitter: float | None = typer.Option(None, "--jitter", help="Jitter range in [0, 1)"),
    min_delay: float | None = typer.Option(None, "--min-delay", help="Delay floor (ms)"),
    max_delay: float | None = typer.Option(None, "--max-delay", help="Delay cap (ms)"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Wait until PATH exists."""
    options = policy_options(
        delay=delay,
        timeout=timeout,
        max_retries=max_retries,
        backoff=backoff,
        jitter=jitter,
        min_delay=min_delay,
        max_delay=max_delay,
    )
    _poll(path_exists(path), options, as_json=as_json, title=f"{path} exists")
