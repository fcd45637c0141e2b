"""
CLI utility helpers: policy options and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console

from waitspine.core.errors import WaitError
from waitspine.execution.context import WaitResult

console = Console()
err_console = Console(stderr=True)


def policy_options(
    *,
    delay: float | None,
    timeout: float | None,
    max_retries: int | None,
    backoff: float | None,
    jitter: float | None,
    min_delay: float | None,
    max_delay: float | None,
) -> dict[str, Any]:
    """Collect the polling options given on the command line (unset ones dropped)."""
    options = {
        "delay": delay,
        "timeout": timeout,
        "max_retries": max_retries,
        "exponential_backoff": backoff,
        "jitter_range": jitter,
        "min_delay": min_delay,
        "max_delay": max_delay,
    }
    return {key: value for key, value in options.items() if value is not None}


# ── Output helpers ───────────────────────────────────────────────────────


def output_result(result: WaitResult, *, as_json: bool = False, title: str = "") -> None:
    """Render a successful ``WaitResult`` to the terminal."""
    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
        return

    state = result.state
    if title:
        console.print(f"[bold green]{title}[/bold green]")
    console.print(f"  [cyan]attempts[/cyan]: {state.attempt}")
    console.print(f"  [cyan]elapsed[/cyan]: {state.elapsed:.0f}ms")
    console.print(f"  [cyan]exit path[/cyan]: {result.caller}")


def output_error(error: Exception, *, as_json: bool = False) -> None:
    """Render a failed wait and exit with status 1."""
    if as_json:
        payload = error.to_dict() if isinstance(error, WaitError) else {
            "error_type": error.__class__.__name__,
            "message": str(error),
        }
        err_console.print_json(json.dumps(payload, default=str))
    else:
        code = error.category.value if isinstance(error, WaitError) else "ERROR"
        message = error.message if isinstance(error, WaitError) else str(error)
        err_console.print(f"[bold red]Error[/bold red] ({code}): {message}")
    raise typer.Exit(code=1)
