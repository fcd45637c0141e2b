"""
CLI layer for waitspine.

Provides a Typer application that wraps ``wait_for`` for shell use: poll a
command until it exits 0, or a path until it exists. All polling logic lives
in ``waitspine.execution``; this package handles only terminal transport:
argument parsing, coloured output and exit codes.

Entry point::

    waitspine --help
"""

from waitspine.cli.app import app

__all__ = ["app"]
