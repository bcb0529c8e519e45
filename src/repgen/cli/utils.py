"""
Shared CLI utilities for repgen commands.

Provides common functionality used across CLI modules.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from repgen.core.exceptions import RepgenError
from repgen.core.persistence import load_sets
from repgen.core.representatives import RepresentativeSet
from repgen.models.config import RepgenConfig


@contextmanager
def spinner_progress(
    description: str,
    console: Console | None = None,
    quiet: bool = False,
) -> Generator[Progress, None, None]:
    """Context manager for spinner-style progress display.

    The spinner is suppressed when quiet mode is enabled.

    Args:
        description: Task description to display.
        console: Rich Console instance. If None and not quiet, creates one.
        quiet: If True, suppress the progress display entirely.

    Yields:
        Progress instance (even when quiet, for API consistency).
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console if not quiet else None,
        disable=quiet,
    ) as progress:
        progress.add_task(description=description, total=None)
        yield progress


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library logging through rich.

    DEBUG with ``verbose``, WARNING with ``quiet``, INFO otherwise.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, rich_tracebacks=False)],
        force=True,
    )


def load_config(config_path: Path | None) -> RepgenConfig:
    """Load a YAML configuration file, or the defaults when no path is given."""
    if config_path is None:
        return RepgenConfig()
    return RepgenConfig.from_yaml(config_path)


def exit_with_error(console: Console, error: RepgenError) -> None:
    """Print an error with its suggestion and exit with code 1."""
    console.print(f"\n[red]Error: {error.message}[/red]")
    if error.suggestion:
        console.print(f"\n[dim]{error.suggestion}[/dim]")
    raise typer.Exit(code=1) from None


class QuietConsole:
    """Console wrapper that suppresses output in quiet mode.

    Example:
        >>> console = Console()
        >>> qc = QuietConsole(console, quiet=True)
        >>> qc.print("This won't be shown")  # Suppressed
    """

    def __init__(self, console: Console, quiet: bool = False):
        self._console = console
        self._quiet = quiet

    @property
    def console(self) -> Console:
        """The underlying Rich Console, for output that ignores quiet mode."""
        return self._console

    def print(self, *args: Any, **kwargs: Any) -> None:
        if not self._quiet:
            self._console.print(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._console, name)


def prepare_rep_sets(
    thresholds: list[int],
    kmer_size: int,
    marker: str,
    restore: Path | None = None,
) -> list[RepresentativeSet]:
    """Representative sets to fill, sorted by threshold.

    Sets restored from ``restore`` keep their representatives and fix the
    kmer size of any new set added alongside them.
    """
    rep_sets: dict[int, RepresentativeSet] = {}
    if restore is not None:
        for rep_set in load_sets(restore):
            rep_sets[rep_set.threshold] = rep_set
        if rep_sets:
            kmer_size = next(iter(rep_sets.values())).kmer_size
    for threshold in thresholds:
        if threshold not in rep_sets:
            rep_sets[threshold] = RepresentativeSet(threshold, kmer_size, marker)
    return sorted(rep_sets.values(), key=lambda s: s.threshold)
