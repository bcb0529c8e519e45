"""
Main CLI entry point for repgen.

Provides subcommands for each stage of representative-set construction:
- build: Build representative sets from a FASTA file of seed proteins
- classify: Find the closest representatives of query proteins
- curate: Curate genomes from BV-BRC and build representative sets
"""

from __future__ import annotations

import typer
from rich import print as rprint
from rich.console import Console

from repgen import __version__

app = typer.Typer(
    name="repgen",
    help="Representative genome sets from seed protein kmers",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"repgen version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    repgen: representative genome sets from seed protein kmers.

    Curates candidate genomes by seed protein and SSU rRNA quality, then
    selects representatives so that no two share too many seed protein
    kmers.
    """


# Import subcommands
from repgen.cli import build, classify, curate

# Register subcommands
app.command(name="build")(build.build)
app.command(name="classify")(classify.classify)
app.command(name="curate")(curate.curate)


if __name__ == "__main__":
    app()
