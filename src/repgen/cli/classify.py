"""
Classify command.

Finds the closest representative of each query protein in every saved
representative set.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from repgen.cli.utils import QuietConsole, exit_with_error, setup_logging, spinner_progress
from repgen.core.exceptions import RepgenError
from repgen.core.persistence import load_sets
from repgen.core.reports import classification_frame
from repgen.core.sequence import read_fasta

console = Console()


def classify(
    queries: Path = typer.Argument(
        ...,
        help="FASTA of query seed proteins",
        exists=True,
        dir_okay=False,
    ),
    sets: Path = typer.Option(
        ...,
        "--sets", "-s",
        help="Directory containing rep<N>.ser files",
        exists=True,
        file_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output", "-o",
        help="Output TSV file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress progress output",
    ),
) -> None:
    """
    Find the closest representatives of query proteins.

    The output has one row per query with, for each set, the closest
    representative (empty when below the set's threshold), the number of
    shared kmers and the kmer distance.

    Example:

        repgen classify queries.faa --sets reps --output placements.tsv
    """
    setup_logging(verbose, quiet)
    out = QuietConsole(console, quiet=quiet)

    try:
        rep_sets = load_sets(sets)
    except RepgenError as e:
        exit_with_error(console, e)

    if not rep_sets:
        console.print(f"\n[yellow]No representative sets found in {sets}[/yellow]")
        console.print("[dim]Representative-set files are named rep<threshold>.ser.[/dim]")
        raise typer.Exit(code=1)

    query_seqs = read_fasta(queries)
    with spinner_progress("Classifying queries...", console, quiet):
        df = classification_frame(query_seqs, rep_sets)
    output.parent.mkdir(parents=True, exist_ok=True)
    df.write_csv(output, separator="\t")

    out.print(
        f"[green]{len(query_seqs):,} queries classified against "
        f"{len(rep_sets)} sets; results in {output}[/green]"
    )
