"""
Build command for representative sets.

Reads a FASTA file of seed proteins (one per genome) and selects
representatives at one or more similarity levels. Genomes are considered in
file order, so the input should be sorted best genome first.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from repgen.cli.utils import (
    QuietConsole,
    exit_with_error,
    load_config,
    prepare_rep_sets,
    setup_logging,
    spinner_progress,
)
from repgen.core.exceptions import RepgenError
from repgen.core.persistence import record_from_sequence, save_sets
from repgen.core.reports import classification_frame
from repgen.core.representatives import build_levels
from repgen.core.sequence import read_fasta

console = Console()

MEMBERSHIP_FILE = "membership.tbl"


def build(
    proteins: Path = typer.Argument(
        ...,
        help="FASTA of seed proteins: label is the genome ID, comment is "
        "'<feature_id><TAB><name>' or just the name",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output", "-o",
        help="Output directory for rep<N>.ser files",
    ),
    levels: list[int] = typer.Option(
        None,
        "--level", "-l",
        help="Similarity threshold (repeatable). Defaults to the configured levels",
    ),
    kmer_size: int = typer.Option(
        None,
        "--kmer-size", "-k",
        help="Protein kmer size. Defaults to the configured size",
    ),
    config_path: Path = typer.Option(
        None,
        "--config", "-c",
        help="YAML configuration file",
        exists=True,
        dir_okay=False,
    ),
    restore: Path = typer.Option(
        None,
        "--restore",
        help="Directory of existing rep<N>.ser files whose representatives are kept",
        exists=True,
        file_okay=False,
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
    Build representative sets from seed proteins.

    Example:

        repgen build seeds.faa --output reps -l 50 -l 100 -l 200
    """
    setup_logging(verbose, quiet)
    out = QuietConsole(console, quiet=quiet)
    out.print("\n[bold blue]Representative Set Build[/bold blue]\n")

    try:
        config = load_config(config_path)
        k = kmer_size if kmer_size is not None else config.kmers.protein_k
        thresholds = sorted(set(levels)) if levels else list(config.rep_levels)

        rep_sets = prepare_rep_sets(thresholds, k, config.curation.seed_function, restore)
        k = rep_sets[0].kmer_size

        sequences = read_fasta(proteins)
        records = [record_from_sequence(seq, k) for seq in sequences if seq.sequence]
        out.print(f"Read [bold]{len(records):,}[/bold] seed proteins from {proteins}")

        with spinner_progress("Selecting representatives...", console, quiet):
            ordered = build_levels(records, rep_sets)
            save_sets(ordered, output)
            classification_frame(sequences, ordered).write_csv(
                output / MEMBERSHIP_FILE, separator="\t"
            )
    except RepgenError as e:
        exit_with_error(console, e)
    except ValueError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    table = Table(title="Representative sets")
    table.add_column("Threshold", justify="right", style="cyan")
    table.add_column("Kmer size", justify="right")
    table.add_column("Representatives", justify="right")
    for rep_set in ordered:
        table.add_row(str(rep_set.threshold), str(rep_set.kmer_size), f"{len(rep_set):,}")
    if not quiet:
        console.print(table)
    out.print(f"\n[green]Representative sets saved to {output}[/green]")
