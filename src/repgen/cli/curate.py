"""
Curate command.

Runs the full pipeline against BV-BRC: reads a genome evaluation table,
curates the genomes by seed protein and SSU rRNA quality, builds the
representative sets and writes every report.
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
from repgen.clients.bvbrc import BVBRC_API_BASE, BVBRCClient
from repgen.core.curation import GenomeQualityCurator, TaxonomyIndex
from repgen.core.exceptions import RepgenError
from repgen.core.reports import write_curation_outputs
from repgen.core.representatives import build_levels
from repgen.models.genomes import read_genome_inputs
from repgen.models.ratings import QualityRating

console = Console()


def curate(
    evaluation: Path = typer.Argument(
        ...,
        help="Genome evaluation TSV with genome_id, genome_name, lineage and score",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output", "-o",
        help="Output directory",
    ),
    config_path: Path = typer.Option(
        None,
        "--config", "-c",
        help="YAML configuration file",
        exists=True,
        dir_okay=False,
    ),
    taxonomy: Path = typer.Option(
        None,
        "--taxonomy", "-t",
        help="Taxonomy TSV (taxon_id, taxon_rank, genetic_code); fetched from BV-BRC if omitted",
        exists=True,
        dir_okay=False,
    ),
    levels: list[int] = typer.Option(
        None,
        "--level", "-l",
        help="Similarity threshold (repeatable). Defaults to the configured levels",
    ),
    batch_size: int = typer.Option(
        None,
        "--batch-size", "-b",
        help="Distinct sequence hashes per fetch. Defaults to the configured size",
        min=1,
    ),
    min_rating: str = typer.Option(
        None,
        "--min-rating",
        help="Worst rating kept (e.g. NORMAL, SINGLE_SSU). Defaults to the configured rating",
    ),
    restore: Path = typer.Option(
        None,
        "--restore",
        help="Directory of existing rep<N>.ser files whose representatives are kept",
        exists=True,
        file_okay=False,
    ),
    api_url: str = typer.Option(
        BVBRC_API_BASE,
        "--api-url",
        help="BV-BRC data API URL",
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
    Curate genomes from BV-BRC and build representative sets.

    Example:

        repgen curate genomes.eval.tsv --output repgen_out -l 10 -l 50 -l 100 -l 200
    """
    setup_logging(verbose, quiet)
    out = QuietConsole(console, quiet=quiet)
    out.print("\n[bold blue]Genome Curation[/bold blue]\n")

    try:
        config = load_config(config_path)
        rating = QualityRating.parse(min_rating) if min_rating else None
        thresholds = sorted(set(levels)) if levels else list(config.rep_levels)
        genomes = read_genome_inputs(evaluation)
        out.print(f"Read [bold]{len(genomes):,}[/bold] genomes from {evaluation}")

        tax_index = TaxonomyIndex.from_tsv(taxonomy) if taxonomy is not None else None
        with BVBRCClient(base_url=api_url) as client:
            with spinner_progress("Curating genomes...", console, quiet):
                curator = GenomeQualityCurator(
                    client, config.curation, config.kmers, taxonomy=tax_index
                )
                curator.add_genomes(genomes)
                curator.run(batch_size=batch_size, min_rating=rating)

        rep_sets = prepare_rep_sets(
            thresholds, config.kmers.protein_k, config.curation.seed_function, restore
        )
        kmer_config = config.kmers.model_copy(update={"protein_k": rep_sets[0].kmer_size})
        candidates = curator.candidates()
        records = [c.to_representative(kmer_config) for c in candidates]

        with spinner_progress("Selecting representatives...", console, quiet):
            ordered = build_levels(records, rep_sets)
            write_curation_outputs(
                output, candidates, ordered, curator.stats, curator.missing_lineages
            )
    except RepgenError as e:
        exit_with_error(console, e)
    except ValueError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    out.print("\n[bold]Summary:[/bold]")
    out.print(f"  [green]{len(candidates):,}[/green] genomes kept after curation")
    if not quiet:
        table = Table(title="Curation statistics")
        table.add_column("Counter", style="cyan")
        table.add_column("Count", justify="right")
        for name, count in curator.stats.items():
            table.add_row(name, f"{count:,}")
        console.print(table)

        sets_table = Table(title="Representative sets")
        sets_table.add_column("Threshold", justify="right", style="cyan")
        sets_table.add_column("Representatives", justify="right")
        for rep_set in ordered:
            sets_table.add_row(str(rep_set.threshold), f"{len(rep_set):,}")
        console.print(sets_table)
    out.print(f"\n[green]Outputs written to {output}[/green]")
