"""
Input genome records.

The curation pipeline starts from a genome evaluation table: one row per
genome with its ID, name, taxonomic lineage and quality score.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl
from pydantic import BaseModel, Field

from repgen.core.exceptions import InputFileError

REQUIRED_COLUMNS = ("genome_id", "genome_name", "lineage", "score")


class GenomeInput(BaseModel):
    """One row of the genome evaluation table.

    Attributes:
        genome_id: Genome ID (e.g., 83333.1)
        genome_name: Genome name
        lineage: Taxonomic IDs from the root down, separated by "::"
        score: Quality score (higher is better)
    """

    genome_id: str = Field(description="Genome ID (e.g., 83333.1)")
    genome_name: str = Field(default="", description="Genome name")
    lineage: str = Field(default="", description="Taxonomic IDs separated by '::'")
    score: float = Field(default=0.0, description="Quality score")

    model_config = {"frozen": True}


def read_genome_inputs(path: Path) -> list[GenomeInput]:
    """Load the genome evaluation table.

    Raises:
        InputFileError: If the file cannot be read or lacks required columns.
    """
    try:
        df = pl.read_csv(
            path,
            separator="\t",
            schema_overrides={"genome_id": pl.Utf8, "lineage": pl.Utf8},
        )
    except (OSError, pl.exceptions.ComputeError, pl.exceptions.NoDataError) as e:
        raise InputFileError(str(path)) from e

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise InputFileError(str(path), missing)

    return [
        GenomeInput(
            genome_id=row["genome_id"],
            genome_name=row["genome_name"] or "",
            lineage=row["lineage"] or "",
            score=row["score"] if row["score"] is not None else 0.0,
        )
        for row in df.iter_rows(named=True)
        if row["genome_id"]
    ]


def write_genome_inputs(path: Path, genomes: list[GenomeInput]) -> None:
    pl.DataFrame(
        {
            "genome_id": [g.genome_id for g in genomes],
            "genome_name": [g.genome_name for g in genomes],
            "lineage": [g.lineage for g in genomes],
            "score": [g.score for g in genomes],
        },
        schema={
            "genome_id": pl.Utf8,
            "genome_name": pl.Utf8,
            "lineage": pl.Utf8,
            "score": pl.Float64,
        },
    ).write_csv(path, separator="\t")
