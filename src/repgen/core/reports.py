"""
Report writers for curated genomes and representative sets.

Tables are built as polars DataFrames and written tab-separated. FASTA
exports go through repgen.core.sequence.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence as SequenceType
from pathlib import Path

import polars as pl

from repgen.core.persistence import save_sets
from repgen.core.representatives import RepresentativeSet
from repgen.core.sequence import Sequence, write_fasta
from repgen.core.statistics import RunStatistics
from repgen.models.candidates import CandidateRecord
from repgen.models.genomes import GenomeInput

logger = logging.getLogger(__name__)

GENOME_REPORT = "genome.report.tbl"
STATS_REPORT = "curation.stats.tbl"
MISSING_TAXA = "missing.taxons.tbl"
SEED_FASTA = "seedProt.fa"
SEED_DNA_FASTA = "PhenTrnaSyntAlph.fa"
PROTEIN_FASTA = "allProts.fa"
SSU_FASTA = "allSsu.fa"

LIST_SCHEMA = {
    "genome_id": pl.Utf8,
    "genome_name": pl.Utf8,
    "domain": pl.Utf8,
    "genus": pl.Utf8,
    "species": pl.Utf8,
    "rep_id": pl.Utf8,
    "similarity": pl.Int64,
    "distance": pl.Float64,
}

STATS_SCHEMA = {
    "rep_id": pl.Utf8,
    "rep_name": pl.Utf8,
    "rating": pl.Utf8,
    "members": pl.Int64,
}


def assign_representatives(
    candidates: Iterable[CandidateRecord],
    rep_sets: SequenceType[RepresentativeSet],
) -> None:
    """
    Record each candidate's closest representative at every level.

    A representative is always assigned to itself.
    """
    for candidate in candidates:
        for rep_set in rep_sets:
            kmers = rep_set.kmers_for(candidate.protein or "")
            candidate.representation[rep_set.threshold] = rep_set.locate(
                candidate.genome_id, kmers
            )


def genome_report_frame(
    candidates: SequenceType[CandidateRecord], levels: SequenceType[int]
) -> pl.DataFrame:
    """One row per genome with its rating, taxonomy and representatives."""
    columns: dict[str, list] = {
        "genome_id": [c.genome_id for c in candidates],
        "genome_name": [c.genome_name for c in candidates],
        "score": [c.score for c in candidates],
        "rating": [c.rating.name for c in candidates],
        "genetic_code": [c.genetic_code for c in candidates],
        "domain": [c.domain for c in candidates],
        "genus": [c.genus or "" for c in candidates],
        "species": [c.species or "" for c in candidates],
    }
    for level in levels:
        columns[f"rep{level}"] = [c.rep_genome(level) for c in candidates]
    return pl.DataFrame(
        columns,
        schema={
            "genome_id": pl.Utf8,
            "genome_name": pl.Utf8,
            "score": pl.Float64,
            "rating": pl.Utf8,
            "genetic_code": pl.Int64,
            "domain": pl.Utf8,
            "genus": pl.Utf8,
            "species": pl.Utf8,
            **{f"rep{level}": pl.Utf8 for level in levels},
        },
    )


def list_frame(
    candidates: SequenceType[CandidateRecord], rep_set: RepresentativeSet
) -> pl.DataFrame:
    """Placement of every genome in one representative set."""
    rows = []
    for c in candidates:
        rep = c.representation.get(rep_set.threshold)
        rows.append(
            {
                "genome_id": c.genome_id,
                "genome_name": c.genome_name,
                "domain": c.domain,
                "genus": c.genus or "",
                "species": c.species or "",
                "rep_id": rep.rep_id if rep and rep.rep_id else "",
                "similarity": rep.similarity if rep else 0,
                "distance": round(rep.distance, 4) if rep else 1.0,
            }
        )
    return pl.DataFrame(rows, schema=LIST_SCHEMA)


def rep_stats_frame(
    candidates: SequenceType[CandidateRecord], rep_set: RepresentativeSet
) -> pl.DataFrame:
    """Member counts of each representative, largest group first."""
    members: Counter[str] = Counter()
    ratings: dict[str, str] = {}
    for c in candidates:
        ratings[c.genome_id] = c.rating.name
        rep = c.representation.get(rep_set.threshold)
        if rep is not None and rep.is_represented and rep.rep_id is not None:
            members[rep.rep_id] += 1

    rows = [
        {
            "rep_id": rec.rep_id,
            "rep_name": rec.name,
            "rating": ratings.get(rec.rep_id, ""),
            "members": members[rec.rep_id],
        }
        for rec in rep_set
    ]
    return pl.DataFrame(rows, schema=STATS_SCHEMA).sort(
        ["members", "rep_id"], descending=[True, False]
    )


def missing_taxa_frame(genomes: SequenceType[GenomeInput]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "genome_id": [g.genome_id for g in genomes],
            "genome_name": [g.genome_name for g in genomes],
            "score": [g.score for g in genomes],
            "lineage": [g.lineage for g in genomes],
        },
        schema={
            "genome_id": pl.Utf8,
            "genome_name": pl.Utf8,
            "score": pl.Float64,
            "lineage": pl.Utf8,
        },
    )


def classification_frame(
    queries: SequenceType[Sequence], rep_sets: SequenceType[RepresentativeSet]
) -> pl.DataFrame:
    """Closest representative of each query sequence at every level.

    Columns: query_id, then rep<N>, sim<N> and dist<N> per level. A query
    labelled with a representative's genome ID is reported as that
    representative.
    """
    columns: dict[str, list] = {"query_id": [q.label for q in queries]}
    schema: dict[str, pl.DataType] = {"query_id": pl.Utf8}
    for rep_set in rep_sets:
        t = rep_set.threshold
        reps = [rep_set.locate(q.label, rep_set.kmers_for(q.sequence)) for q in queries]
        columns[f"rep{t}"] = [r.rep_id if r.is_represented else "" for r in reps]
        columns[f"sim{t}"] = [r.similarity for r in reps]
        columns[f"dist{t}"] = [round(r.distance, 4) for r in reps]
        schema.update({f"rep{t}": pl.Utf8, f"sim{t}": pl.Int64, f"dist{t}": pl.Float64})
    return pl.DataFrame(columns, schema=schema)


def write_list_files(
    directory: Path,
    candidates: SequenceType[CandidateRecord],
    rep_sets: SequenceType[RepresentativeSet],
) -> list[Path]:
    """Write ``rep<N>.list.tbl`` and ``rep<N>.stats.tbl`` for every level."""
    paths = []
    for rep_set in rep_sets:
        list_path = directory / rep_set.list_file_name
        list_frame(candidates, rep_set).write_csv(list_path, separator="\t")
        stats_path = directory / f"{rep_set}.stats.tbl"
        rep_stats_frame(candidates, rep_set).write_csv(stats_path, separator="\t")
        logger.info("Wrote %s and %s.", list_path, stats_path)
        paths.extend([list_path, stats_path])
    return paths


def write_rep_fasta(path: Path, rep_set: RepresentativeSet) -> int:
    """Seed proteins of the representatives, labelled by genome ID."""
    return write_fasta(
        path, (Sequence(rec.rep_id, rec.name, rec.sequence) for rec in rep_set)
    )


def write_seed_fasta(
    path: Path, rep_set: RepresentativeSet, candidates: SequenceType[CandidateRecord]
) -> int:
    """Seed proteins of one set's representatives labelled by feature ID, with the domain as comment."""
    by_id = {c.genome_id: c for c in candidates}
    records = []
    for rec in rep_set:
        candidate = by_id.get(rec.rep_id)
        domain = candidate.domain if candidate else ""
        records.append(Sequence(rec.feature_id or rec.rep_id, domain, rec.sequence))
    return write_fasta(path, records)


def write_marker_fastas(
    directory: Path, candidates: SequenceType[CandidateRecord]
) -> None:
    """Write the seed DNA, seed protein and SSU rRNA of every genome."""
    dna, proteins, ssus = [], [], []
    for c in candidates:
        label = c.fid or c.genome_id
        dna.append(Sequence(label, f"{c.genome_id}\t{c.genome_name}", c.dna or ""))
        proteins.append(Sequence(label, c.genome_name, c.protein or ""))
        ssus.append(Sequence(label, c.genome_name, c.ssu_sequence))
    write_fasta(directory / SEED_DNA_FASTA, dna)
    write_fasta(directory / PROTEIN_FASTA, proteins)
    write_fasta(directory / SSU_FASTA, ssus)
    logger.info("Seed protein and SSU FASTA files written for %d genomes.", len(candidates))


def write_curation_outputs(
    directory: Path,
    candidates: SequenceType[CandidateRecord],
    rep_sets: SequenceType[RepresentativeSet],
    stats: RunStatistics | None = None,
    missing: SequenceType[GenomeInput] = (),
) -> None:
    """Write every output of a curation run into a directory.

    Representative sets are saved, each genome is assigned to its closest
    representatives, and the genome report, list and stats files, FASTA
    exports and missing-taxonomy table are written.
    """
    directory.mkdir(parents=True, exist_ok=True)
    rep_sets = sorted(rep_sets, key=lambda s: s.threshold)
    save_sets(rep_sets, directory)
    assign_representatives(candidates, rep_sets)

    levels = [s.threshold for s in rep_sets]
    genome_report_frame(candidates, levels).write_csv(
        directory / GENOME_REPORT, separator="\t"
    )
    write_list_files(directory, candidates, rep_sets)
    for rep_set in rep_sets:
        write_rep_fasta(directory / f"{rep_set}.faa", rep_set)
    if rep_sets:
        write_seed_fasta(directory / SEED_FASTA, rep_sets[0], candidates)
    write_marker_fastas(directory, candidates)
    missing_taxa_frame(missing).write_csv(directory / MISSING_TAXA, separator="\t")
    if stats is not None:
        stats.write(directory / STATS_REPORT)
    logger.info("Curation outputs written to %s.", directory)
