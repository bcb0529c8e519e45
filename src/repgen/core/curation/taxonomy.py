"""
Taxonomy index and lineage parsing.

The index knows which taxonomic IDs are genera and which are species, and
the genetic code of each species. A lineage is a list of taxonomic IDs
separated by double colons, from the root down.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import polars as pl

from repgen.core.exceptions import InputFileError
from repgen.models.candidates import DEFAULT_DOMAIN, DEFAULT_GENETIC_CODE

logger = logging.getLogger(__name__)

LINEAGE_SEPARATOR = "::"
ARCHAEA_TAX_ID = "2157"

TAXONOMY_COLUMNS = ("taxon_id", "taxon_rank", "genetic_code")


@dataclass(frozen=True)
class Lineage:
    """Taxonomic placement extracted from a lineage string."""

    domain: str = DEFAULT_DOMAIN
    genus: str | None = None
    species: str | None = None
    genetic_code: int = DEFAULT_GENETIC_CODE


@dataclass
class TaxonomyIndex:
    """Genus IDs and species genetic codes.

    Attributes:
        genera: Taxonomic IDs of genera
        species: Genetic code by species taxonomic ID
    """

    genera: set[str] = field(default_factory=set)
    species: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.genera) + len(self.species)

    def is_genus(self, tax_id: str) -> bool:
        return tax_id in self.genera

    def species_genetic_code(self, tax_id: str) -> int:
        """Genetic code of a species, or 0 if the ID is not a known species."""
        return self.species.get(tax_id, 0)

    def add(self, tax_id: str, rank: str, genetic_code: int | None = None) -> None:
        """Record a taxon. Ranks other than genus and species are ignored."""
        if rank == "genus":
            self.genera.add(tax_id)
        elif rank == "species":
            self.species[tax_id] = genetic_code or DEFAULT_GENETIC_CODE

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> TaxonomyIndex:
        """Build an index from taxonomy rows with taxon_id, taxon_rank and genetic_code."""
        index = cls()
        for rec in records:
            tax_id = rec.get("taxon_id")
            if tax_id is None:
                continue
            code = rec.get("genetic_code")
            index.add(str(tax_id), str(rec.get("taxon_rank", "")), int(code) if code else None)
        logger.info(
            "Taxonomy index has %d genera and %d species.",
            len(index.genera), len(index.species),
        )
        return index

    @classmethod
    def from_tsv(cls, path: Path) -> TaxonomyIndex:
        """Load an index from a tab-separated file with the taxonomy columns."""
        try:
            df = pl.read_csv(
                path,
                separator="\t",
                schema_overrides={"taxon_id": pl.Utf8, "taxon_rank": pl.Utf8},
            )
        except (OSError, pl.exceptions.ComputeError, pl.exceptions.NoDataError) as e:
            raise InputFileError(str(path)) from e
        missing = [c for c in TAXONOMY_COLUMNS if c not in df.columns]
        if missing:
            raise InputFileError(str(path), missing)
        return cls.from_records(df.iter_rows(named=True))

    def to_tsv(self, path: Path) -> None:
        rows = [
            {"taxon_id": g, "taxon_rank": "genus", "genetic_code": None}
            for g in sorted(self.genera)
        ] + [
            {"taxon_id": s, "taxon_rank": "species", "genetic_code": gc}
            for s, gc in sorted(self.species.items())
        ]
        pl.DataFrame(
            rows,
            schema={"taxon_id": pl.Utf8, "taxon_rank": pl.Utf8, "genetic_code": pl.Int64},
        ).write_csv(path, separator="\t")

    def parse_lineage(self, lineage: str) -> Lineage:
        """
        Find the domain, genus, species and genetic code in a lineage.

        The last genus and the last species in the lineage win. The Archaea
        domain ID switches the domain; everything else defaults to Bacteria
        with genetic code 11.
        """
        domain = DEFAULT_DOMAIN
        genus = None
        species = None
        genetic_code = DEFAULT_GENETIC_CODE
        for tax_id in lineage.split(LINEAGE_SEPARATOR):
            tax_id = tax_id.strip()
            if not tax_id:
                continue
            if self.is_genus(tax_id):
                genus = tax_id
            elif tax_id == ARCHAEA_TAX_ID:
                domain = "Archaea"
            else:
                code = self.species_genetic_code(tax_id)
                if code:
                    genetic_code = code
                    species = tax_id
        return Lineage(domain, genus, species, genetic_code)
