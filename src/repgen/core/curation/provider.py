"""
Interface to the remote genome database.

The curator only needs a handful of bulk queries, described here as a
Protocol so that the BV-BRC client and in-memory test doubles are
interchangeable.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from repgen.core.curation.taxonomy import TaxonomyIndex

REFERENCE = "Reference"
REPRESENTATIVE = "Representative"


@dataclass(frozen=True)
class FeatureRecord:
    """A genome feature as returned by the provider.

    Attributes:
        genome_id: ID of the genome containing the feature
        feature_id: Feature ID (e.g. fig|83333.1.peg.3)
        product: Functional annotation
        na_md5: MD5 of the nucleotide sequence (None if absent)
        aa_md5: MD5 of the protein sequence (None if absent)
        feature_type: Feature type (CDS, rRNA, ...)
    """

    genome_id: str
    feature_id: str | None
    product: str | None
    na_md5: str | None = None
    aa_md5: str | None = None
    feature_type: str | None = None


class SequenceProvider(Protocol):
    """Bulk access to taxonomy, features and sequences.

    Implementations must tolerate partial results: unknown IDs and hashes
    are simply absent from what is returned.
    """

    def get_taxonomy(self) -> TaxonomyIndex:
        """Genus IDs and species genetic codes."""
        ...

    def get_reference_genomes(self) -> dict[str, str]:
        """Map of genome ID to "Reference" or "Representative"."""
        ...

    def get_seed_features(
        self, genome_ids: Iterable[str], function: str
    ) -> list[FeatureRecord]:
        """Features whose product matches the seed function."""
        ...

    def get_rna_features(self, genome_ids: Iterable[str]) -> list[FeatureRecord]:
        """rRNA features of the given genomes."""
        ...

    def get_sequences(self, md5s: Iterable[str]) -> dict[str, str]:
        """Map of MD5 to sequence."""
        ...
