"""
Candidate genome records.

A CandidateRecord describes one genome as it moves through curation: its
taxonomy and quality score, its seed protein (DNA and amino acids), its best
SSU rRNA, its quality rating and, once representative sets are built, the
closest representative at each similarity level.
"""

from __future__ import annotations

from collections.abc import Sequence as SequenceType
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from repgen.models.ratings import QualityRating

if TYPE_CHECKING:
    from repgen.core.representatives import RepresentativeRecord, Representation
    from repgen.models.config import CurationConfig, KmerConfig

DEFAULT_DOMAIN = "Bacteria"
DEFAULT_GENETIC_CODE = 11
AMBIGUOUS_PROTEIN = "XX"


def is_valid_ssu(rna: str, ambiguity_run: int = 10) -> bool:
    """An SSU rRNA is valid when it is non-empty and has no long run of Ns."""
    return bool(rna) and ("n" * ambiguity_run) not in rna.lower()


@dataclass
class CandidateRecord:
    """A genome under curation.

    Attributes:
        genome_id: Genome ID
        genome_name: Genome name
        domain: Bacteria or Archaea
        genus: Taxonomic ID of the genus (None if unknown)
        species: Taxonomic ID of the species
        genetic_code: Genetic code of the species
        score: External quality score (higher is better)
        rating: Current quality rating
        fid: Seed protein feature ID
        dna: Seed protein DNA sequence
        protein: Seed protein amino acid sequence
        ssu_sequence: Best SSU rRNA sequence
        representation: Closest representative by level threshold
    """

    genome_id: str
    genome_name: str
    domain: str = DEFAULT_DOMAIN
    genus: str | None = None
    species: str | None = None
    genetic_code: int = DEFAULT_GENETIC_CODE
    score: float = 0.0
    rating: QualityRating = QualityRating.NORMAL
    fid: str | None = None
    dna: str | None = None
    protein: str | None = None
    ssu_sequence: str = ""
    representation: dict[int, Representation] = field(default_factory=dict, repr=False)

    def sort_key(self) -> tuple[int, float, str]:
        """Best rating first, then highest score, then genome ID."""
        return (self.rating.rank, -self.score, self.genome_id)

    @property
    def has_ambiguous_protein(self) -> bool:
        return self.protein is not None and AMBIGUOUS_PROTEIN in self.protein.upper()

    def set_ssu_sequences(
        self,
        rnas: SequenceType[str],
        config: CurationConfig,
        kmer_config: KmerConfig,
    ) -> QualityRating:
        """
        Store the best SSU rRNA and rate the genome from all of its SSUs.

        The longest valid sequence is kept. Sequences at least
        ``useful_ssu_len`` long can validate the genome; those at least
        ``min_ssu_len`` long are full length.

        - No usable sequence: BAD_SSU.
        - One usable sequence: SINGLE_SSU for ordinary genomes, to be checked
          later against the genus. NCBI-flagged genomes keep their rating
          unless the sequence is not full length, in which case SHORT_SSU.
        - Several usable sequences: BAD_SSU if any two are farther apart than
          ``max_ssu_distance``, otherwise SHORT_SSU if none is full length.

        Returns:
            The new rating
        """
        self.ssu_sequence = ""
        good = []
        long_count = 0
        for rna in rnas:
            if not is_valid_ssu(rna, config.ssu_ambiguity_run):
                continue
            if len(rna) > len(self.ssu_sequence):
                self.ssu_sequence = rna
            if len(rna) >= config.useful_ssu_len:
                good.append(kmer_config.dna_kmers(rna))
                if len(rna) >= config.min_ssu_len:
                    long_count += 1

        if not good:
            self.rating = QualityRating.BAD_SSU
        elif len(good) == 1:
            if self.rating >= QualityRating.NORMAL:
                self.rating = QualityRating.SINGLE_SSU
            elif long_count < 1:
                self.rating = QualityRating.SHORT_SSU
        else:
            consistent = all(
                good[i].distance(good[j]) <= config.max_ssu_distance
                for i in range(len(good))
                for j in range(i + 1, len(good))
            )
            if not consistent:
                self.rating = QualityRating.BAD_SSU
            elif long_count < 1:
                self.rating = QualityRating.SHORT_SSU
        return self.rating

    def to_representative(self, kmer_config: KmerConfig) -> RepresentativeRecord:
        """Representative record built from the seed protein."""
        from repgen.core.representatives import RepresentativeRecord

        return RepresentativeRecord(
            rep_id=self.genome_id,
            name=self.genome_name,
            feature_id=self.fid or "",
            kmers=kmer_config.protein_kmers(self.protein or ""),
        )

    def rep_genome(self, level: int) -> str:
        """ID of the representative at a level, or an empty string."""
        rep = self.representation.get(level)
        if rep is None or rep.rep_id is None:
            return ""
        return rep.rep_id
