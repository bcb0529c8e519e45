"""
Pydantic configuration models for repgen.

These models define the kmer sizes used for protein and nucleotide
comparison, the curation thresholds applied to SSU rRNA sequences, and the
similarity levels of the representative sets. Configuration can be loaded
from YAML files or built from CLI arguments. All models are frozen: a
configuration value is created once and passed explicitly to everything
that builds kmer sets.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from repgen.core.kmers import KmerSet
from repgen.models.ratings import QualityRating

logger = logging.getLogger(__name__)

# Role of the default seed protein
SEED_FUNCTION = "Phenylalanyl-tRNA synthetase alpha chain"

DEFAULT_REP_LEVELS = (10, 50, 100, 200)


class KmerConfig(BaseModel):
    """Kmer sizes for protein and nucleotide comparison."""

    protein_k: int = Field(
        default=8,
        ge=1,
        description="Kmer size for protein sequences (seed protein)",
    )
    dna_k: int = Field(
        default=15,
        ge=1,
        description="Kmer size for nucleotide sequences (SSU rRNA)",
    )

    model_config = {"frozen": True}

    def protein_kmers(self, sequence: str) -> KmerSet:
        """Build a protein kmer set with the configured protein kmer size."""
        return KmerSet.build(sequence, self.protein_k)

    def dna_kmers(self, sequence: str) -> KmerSet:
        """Build a nucleotide kmer set with the configured DNA kmer size."""
        return KmerSet.build(sequence, self.dna_k)


class CurationConfig(BaseModel):
    """
    Configuration for the genome curation pipeline.

    SSU rRNA validation:
        - Sequences shorter than useful_ssu_len are fragments and cannot
          validate a genome.
        - Sequences at least min_ssu_len long count as full length.
        - Two validating sequences from the same genome must be within
          max_ssu_distance of each other.
        - A single SSU rRNA is accepted when it is within
          max_genus_ssu_distance of the reference SSU for its genus.
    """

    batch_size: int = Field(
        default=500,
        ge=1,
        description="Number of distinct sequence hashes fetched per batch",
    )
    seed_function: str = Field(
        default=SEED_FUNCTION,
        description="Functional role of the seed protein",
    )
    min_ssu_len: int = Field(
        default=1400,
        ge=1,
        description="Minimum length of a full-length SSU rRNA",
    )
    useful_ssu_len: int = Field(
        default=700,
        ge=1,
        description="Minimum length of an SSU rRNA usable for validation",
    )
    max_ssu_distance: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Maximum kmer distance between SSU rRNAs of one genome",
    )
    max_genus_ssu_distance: float = Field(
        default=0.75,
        ge=0,
        le=1,
        description="Maximum kmer distance from the genus reference SSU rRNA",
    )
    ssu_ambiguity_run: int = Field(
        default=10,
        ge=1,
        description="Length of an ambiguity-code run that invalidates an SSU rRNA",
    )
    min_rating: QualityRating = Field(
        default=QualityRating.SINGLE_SSU,
        description="Worst rating kept after pruning",
    )

    model_config = {"frozen": True}

    @field_validator("min_rating", mode="before")
    @classmethod
    def parse_rating(cls, value: Any) -> Any:
        if isinstance(value, str):
            return QualityRating.parse(value)
        return value

    @model_validator(mode="after")
    def validate_ssu_lengths(self) -> Self:
        """Usable length must not exceed full length."""
        if self.useful_ssu_len > self.min_ssu_len:
            msg = (
                f"useful_ssu_len ({self.useful_ssu_len}) "
                f"must be <= min_ssu_len ({self.min_ssu_len})"
            )
            raise ValueError(msg)
        return self


class RepgenConfig(BaseModel):
    """Top-level configuration: kmer sizes, curation and representative levels."""

    kmers: KmerConfig = Field(default_factory=KmerConfig)
    curation: CurationConfig = Field(default_factory=CurationConfig)
    rep_levels: tuple[int, ...] = Field(
        default=DEFAULT_REP_LEVELS,
        description="Similarity thresholds of the representative sets",
    )

    model_config = {"frozen": True}

    @field_validator("rep_levels", mode="after")
    @classmethod
    def validate_levels(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        """Levels must be distinct positive integers; they are stored sorted."""
        if not value:
            msg = "At least one representative level is required"
            raise ValueError(msg)
        if any(level <= 0 for level in value):
            msg = f"Representative levels must be positive, got {list(value)}"
            raise ValueError(msg)
        if len(set(value)) != len(value):
            msg = f"Representative levels must be distinct, got {list(value)}"
            raise ValueError(msg)
        return tuple(sorted(value))

    @classmethod
    def from_yaml(cls, path: Path) -> RepgenConfig:
        """
        Load configuration from a YAML file.

        The file uses the nested sections ``kmers``, ``curation`` and
        ``rep_levels``. Missing keys take their defaults; unknown keys are
        ignored.

        Raises:
            FileNotFoundError: If the YAML file does not exist.
            ValueError: If the YAML contains invalid values.
        """
        import yaml

        raw = yaml.safe_load(path.read_text())
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            msg = f"YAML config must be a mapping, got {type(raw).__name__}"
            raise ValueError(msg)

        kwargs: dict[str, Any] = {}
        kmers = raw.get("kmers") or {}
        if kmers:
            kwargs["kmers"] = KmerConfig(
                **{k: v for k, v in kmers.items() if k in KmerConfig.model_fields}
            )
        curation = raw.get("curation") or {}
        if curation:
            kwargs["curation"] = CurationConfig(
                **{k: v for k, v in curation.items() if k in CurationConfig.model_fields}
            )
        if raw.get("rep_levels") is not None:
            kwargs["rep_levels"] = tuple(raw["rep_levels"])
        return cls(**kwargs)

    def to_yaml(self, path: Path) -> None:
        """Write configuration to a YAML file."""
        path.write_text(self.to_yaml_str())

    def to_yaml_str(self) -> str:
        """Serialize configuration as a YAML string."""
        import yaml

        data = {
            "kmers": self.kmers.model_dump(),
            "curation": self.curation.model_dump(mode="json"),
            "rep_levels": list(self.rep_levels),
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False)
