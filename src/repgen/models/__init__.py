"""
Data models for repgen.

Provides quality ratings, candidate genome records, evaluation-table rows
and the pydantic configuration models.
"""

from repgen.models.candidates import CandidateRecord
from repgen.models.config import CurationConfig, KmerConfig, RepgenConfig
from repgen.models.genomes import GenomeInput, read_genome_inputs
from repgen.models.ratings import RATING_ORDER, QualityRating

__all__ = [
    "RATING_ORDER",
    "CandidateRecord",
    "CurationConfig",
    "GenomeInput",
    "KmerConfig",
    "QualityRating",
    "RepgenConfig",
    "read_genome_inputs",
]
