"""
repgen: representative genome sets from seed protein kmers.

Curates candidate genomes by the quality of their seed protein and SSU rRNA
sequences, then selects representative genomes so that no two
representatives share too many seed protein kmers.
"""

__version__ = "0.1.0"
__author__ = "repgen Team"

from repgen.core.curation import curate_candidates
from repgen.core.kmers import KmerSet
from repgen.core.persistence import load, load_sets, save
from repgen.core.representatives import (
    RepresentativeSet,
    build_representative_set,
    query_nearest,
)

__all__ = [
    "KmerSet",
    "RepresentativeSet",
    "__version__",
    "build_representative_set",
    "curate_candidates",
    "load",
    "load_sets",
    "query_nearest",
    "save",
]
