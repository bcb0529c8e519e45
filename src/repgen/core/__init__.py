"""
Core algorithms: kmer sets, representative-set admission and lookup,
persistence and run statistics.
"""

from repgen.core.kmers import KmerSet
from repgen.core.representatives import (
    Admission,
    Representation,
    RepresentativeRecord,
    RepresentativeSet,
    build_levels,
    build_representative_set,
    find_nearest,
    query_nearest,
)
from repgen.core.sequence import Sequence, read_fasta, write_fasta
from repgen.core.statistics import RunStatistics

__all__ = [
    "Admission",
    "KmerSet",
    "Representation",
    "RepresentativeRecord",
    "RepresentativeSet",
    "RunStatistics",
    "Sequence",
    "build_levels",
    "build_representative_set",
    "find_nearest",
    "query_nearest",
    "read_fasta",
    "write_fasta",
]
