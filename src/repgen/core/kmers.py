"""
Kmer sets for sequence similarity.

A KmerSet holds every contiguous substring of length k taken from a
sequence. Similarity between two sequences is the number of kmers they
share; distance is the Jaccard distance between the two kmer sets.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from repgen.core.exceptions import InvalidKmerSizeError


@dataclass(frozen=True)
class KmerSet:
    """Deduplicated set of length-k substrings of a sequence.

    The kmer size is fixed when the set is built. Use :meth:`build` rather
    than the constructor unless the kmers are already known.

    Attributes:
        sequence: Source sequence the kmers were taken from
        k: Kmer length
        kmers: The distinct kmers
    """

    sequence: str
    k: int
    kmers: frozenset[str] = field(repr=False)

    @classmethod
    def build(cls, sequence: str, k: int) -> KmerSet:
        """Extract the kmers of a sequence.

        A sequence of length L yields max(0, L - k + 1) windows, stored
        without duplicates.

        Raises:
            InvalidKmerSizeError: If k is not positive.
        """
        if k <= 0:
            raise InvalidKmerSizeError(k)
        kmers = frozenset(
            sequence[i:i + k] for i in range(len(sequence) - k + 1)
        )
        return cls(sequence=sequence, k=k, kmers=kmers)

    @classmethod
    def from_kmers(cls, kmers: Iterable[str], k: int, sequence: str = "") -> KmerSet:
        """Wrap an existing collection of kmers."""
        if k <= 0:
            raise InvalidKmerSizeError(k)
        return cls(sequence=sequence, k=k, kmers=frozenset(kmers))

    def __len__(self) -> int:
        return len(self.kmers)

    def similarity(self, other: KmerSet) -> int:
        """Number of kmers present in both sets."""
        small, large = (
            (self.kmers, other.kmers)
            if len(self.kmers) <= len(other.kmers)
            else (other.kmers, self.kmers)
        )
        return sum(1 for kmer in small if kmer in large)

    def distance(self, other: KmerSet) -> float:
        """Jaccard distance between the two kmer sets.

        Returns 1.0 when the sets share nothing and 0.0 when they are
        identical (including two empty sets).
        """
        if self.kmers == other.kmers:
            return 0.0
        shared = self.similarity(other)
        if shared == 0:
            return 1.0
        union = len(self.kmers) + len(other.kmers) - shared
        return 1.0 - shared / union
