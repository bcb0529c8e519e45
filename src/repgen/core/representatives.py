"""
Representative sets and the greedy admission algorithm.

A representative set holds exemplar genomes, each identified by the kmers of
its seed protein. A candidate is *covered* when it shares at least
``threshold`` kmers with some representative; otherwise it is admitted as a
new representative. Candidates are processed in order, so every pair of
representatives shares fewer than ``threshold`` kmers. The membership of a
finished set depends on the candidate order, which callers must keep
deterministic.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence as SequenceType
from dataclasses import dataclass, replace

from repgen.core.exceptions import InvalidKmerSizeError, InvalidThresholdError
from repgen.core.kmers import KmerSet
from repgen.core.sequence import Sequence

logger = logging.getLogger(__name__)

DEFAULT_MARKER = "Phenylalanyl-tRNA synthetase alpha chain"


@dataclass(frozen=True)
class RepresentativeRecord:
    """One representative genome.

    Attributes:
        rep_id: Genome ID
        name: Genome name
        feature_id: ID of the seed protein feature the kmers came from
        kmers: Kmers of the seed protein
    """

    rep_id: str
    name: str
    feature_id: str
    kmers: KmerSet

    @property
    def sequence(self) -> str:
        return self.kmers.sequence

    def similarity(self, kmers: KmerSet) -> int:
        return self.kmers.similarity(kmers)

    def to_sequence(self) -> Sequence:
        """FASTA form: label is the genome ID, comment is feature ID and name."""
        return Sequence(self.rep_id, f"{self.feature_id}\t{self.name}", self.sequence)


@dataclass(frozen=True)
class Representation:
    """Outcome of a nearest-representative query.

    Attributes:
        rep_id: ID of the closest representative, or None if nothing matched
        similarity: Kmers shared with the closest representative
        threshold: Threshold of the set that was searched
        distance: Kmer distance to the closest representative (1.0 if none)
    """

    rep_id: str | None
    similarity: int
    threshold: int
    distance: float = 1.0

    @property
    def is_represented(self) -> bool:
        """True when the similarity meets the set's threshold."""
        return self.similarity >= self.threshold


@dataclass(frozen=True)
class Admission:
    """Result of offering a candidate to a representative set."""

    admitted: bool
    representation: Representation

    @property
    def covered(self) -> bool:
        return not self.admitted


class RepresentativeSet:
    """
    A collection of representative genomes at one similarity threshold.

    Records are kept in insertion order and keyed by genome ID.

    Example:
        >>> rep_set = RepresentativeSet(threshold=100, kmer_size=8)
        >>> result = rep_set.observe_sequence("83333.1", "E. coli", "fig|83333.1.peg.3", protein)
        >>> result.admitted
        True
    """

    def __init__(
        self,
        threshold: int,
        kmer_size: int,
        marker: str = DEFAULT_MARKER,
    ) -> None:
        if threshold <= 0:
            raise InvalidThresholdError(threshold)
        # Validates the kmer size up front.
        KmerSet.build("", kmer_size)
        self.threshold = threshold
        self.kmer_size = kmer_size
        self.marker = marker
        self._records: dict[str, RepresentativeRecord] = {}

    def __repr__(self) -> str:
        return f"RepresentativeSet(threshold={self.threshold}, k={self.kmer_size}, size={len(self)})"

    def __str__(self) -> str:
        return f"rep{self.threshold}"

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, rep_id: object) -> bool:
        return rep_id in self._records

    def __iter__(self) -> Iterator[RepresentativeRecord]:
        return iter(self._records.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RepresentativeSet):
            return NotImplemented
        return (
            self.threshold == other.threshold
            and self.kmer_size == other.kmer_size
            and self.marker == other.marker
            and self.sequence_map() == other.sequence_map()
        )

    __hash__ = None  # type: ignore[assignment]

    def get(self, rep_id: str) -> RepresentativeRecord | None:
        return self._records.get(rep_id)

    def ids(self) -> list[str]:
        return list(self._records)

    def sequence_map(self) -> dict[str, str]:
        """Map of representative ID to seed protein sequence."""
        return {rep_id: rec.sequence for rep_id, rec in self._records.items()}

    @property
    def list_file_name(self) -> str:
        return f"rep{self.threshold}.list.tbl"

    def kmers_for(self, sequence: str) -> KmerSet:
        """Build a kmer set compatible with this set's kmer size."""
        return KmerSet.build(sequence, self.kmer_size)

    def make_record(
        self, rep_id: str, name: str, feature_id: str, sequence: str
    ) -> RepresentativeRecord:
        return RepresentativeRecord(rep_id, name, feature_id, self.kmers_for(sequence))

    def conform(self, record: RepresentativeRecord) -> RepresentativeRecord:
        """Return the record with kmers built at this set's kmer size.

        Raises:
            InvalidKmerSizeError: If the sizes differ and the record has no
                sequence to rebuild from.
        """
        if record.kmers.k == self.kmer_size:
            return record
        if not record.sequence:
            raise InvalidKmerSizeError(record.kmers.k, expected=self.kmer_size)
        return replace(record, kmers=self.kmers_for(record.sequence))

    def add(self, record: RepresentativeRecord) -> None:
        """Insert a record without checking coverage."""
        record = self.conform(record)
        self._records[record.rep_id] = record

    def find_nearest(self, kmers: KmerSet) -> Representation:
        """Closest representative to a kmer set. See :func:`find_nearest`."""
        return find_nearest(self, kmers)

    def locate(self, genome_id: str, kmers: KmerSet) -> Representation:
        """Closest representative for a genome, which may itself be a representative.

        A representative always represents itself, however short its seed
        protein, with distance 0.0.
        """
        if genome_id in self._records:
            return Representation(
                genome_id, max(len(kmers), self.threshold), self.threshold, 0.0
            )
        return find_nearest(self, kmers)

    def is_covered(self, kmers: KmerSet) -> bool:
        """True as soon as any representative meets the threshold."""
        return any(rec.similarity(kmers) >= self.threshold for rec in self)

    def observe(self, record: RepresentativeRecord) -> Admission:
        """
        Offer a candidate to the set.

        The candidate is admitted as a new representative when no existing
        representative shares at least ``threshold`` kmers with it. A covered
        candidate leaves the set unchanged. Kmers built at another size are
        rebuilt at the set's kmer size first.
        """
        record = self.conform(record)
        rep = self.find_nearest(record.kmers)
        if rep.is_represented:
            return Admission(admitted=False, representation=rep)
        self.add(record)
        return Admission(admitted=True, representation=rep)

    def observe_sequence(
        self, rep_id: str, name: str, feature_id: str, sequence: str
    ) -> Admission:
        """Build a record for a seed protein and offer it to the set."""
        return self.observe(self.make_record(rep_id, name, feature_id, sequence))

    def add_all(self, records: Iterable[RepresentativeRecord]) -> int:
        """Offer each record in order.

        Returns:
            Number of new representatives admitted
        """
        return sum(1 for record in records if self.observe(record).admitted)


def find_nearest(rep_set: RepresentativeSet, kmers: KmerSet) -> Representation:
    """
    Find the representative sharing the most kmers with a query.

    Ties on similarity go to the representative whose ID sorts first. A
    representative sharing no kmers is never reported, so an empty set (or a
    query unrelated to every representative) yields a Representation with no
    ID, similarity 0 and distance 1.0. The set is not modified.
    """
    best: RepresentativeRecord | None = None
    best_score = 0
    for rec in rep_set:
        score = rec.similarity(kmers)
        if score > best_score or (
            score == best_score and best is not None and rec.rep_id < best.rep_id
        ):
            best = rec
            best_score = score

    if best is None:
        return Representation(None, 0, rep_set.threshold, 1.0)
    return Representation(
        best.rep_id, best_score, rep_set.threshold, best.kmers.distance(kmers)
    )


def query_nearest(rep_set: RepresentativeSet, sequence: str | Sequence) -> Representation:
    """Find the closest representative to a raw protein sequence."""
    residues = sequence.sequence if isinstance(sequence, Sequence) else sequence
    return find_nearest(rep_set, rep_set.kmers_for(residues))


def copy_representatives(source: RepresentativeSet, target: RepresentativeSet) -> int:
    """Copy every representative of ``source`` into ``target`` without admission checks.

    Used to seed a set with a previous run's representatives so they are
    guaranteed to be kept.
    """
    for rec in source:
        target.add(rec)
    logger.info(
        "%d representatives copied from %s into %s.", len(source), source, target
    )
    return len(source)


def build_representative_set(
    candidates: Iterable[RepresentativeRecord],
    threshold: int,
    kmer_size: int,
    marker: str = DEFAULT_MARKER,
) -> RepresentativeSet:
    """Build a representative set from candidates in the given order."""
    rep_set = RepresentativeSet(threshold, kmer_size, marker)
    added = rep_set.add_all(candidates)
    logger.info("%d representatives chosen for %s.", added, rep_set)
    return rep_set


def build_levels(
    candidates: SequenceType[RepresentativeRecord],
    sets: SequenceType[RepresentativeSet],
    *,
    progress_interval: int = 5000,
) -> list[RepresentativeSet]:
    """
    Fill several representative sets from the same ordered candidate stream.

    Sets are processed from the smallest threshold upward. Each larger set is
    first seeded with every representative of the previous one, so the
    representatives at a lower threshold are always a subset of those at a
    higher threshold. Existing contents of the smallest set (for example a
    set restored from a prior run) are kept.

    Args:
        candidates: Candidate records in processing order
        sets: Representative sets to fill; need not be sorted
        progress_interval: Log progress every this many candidates

    Returns:
        The sets sorted by threshold
    """
    ordered = sorted(sets, key=lambda s: s.threshold)
    previous: RepresentativeSet | None = None
    for rep_set in ordered:
        if previous is not None:
            copy_representatives(previous, rep_set)
        logger.info(
            "Processing %s with %d starting representatives.", rep_set, len(rep_set)
        )
        for count, record in enumerate(candidates, start=1):
            if record.rep_id not in rep_set:
                rep_set.observe(record)
            if count % progress_interval == 0:
                logger.info(
                    "%d of %d candidates processed for %s.",
                    count, len(candidates), rep_set,
                )
        logger.info("%s has %d representatives.", rep_set, len(rep_set))
        previous = rep_set
    return ordered
