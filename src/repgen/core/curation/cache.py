"""
Deduplicating batch cache for sequence lookups.

Many genomes share identical sequences, so sequences are requested by MD5
hash and each distinct hash is fetched once per batch no matter how many
genomes wait for it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HashBatchCache(Generic[T]):
    """
    Pending sequence hashes, each mapped to the owners waiting for it.

    Args:
        batch_size: Number of distinct hashes that makes the batch full
            (None for an unbounded batch)
        name: Label used in log messages

    Example:
        >>> cache = HashBatchCache(batch_size=500, name="DNA")
        >>> cache.add("d41d8cd9...", genome)
        >>> cache.flush(provider.get_sequences, lambda g, seq: setattr(g, "dna", seq))
    """

    def __init__(self, batch_size: int | None = None, name: str = "sequence") -> None:
        self.batch_size = batch_size
        self.name = name
        self._owners: dict[str, list[T]] = {}

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, md5: object) -> bool:
        return md5 in self._owners

    def add(self, md5: str, owner: T) -> None:
        self._owners.setdefault(md5, []).append(owner)

    @property
    def is_full(self) -> bool:
        return self.batch_size is not None and len(self._owners) >= self.batch_size

    @property
    def pending(self) -> list[str]:
        """Hashes waiting to be fetched."""
        return list(self._owners)

    def owners(self, md5: str) -> list[T]:
        return list(self._owners.get(md5, ()))

    def flush(
        self,
        fetch: Callable[[Iterable[str]], Mapping[str, str]],
        apply: Callable[[T, str], None],
    ) -> int:
        """
        Fetch every pending hash in one request and hand the sequences out.

        Hashes the fetch does not resolve are dropped, leaving their owners
        without a sequence. If ``fetch`` raises, nothing is applied and the
        pending hashes are kept.

        Returns:
            Number of owners that received a sequence
        """
        if not self._owners:
            return 0
        logger.info("Retrieving %d %s sequences.", len(self._owners), self.name)
        sequences = fetch(list(self._owners))
        applied = 0
        for md5, owners in self._owners.items():
            sequence = sequences.get(md5)
            if sequence is None:
                logger.debug("No %s sequence returned for %s.", self.name, md5)
                continue
            for owner in owners:
                apply(owner, sequence)
                applied += 1
        self._owners.clear()
        logger.info("%d %s sequences stored.", applied, self.name)
        return applied
