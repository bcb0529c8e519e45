"""
Named counters for run statistics.

The curator increments a counter for every rejection, removal and rating
outcome so that the totals can be audited at the end of a run.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from pathlib import Path

import polars as pl


class RunStatistics:
    """Accumulator of named integer counters.

    Example:
        >>> stats = RunStatistics()
        >>> stats.count("Missing Species")
        >>> stats["Missing Species"]
        1
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def count(self, name: str, n: int = 1) -> None:
        """Add ``n`` to the named counter."""
        self._counts[name] += n

    def __getitem__(self, name: str) -> int:
        return self._counts[name]

    def __contains__(self, name: object) -> bool:
        return name in self._counts

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._counts))

    def __len__(self) -> int:
        return len(self._counts)

    def items(self) -> list[tuple[str, int]]:
        """Counters sorted by name."""
        return sorted(self._counts.items())

    def as_dict(self) -> dict[str, int]:
        return dict(self.items())

    def merge(self, other: RunStatistics) -> None:
        self._counts.update(other._counts)

    def to_dataframe(self) -> pl.DataFrame:
        items = self.items()
        return pl.DataFrame(
            {
                "counter": [name for name, _ in items],
                "count": [value for _, value in items],
            },
            schema={"counter": pl.Utf8, "count": pl.Int64},
        )

    def write(self, path: Path) -> None:
        """Write the counters as a two-column TSV file."""
        self.to_dataframe().write_csv(path, separator="\t")
