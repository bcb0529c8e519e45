"""
Genome quality ratings.

Ratings are totally ordered from best to worst by an explicit rank list,
independent of the order in which the enum members are declared.
"""

from __future__ import annotations

from enum import Enum


class QualityRating(str, Enum):
    """Quality rating of a candidate genome."""

    # flagged by NCBI as a reference genome
    NCBI_REF = "NCBI_REF"
    # flagged by NCBI as a representative genome
    NCBI_REP = "NCBI_REP"
    # fully validated genome
    NORMAL = "NORMAL"
    # SSU rRNA validated but shorter than full length
    SHORT_SSU = "SHORT_SSU"
    # single SSU rRNA that could not be cross-validated
    SINGLE_SSU = "SINGLE_SSU"
    # missing, fragmentary or contradictory SSU rRNA
    BAD_SSU = "BAD_SSU"

    @property
    def rank(self) -> int:
        """Position in the best-to-worst order (0 is best)."""
        return RATING_ORDER.index(self)

    def is_better_than(self, other: QualityRating) -> bool:
        return self.rank < other.rank

    def is_worse_than(self, other: QualityRating) -> bool:
        return self.rank > other.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, QualityRating):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, QualityRating):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, QualityRating):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, QualityRating):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str) -> QualityRating:
        """Look up a rating by name, ignoring case and dashes."""
        key = value.strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            valid = ", ".join(r.name for r in RATING_ORDER)
            msg = f"Unknown quality rating '{value}'. Valid ratings: {valid}"
            raise ValueError(msg) from None


# Best first. "Less than" means "better than".
RATING_ORDER: tuple[QualityRating, ...] = (
    QualityRating.NCBI_REF,
    QualityRating.NCBI_REP,
    QualityRating.NORMAL,
    QualityRating.SHORT_SSU,
    QualityRating.SINGLE_SSU,
    QualityRating.BAD_SSU,
)
