"""
Sequence records and FASTA input/output.

A FASTA header line is split at the first whitespace: the first word is the
sequence label and the remainder is the comment.
"""

from __future__ import annotations

import gzip
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

# Residues per line when writing FASTA
FASTA_LINE_WIDTH = 60


@dataclass(frozen=True)
class Sequence:
    """A labelled biological sequence.

    Attributes:
        label: Sequence identifier (first word of the FASTA header)
        comment: Free-text comment (rest of the FASTA header)
        sequence: Residue string
    """

    label: str
    comment: str
    sequence: str

    def __len__(self) -> int:
        return len(self.sequence)


def _open_text(path: Path, mode: str = "rt") -> TextIO:
    if path.suffix == ".gz":
        return gzip.open(path, mode)  # type: ignore[return-value]
    return path.open(mode.replace("t", ""))


def parse_header(header: str) -> tuple[str, str]:
    """Split a FASTA header (without '>') into label and comment.

    Example:
        >>> parse_header("fig|83333.1.peg.3 Escherichia coli K-12")
        ('fig|83333.1.peg.3', 'Escherichia coli K-12')
    """
    parts = header.rstrip("\r\n").split(maxsplit=1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def iter_fasta(handle: Iterable[str]) -> Iterator[Sequence]:
    """Yield sequences from an iterable of FASTA lines.

    Records with an empty sequence (e.g. header-only records) are yielded
    with an empty residue string.
    """
    label: str | None = None
    comment = ""
    chunks: list[str] = []

    for line in handle:
        line = line.rstrip("\r\n")
        if line.startswith(">"):
            if label is not None:
                yield Sequence(label, comment, "".join(chunks))
            label, comment = parse_header(line[1:])
            chunks = []
        elif label is not None:
            chunks.append(line.strip())

    if label is not None:
        yield Sequence(label, comment, "".join(chunks))


def read_fasta(path: Path) -> list[Sequence]:
    """Read all sequences from a FASTA file (optionally gzipped)."""
    with _open_text(path) as handle:
        return list(iter_fasta(handle))


def format_record(seq: Sequence, width: int = FASTA_LINE_WIDTH) -> str:
    """Format one sequence as a FASTA record including the trailing newline."""
    header = f">{seq.label} {seq.comment}" if seq.comment else f">{seq.label}"
    lines = [header]
    residues = seq.sequence
    for start in range(0, len(residues), width):
        lines.append(residues[start:start + width])
    return "\n".join(lines) + "\n"


def write_fasta(path: Path, sequences: Iterable[Sequence]) -> int:
    """Write sequences to a FASTA file.

    Args:
        path: Output path (gzipped when the suffix is .gz)
        sequences: Sequences to write

    Returns:
        Number of records written
    """
    count = 0
    with _open_text(path, "wt") as handle:
        for seq in sequences:
            handle.write(format_record(seq))
            count += 1
    return count
