"""
Saving and loading representative sets.

A representative set is stored as a FASTA file named ``rep<threshold>.ser``.
The first record is a header with no sequence whose label is
``Rep<threshold>,K=<kmer size>`` and whose comment is the marker role. Each
following record is one representative: the label is the genome ID, the
comment is the seed feature ID and genome name separated by a tab, and the
sequence is the seed protein.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from repgen.core.exceptions import InvalidRepSetFileError
from repgen.core.kmers import KmerSet
from repgen.core.representatives import RepresentativeRecord, RepresentativeSet
from repgen.core.sequence import Sequence, read_fasta, write_fasta

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r"Rep(\d+),K=(\d+)")
FILE_PATTERN = re.compile(r"rep(\d+)\.ser")


def rep_set_file_name(threshold: int) -> str:
    """File name for a representative set at a given threshold."""
    return f"rep{threshold}.ser"


def save(rep_set: RepresentativeSet, path: Path) -> None:
    """Write a representative set to a file."""
    header = Sequence(f"Rep{rep_set.threshold},K={rep_set.kmer_size}", rep_set.marker, "")
    records = [header, *(rec.to_sequence() for rec in rep_set)]
    write_fasta(path, records)
    logger.info("%s saved to %s with %d representatives.", rep_set, path, len(rep_set))


def load(path: Path) -> RepresentativeSet:
    """
    Read a representative set from a file.

    The file's own kmer size is used. Representatives are restored in file
    order without re-running admission, and further candidates can be
    offered to the loaded set.

    Raises:
        InvalidRepSetFileError: If the first record is not a valid header.
    """
    records = read_fasta(path)
    if not records:
        raise InvalidRepSetFileError(str(path), "")
    header = records[0]
    match = HEADER_PATTERN.fullmatch(header.label)
    if match is None:
        raise InvalidRepSetFileError(str(path), header.label)

    threshold = int(match.group(1))
    kmer_size = int(match.group(2))
    rep_set = RepresentativeSet(threshold, kmer_size, header.comment)
    for seq in records[1:]:
        rep_set.add(record_from_sequence(seq, kmer_size))
    logger.info("Loaded %s from %s with %d representatives.", rep_set, path, len(rep_set))
    return rep_set


def record_from_sequence(seq: Sequence, kmer_size: int) -> RepresentativeRecord:
    """Representative record from a FASTA record in the set-file layout.

    The comment holds the feature ID and genome name separated by a tab; a
    comment without a tab is taken as the name alone.
    """
    feature_id, sep, name = seq.comment.partition("\t")
    if not sep:
        feature_id, name = "", seq.comment
    return RepresentativeRecord(
        seq.label, name, feature_id, KmerSet.build(seq.sequence, kmer_size)
    )


def save_sets(rep_sets: Iterable[RepresentativeSet], directory: Path) -> list[Path]:
    """Save several sets into a directory using the ``rep<threshold>.ser`` convention."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for rep_set in rep_sets:
        path = directory / rep_set_file_name(rep_set.threshold)
        save(rep_set, path)
        paths.append(path)
    return paths


def find_set_files(directory: Path) -> list[Path]:
    """Representative-set files in a directory, sorted by threshold."""
    found = [
        (int(m.group(1)), p)
        for p in directory.iterdir()
        if p.is_file() and (m := FILE_PATTERN.fullmatch(p.name))
    ]
    return [p for _, p in sorted(found)]


def load_sets(directory: Path) -> list[RepresentativeSet]:
    """Load every representative set in a directory, sorted by threshold."""
    paths = find_set_files(directory)
    if not paths:
        logger.warning("No representative-set files found in %s.", directory)
    return [load(path) for path in paths]
