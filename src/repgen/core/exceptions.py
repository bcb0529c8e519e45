"""
Custom exceptions with actionable guidance.

Provides specific error types for configuration problems, representative-set
files and input tables, each with a suggestion for resolution.
"""

from __future__ import annotations


class RepgenError(Exception):
    """Base exception for repgen errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(RepgenError):
    """Raised when configuration is invalid."""



class InvalidKmerSizeError(ConfigurationError):
    """Raised when a kmer size is not a positive integer or does not match a set."""

    def __init__(self, k: int, expected: int | None = None):
        if expected is None:
            message = f"Invalid kmer size: {k}"
            suggestion = (
                "Kmer sizes must be positive integers. Typical values are 8 for "
                "proteins and 15 for nucleotides."
            )
        else:
            message = f"Invalid kmer size: {k} (the representative set uses {expected})"
            suggestion = (
                "Build the record's kmers with the set's kmer size, or keep the "
                "protein sequence on the record so it can be rebuilt."
            )
        super().__init__(message=message, suggestion=suggestion)
        self.k = k
        self.expected = expected


class InvalidThresholdError(ConfigurationError):
    """Raised when a representative-set threshold is out of range."""

    def __init__(self, threshold: int):
        super().__init__(
            message=f"Invalid similarity threshold: {threshold}",
            suggestion=(
                "Thresholds are minimum shared-kmer counts and must be positive "
                "integers (e.g. 10, 50, 100, 200)."
            ),
        )
        self.threshold = threshold


class RepSetFileError(RepgenError):
    """Base class for representative-set file errors."""



class InvalidRepSetFileError(RepSetFileError):
    """Raised when a file does not start with a valid representative-set header."""

    def __init__(self, path: str, header: str):
        super().__init__(
            message=f"Invalid header in representative-set file '{path}': {header!r}",
            suggestion=(
                "Representative-set files are FASTA files whose first record "
                "has a label of the form 'Rep<threshold>,K=<kmer size>'. "
                "Check that the file was written by 'repgen build' or 'repgen curate'."
            ),
        )
        self.path = path
        self.header = header


class InputFileError(RepgenError):
    """Raised when an input table cannot be read or lacks required columns."""

    def __init__(self, path: str, missing_columns: list[str] | None = None):
        if missing_columns:
            message = (
                f"Input file '{path}' is missing required columns: "
                f"{', '.join(missing_columns)}"
            )
        else:
            message = f"Input file '{path}' could not be read"
        super().__init__(
            message=message,
            suggestion=(
                "The genome evaluation table must be tab-separated with the "
                "columns genome_id, genome_name, lineage and score."
            ),
        )
        self.path = path
        self.missing_columns = missing_columns or []
