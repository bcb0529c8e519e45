"""Unit tests for custom exceptions module."""

import pytest

from repgen.clients.bvbrc import BVBRCAPIError
from repgen.core.exceptions import (
    ConfigurationError,
    InputFileError,
    InvalidKmerSizeError,
    InvalidRepSetFileError,
    InvalidThresholdError,
    RepgenError,
    RepSetFileError,
)


class TestRepgenError:
    """Tests for base exception class."""

    def test_basic_message(self):
        """Should create exception with just message."""
        error = RepgenError("Test error")
        assert error.message == "Test error"
        assert error.suggestion is None
        assert str(error) == "Test error"

    def test_message_with_suggestion(self):
        """Should include suggestion in full message."""
        error = RepgenError("Test error", suggestion="Try this fix")
        assert "Suggestion: Try this fix" in str(error)


class TestConfigurationErrors:
    def test_kmer_size(self):
        error = InvalidKmerSizeError(0)
        assert isinstance(error, ConfigurationError)
        assert "Invalid kmer size: 0" in str(error)
        assert error.k == 0
        assert error.expected is None

    def test_kmer_size_mismatch(self):
        error = InvalidKmerSizeError(6, expected=8)
        assert "set uses 8" in error.message
        assert error.expected == 8

    def test_threshold(self):
        error = InvalidThresholdError(-5)
        assert isinstance(error, ConfigurationError)
        assert error.threshold == -5
        assert "positive" in error.suggestion


class TestFileErrors:
    def test_rep_set_file(self):
        error = InvalidRepSetFileError("rep10.ser", "garbage")
        assert isinstance(error, RepSetFileError)
        assert "rep10.ser" in error.message
        assert error.path == "rep10.ser"

    def test_input_file_missing_columns(self):
        error = InputFileError("genomes.tsv", ["lineage", "score"])
        assert "lineage, score" in error.message
        assert error.missing_columns == ["lineage", "score"]

    def test_input_file_unreadable(self):
        error = InputFileError("genomes.tsv")
        assert "could not be read" in error.message
        assert error.missing_columns == []


class TestBVBRCAPIError:
    """Suggestions depend on the HTTP status code."""

    @pytest.mark.parametrize(
        ("status", "fragment"),
        [
            (None, "internet connection"),
            (400, "rejected"),
            (429, "Rate limited"),
            (503, "server error"),
        ],
    )
    def test_suggestions(self, status, fragment):
        error = BVBRCAPIError("failed", status_code=status)
        assert error.status_code == status
        assert fragment in error.suggestion
        assert isinstance(error, RepgenError)
