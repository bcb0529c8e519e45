"""
CLI commands for repgen.

Provides command-line interface for building representative sets,
classifying sequences against them, and curating candidate genomes.
"""

__all__ = ["build", "classify", "curate", "main"]
