"""
Shared pytest fixtures for repgen tests.

Provides reusable sequences, taxonomy, configuration and an in-memory
sequence provider for unit and integration testing.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repgen.core.curation.taxonomy import TaxonomyIndex
from repgen.core.representatives import RepresentativeSet
from repgen.models.config import CurationConfig, KmerConfig
from tests.factories import FakeProvider, random_dna, random_protein


# =============================================================================
# Sequence Fixtures
# =============================================================================


@pytest.fixture
def protein_a() -> str:
    """300-residue seeded random protein."""
    return random_protein(300, seed=1)


@pytest.fixture
def protein_b() -> str:
    """Unrelated 300-residue protein."""
    return random_protein(300, seed=2)


@pytest.fixture
def ssu_base() -> str:
    """Full-length (1500 bp) SSU rRNA."""
    return random_dna(1500, seed=10)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def kmer_config() -> KmerConfig:
    return KmerConfig()


@pytest.fixture
def curation_config() -> CurationConfig:
    return CurationConfig()


# =============================================================================
# Taxonomy and Provider Fixtures
# =============================================================================


@pytest.fixture
def taxonomy() -> TaxonomyIndex:
    """Two genera (561, 590) and three species (562, 563, 28901)."""
    index = TaxonomyIndex()
    index.add("561", "genus")
    index.add("590", "genus")
    index.add("562", "species", 11)
    index.add("563", "species", 11)
    index.add("28901", "species", 4)
    return index


@pytest.fixture
def provider(taxonomy: TaxonomyIndex) -> FakeProvider:
    return FakeProvider(taxonomy)


# =============================================================================
# Representative Set Fixtures
# =============================================================================


@pytest.fixture
def small_rep_set(protein_a: str, protein_b: str) -> RepresentativeSet:
    """Threshold-10 set with two unrelated representatives."""
    rep_set = RepresentativeSet(threshold=10, kmer_size=8)
    rep_set.observe_sequence("100.1", "Genome A", "fig|100.1.peg.1", protein_a)
    rep_set.observe_sequence("200.1", "Genome B", "fig|200.1.peg.1", protein_b)
    return rep_set


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Output directory inside pytest's tmp_path."""
    out = tmp_path / "out"
    out.mkdir()
    return out
