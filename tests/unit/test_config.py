"""Unit tests for configuration models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from repgen.models.config import (
    DEFAULT_REP_LEVELS,
    SEED_FUNCTION,
    CurationConfig,
    KmerConfig,
    RepgenConfig,
)
from repgen.models.ratings import QualityRating


class TestKmerConfig:
    def test_defaults(self):
        config = KmerConfig()
        assert config.protein_k == 8
        assert config.dna_k == 15

    def test_builders_use_configured_sizes(self):
        config = KmerConfig(protein_k=4, dna_k=5)
        assert config.protein_kmers("ABCDEFGH").k == 4
        assert len(config.dna_kmers("acgttgcaag")) == 6

    def test_invalid_size(self):
        with pytest.raises(ValidationError):
            KmerConfig(protein_k=0)

    def test_frozen(self):
        config = KmerConfig()
        with pytest.raises(ValidationError):
            config.protein_k = 9


class TestCurationConfig:
    def test_defaults(self):
        config = CurationConfig()
        assert config.batch_size == 500
        assert config.seed_function == SEED_FUNCTION
        assert config.min_ssu_len == 1400
        assert config.useful_ssu_len == 700
        assert config.max_ssu_distance == 0.5
        assert config.max_genus_ssu_distance == 0.75
        assert config.min_rating == QualityRating.SINGLE_SSU

    def test_rating_from_string(self):
        assert CurationConfig(min_rating="normal").min_rating == QualityRating.NORMAL

    def test_useful_length_must_not_exceed_full_length(self):
        with pytest.raises(ValidationError, match="useful_ssu_len"):
            CurationConfig(useful_ssu_len=1500, min_ssu_len=1400)

    def test_distance_range(self):
        with pytest.raises(ValidationError):
            CurationConfig(max_ssu_distance=1.5)


class TestRepgenConfig:
    def test_default_levels(self):
        assert RepgenConfig().rep_levels == DEFAULT_REP_LEVELS

    def test_levels_sorted(self):
        assert RepgenConfig(rep_levels=(200, 10, 50)).rep_levels == (10, 50, 200)

    @pytest.mark.parametrize("levels", [(), (10, 10), (0, 50)])
    def test_invalid_levels(self, levels):
        with pytest.raises(ValidationError):
            RepgenConfig(rep_levels=levels)

    def test_yaml_round_trip(self, tmp_path: Path):
        config = RepgenConfig(
            kmers=KmerConfig(protein_k=9),
            curation=CurationConfig(batch_size=100, min_rating=QualityRating.NORMAL),
            rep_levels=(25, 75),
        )
        path = tmp_path / "config.yaml"
        config.to_yaml(path)
        assert RepgenConfig.from_yaml(path) == config

    def test_partial_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("curation:\n  batch_size: 50\n  unknown_key: 1\n")
        config = RepgenConfig.from_yaml(path)
        assert config.curation.batch_size == 50
        assert config.kmers == KmerConfig()
        assert config.rep_levels == DEFAULT_REP_LEVELS

    def test_empty_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert RepgenConfig.from_yaml(path) == RepgenConfig()

    def test_non_mapping_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            RepgenConfig.from_yaml(path)
