"""Unit tests for the genome quality curator."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from repgen.core.curation import GenomeQualityCurator, curate_candidates
from repgen.models.config import CurationConfig
from repgen.models.genomes import GenomeInput
from repgen.models.ratings import QualityRating
from tests.factories import (
    LSU_PRODUCT,
    NUCLEOTIDES,
    FakeProvider,
    mutate,
    random_dna,
    random_protein,
)

ECOLI_LINEAGE = "131567::2::1224::561::562"
SALMONELLA_LINEAGE = "131567::2::1224::590::28901"
NO_GENUS_LINEAGE = "131567::2::563"


def _add_seed(provider: FakeProvider, genome_id: str, n: int, protein: str | None = None) -> None:
    provider.add_seed(genome_id, random_dna(900, seed=1000 + n), protein or random_protein(300, seed=n))


def _curator(provider: FakeProvider, **kwargs) -> GenomeQualityCurator:
    return GenomeQualityCurator(provider, **kwargs)


# =============================================================================
# Phase 1
# =============================================================================


class TestAddGenome:
    """Ingestion of the evaluation table."""

    def test_adds_placed_genome(self, provider):
        curator = _curator(provider)
        assert curator.add_genome("562.1", "Escherichia coli K-12", ECOLI_LINEAGE, 99.5)
        candidate = curator.get("562.1")
        assert candidate is not None
        assert candidate.genus == "561"
        assert candidate.species == "562"
        assert candidate.domain == "Bacteria"
        assert candidate.rating == QualityRating.NORMAL

    def test_missing_species(self, provider):
        curator = _curator(provider)
        assert not curator.add_genome("561.9", "Escherichia sp.", "131567::2::561", 80.0)
        assert "561.9" not in curator
        assert curator.stats["Missing Species"] == 1
        assert [g.genome_id for g in curator.missing_lineages] == ["561.9"]

    def test_ncbi_flags(self, provider):
        provider.references = {"562.1": "Reference", "562.2": "Representative", "562.3": "Other"}
        curator = _curator(provider)
        for gid in ("562.1", "562.2", "562.3"):
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
        assert curator.get("562.1").rating == QualityRating.NCBI_REF
        assert curator.get("562.2").rating == QualityRating.NCBI_REP
        assert curator.get("562.3").rating == QualityRating.NORMAL

    def test_genetic_code_from_species(self, provider):
        curator = _curator(provider)
        curator.add_genome("28901.1", "Salmonella enterica", SALMONELLA_LINEAGE, 90.0)
        assert curator.get("28901.1").genetic_code == 4

    def test_add_genomes(self, provider):
        curator = _curator(provider)
        added = curator.add_genomes(
            [
                GenomeInput(genome_id="562.1", lineage=ECOLI_LINEAGE),
                GenomeInput(genome_id="x.1", lineage="131567::2"),
            ]
        )
        assert added == 1
        assert len(curator) == 1

    def test_candidates_order(self, provider):
        provider.references = {"562.9": "Reference"}
        curator = _curator(provider)
        curator.add_genome("562.2", "b", ECOLI_LINEAGE, 90.0)
        curator.add_genome("562.1", "a", ECOLI_LINEAGE, 90.0)
        curator.add_genome("562.3", "c", ECOLI_LINEAGE, 95.0)
        curator.add_genome("562.9", "ref", ECOLI_LINEAGE, 10.0)
        assert [c.genome_id for c in curator] == ["562.9", "562.3", "562.1", "562.2"]


# =============================================================================
# Phase 2
# =============================================================================


class TestResolveSeedProteins:
    """Seed protein lookup, batching and removal."""

    def test_shared_sequences_fetched_once(self, provider):
        protein = random_protein(300, seed=1)
        dna = random_dna(900, seed=1)
        curator = _curator(provider)
        for i in range(5):
            gid = f"562.{i}"
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
            provider.add_seed(gid, dna, protein)

        assert curator.resolve_seed_proteins()
        assert len(provider.fetched_hashes) == 2
        assert len(curator) == 5
        assert all(c.protein == protein and c.dna == dna for c in curator)

    def test_batches_by_distinct_hashes(self, provider):
        curator = _curator(provider)
        for i in range(4):
            gid = f"562.{i}"
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
            _add_seed(provider, gid, i)

        assert curator.resolve_seed_proteins(batch_size=2)
        assert [len(r) for r in provider.sequence_requests] == [2, 2, 2, 2]
        assert len(curator) == 4

    def test_feature_id_recorded(self, provider):
        curator = _curator(provider)
        curator.add_genome("562.1", "a", ECOLI_LINEAGE, 90.0)
        provider.add_seed("562.1", "atg", "M", feature_id="fig|562.1.peg.77")
        curator.resolve_seed_proteins()
        assert curator.get("562.1").fid == "fig|562.1.peg.77"

    def test_incomplete_genomes_removed(self, provider):
        curator = _curator(provider)
        for gid in ("562.1", "562.2", "562.3", "562.4", "562.5"):
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
        _add_seed(provider, "562.1", 1)
        provider.add_seed("562.2", None, random_protein(300, seed=2))
        provider.add_seed("562.3", random_dna(900, seed=3), "MKVLXXAGT")
        provider.add_seed("562.4", random_dna(900, seed=4), random_protein(300, seed=4))
        del provider.sequences[provider.seed_features[-1].aa_md5]
        # 562.5 has no seed feature at all

        curator.resolve_seed_proteins()

        assert [c.genome_id for c in curator] == ["562.1"]
        assert curator.stats["Missing Seed DNA"] == 2
        assert curator.stats["Missing Seed AA"] == 3
        assert curator.stats["Ambiguous Seed"] == 1

    def test_near_miss_product_ignored(self, provider):
        curator = _curator(provider)
        curator.add_genome("562.1", "a", ECOLI_LINEAGE, 90.0)
        provider.add_seed(
            "562.1",
            random_dna(900, seed=1),
            random_protein(300, seed=1),
            product="Phenylalanyl-tRNA synthetase beta chain",
        )
        curator.resolve_seed_proteins()
        assert len(curator) == 0
        assert provider.sequence_requests == []

    def test_stop_and_resume(self, provider):
        curator = _curator(provider)
        for i in range(3):
            gid = f"562.{i}"
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
            _add_seed(provider, gid, i)

        stop = threading.Event()
        fetch = provider.get_sequences

        def fetch_then_stop(md5s):
            result = fetch(md5s)
            if len(provider.sequence_requests) == 2:
                stop.set()
            return result

        provider.get_sequences = fetch_then_stop

        assert not curator.resolve_seed_proteins(batch_size=1, stop_event=stop)
        assert len(curator) == 3
        assert curator.get("562.0").protein is not None
        assert curator.get("562.1").protein is None

        stop.clear()
        assert curator.resolve_seed_proteins(stop_event=stop)
        assert len(curator) == 3
        assert all(c.protein and c.dna for c in curator)
        assert len(provider.sequence_requests) == 6

    def test_stop_leaves_partial_batch_pending(self, provider):
        """A stop between features keeps the partly filled batch unfetched."""
        curator = _curator(provider)
        for i in range(3):
            gid = f"562.{i}"
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
            _add_seed(provider, gid, i)

        stop = MagicMock(spec=threading.Event)
        stop.is_set.side_effect = [False, True]

        assert not curator.resolve_seed_proteins(batch_size=10, stop_event=stop)
        assert provider.sequence_requests == []
        assert curator.pending_seed_hashes

        assert curator.resolve_seed_proteins()
        assert all(c.protein and c.dna for c in curator)
        assert not curator.pending_seed_hashes

    def test_stop_before_start(self, provider):
        curator = _curator(provider)
        curator.add_genome("562.1", "a", ECOLI_LINEAGE, 90.0)
        _add_seed(provider, "562.1", 1)
        stop = threading.Event()
        stop.set()

        assert not curator.resolve_seed_proteins(stop_event=stop)
        assert provider.sequence_requests == []
        assert len(curator) == 1

    def test_fetch_failure_resumes(self, provider):
        curator = _curator(provider)
        for i in range(3):
            gid = f"562.{i}"
            curator.add_genome(gid, gid, ECOLI_LINEAGE, 90.0)
            _add_seed(provider, gid, i)
        provider.fail_next_fetch = True

        with pytest.raises(ConnectionError):
            curator.resolve_seed_proteins()
        assert len(curator.pending_seed_hashes) == 6

        assert curator.resolve_seed_proteins()
        assert curator.pending_seed_hashes == []
        assert len(curator) == 3
        assert all(c.protein and c.dna for c in curator)


# =============================================================================
# Phases 3 and 4
# =============================================================================


@pytest.fixture
def seeded(provider):
    """Curator whose genomes have resolved seed proteins, plus a genome adder."""
    curator = _curator(provider)
    counter = iter(range(1, 1000))

    def add(genome_id: str, lineage: str = ECOLI_LINEAGE, score: float = 90.0) -> None:
        curator.add_genome(genome_id, genome_id, lineage, score)
        _add_seed(provider, genome_id, next(counter))

    return curator, add


class TestResolveSsuRrnas:
    def test_missing_features_and_sequences(self, provider, seeded, ssu_base):
        curator, add = seeded
        for gid in ("562.1", "562.2", "562.3"):
            add(gid)
        provider.add_ssu("562.1", ssu_base)
        provider.add_ssu("562.2", None)
        provider.add_ssu("562.3", ssu_base, product=LSU_PRODUCT)
        curator.resolve_seed_proteins()

        curator.resolve_ssu_rrnas()

        assert [c.genome_id for c in curator] == ["562.1"]
        assert curator.stats["SSU Seq Not Found"] == 1
        assert curator.stats["SSU Not Found"] == 1

    def test_ratings(self, provider, seeded, ssu_base):
        curator, add = seeded
        for gid in ("562.1", "562.2", "562.3", "562.4"):
            add(gid)
        variant = mutate(ssu_base, [200, 900], NUCLEOTIDES)
        provider.add_ssu("562.1", ssu_base)
        provider.add_ssu("562.1", variant)
        provider.add_ssu("562.2", ssu_base)
        provider.add_ssu("562.2", random_dna(1500, seed=77))
        provider.add_ssu("562.3", ssu_base[:1000])
        provider.add_ssu("562.3", mutate(ssu_base[:1000], [10], NUCLEOTIDES))
        provider.add_ssu("562.4", variant)
        curator.resolve_seed_proteins()

        curator.resolve_ssu_rrnas()

        assert curator.get("562.1").rating == QualityRating.NORMAL
        assert curator.get("562.2").rating == QualityRating.BAD_SSU
        assert curator.get("562.3").rating == QualityRating.SHORT_SSU
        assert curator.get("562.4").rating == QualityRating.SINGLE_SSU
        assert set(curator.genus_profiles) == {"561"}
        assert [c.genome_id for c in curator.retry_queue] == ["562.4"]

    def test_ssu_hashes_shared_across_genomes(self, provider, seeded, ssu_base):
        curator, add = seeded
        for gid in ("562.1", "562.2"):
            add(gid)
            provider.add_ssu(gid, ssu_base)
        curator.resolve_seed_proteins()
        before = len(provider.sequence_requests)

        curator.resolve_ssu_rrnas()

        assert provider.sequence_requests[before:] == [[provider.rna_features[0].na_md5]]


class TestRetrySingleSsus:
    """Genus-level check of genomes with one SSU rRNA."""

    @pytest.fixture
    def retried(self, provider, seeded, ssu_base):
        curator, add = seeded
        add("562.1", score=99.0)
        provider.add_ssu("562.1", ssu_base)
        provider.add_ssu("562.1", mutate(ssu_base, [50], NUCLEOTIDES))
        add("562.2")
        provider.add_ssu("562.2", mutate(ssu_base, [300, 1100], NUCLEOTIDES))
        add("562.3")
        provider.add_ssu("562.3", ssu_base[:1000])
        add("562.4")
        provider.add_ssu("562.4", random_dna(1500, seed=55))
        add("28901.1", lineage=SALMONELLA_LINEAGE)
        provider.add_ssu("28901.1", ssu_base)
        add("563.1", lineage=NO_GENUS_LINEAGE)
        provider.add_ssu("563.1", ssu_base)
        curator.resolve_seed_proteins()
        curator.resolve_ssu_rrnas()
        return curator

    def test_reclaimed_full_length(self, retried):
        retried.retry_single_ssus()
        assert retried.get("562.2").rating == QualityRating.NORMAL

    def test_reclaimed_short(self, retried):
        retried.retry_single_ssus()
        assert retried.get("562.3").rating == QualityRating.SHORT_SSU

    def test_too_distant(self, retried):
        retried.retry_single_ssus()
        assert retried.get("562.4").rating == QualityRating.BAD_SSU

    def test_no_genus_reference(self, retried):
        retried.retry_single_ssus()
        assert retried.get("28901.1").rating == QualityRating.SINGLE_SSU
        assert retried.get("563.1").rating == QualityRating.SINGLE_SSU

    def test_counts_and_keeps_genomes(self, retried):
        assert retried.retry_single_ssus() == 2
        assert retried.stats["Genus Reclaimed"] == 2
        assert len(retried) == 6
        assert retried.retry_queue == []

    def test_prune(self, retried):
        retried.retry_single_ssus()
        removed = retried.prune()
        assert removed == 1
        assert "562.4" not in retried
        assert retried.stats["Rating-BAD_SSU"] == 1
        assert retried.stats["Rating-NORMAL"] == 2
        assert retried.stats["Rating-SINGLE_SSU"] == 2
        assert retried.stats["Low Rating"] == 1
        assert retried.stats["Final Genome Count"] == 5

    def test_prune_stricter_rating(self, retried):
        retried.retry_single_ssus()
        retried.prune(QualityRating.NORMAL)
        assert [c.genome_id for c in retried] == ["562.1", "562.2"]
        counts = retried.rating_counts()
        assert counts[QualityRating.NORMAL] == 2
        assert counts[QualityRating.BAD_SSU] == 0


class TestCurateCandidates:
    def test_full_run(self, provider, ssu_base):
        genomes = [
            GenomeInput(genome_id="562.1", genome_name="E. coli A", lineage=ECOLI_LINEAGE, score=95.0),
            GenomeInput(genome_id="562.2", genome_name="E. coli B", lineage=ECOLI_LINEAGE, score=97.0),
            GenomeInput(genome_id="999.1", genome_name="Unplaced", lineage="131567::2", score=99.0),
        ]
        for n, gid in enumerate(("562.1", "562.2"), start=1):
            _add_seed(provider, gid, n)
            provider.add_ssu(gid, ssu_base)
            provider.add_ssu(gid, mutate(ssu_base, [n * 100], NUCLEOTIDES))

        candidates, stats = curate_candidates(
            genomes, provider, batch_size=1, config=CurationConfig(batch_size=10)
        )

        assert [c.genome_id for c in candidates] == ["562.2", "562.1"]
        assert all(c.rating == QualityRating.NORMAL for c in candidates)
        assert stats["Missing Species"] == 1
        assert stats["Final Genome Count"] == 2
