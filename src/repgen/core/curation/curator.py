"""
Genome quality curation.

GenomeQualityCurator turns a genome evaluation table into a list of vetted,
quality-rated candidates in four phases:

1. Ingestion: parse each lineage and reject genomes without a species.
2. Seed protein resolution: find the seed protein feature of each genome,
   fetch its DNA and protein sequences by MD5 in deduplicated batches, and
   remove genomes with missing or ambiguous seed proteins.
3. SSU rRNA resolution: fetch every SSU rRNA of each genome and rate the
   genome from their lengths and mutual distances.
4. Genus retry: check genomes with a single SSU rRNA against a reference
   SSU rRNA from another genome of the same genus.

A final prune removes genomes rated below a minimum. Every rejection is
counted in the curator's RunStatistics; a bad record never aborts the run.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable, Iterator

from repgen.core.curation.cache import HashBatchCache
from repgen.core.curation.functions import has_role, is_ssu_rrna
from repgen.core.curation.provider import (
    REFERENCE,
    REPRESENTATIVE,
    FeatureRecord,
    SequenceProvider,
)
from repgen.core.curation.taxonomy import TaxonomyIndex
from repgen.core.kmers import KmerSet
from repgen.core.statistics import RunStatistics
from repgen.models.candidates import CandidateRecord
from repgen.models.config import CurationConfig, KmerConfig
from repgen.models.genomes import GenomeInput
from repgen.models.ratings import RATING_ORDER, QualityRating

logger = logging.getLogger(__name__)

# Log progress every this many genomes
PROGRESS_INTERVAL = 5000

NCBI_RATINGS = {
    REFERENCE: QualityRating.NCBI_REF,
    REPRESENTATIVE: QualityRating.NCBI_REP,
}


class GenomeQualityCurator:
    """
    Multi-phase curation of candidate genomes.

    Candidates are held in a map keyed by genome ID. Iteration yields them
    best first: by rating, then by descending score, then by genome ID.

    Args:
        provider: Source of taxonomy, features and sequences
        config: Curation thresholds
        kmer_config: Kmer sizes
        taxonomy: Taxonomy index (fetched from the provider if omitted)
        reference_genomes: NCBI reference/representative flags by genome ID
            (fetched from the provider if omitted)

    Example:
        >>> curator = GenomeQualityCurator(provider)
        >>> for genome in genomes:
        ...     curator.add_genome(genome.genome_id, genome.genome_name, genome.lineage, genome.score)
        >>> curator.resolve_seed_proteins()
        >>> curator.resolve_ssu_rrnas()
        >>> curator.retry_single_ssus()
        >>> curator.prune()
    """

    def __init__(
        self,
        provider: SequenceProvider,
        config: CurationConfig | None = None,
        kmer_config: KmerConfig | None = None,
        taxonomy: TaxonomyIndex | None = None,
        reference_genomes: dict[str, str] | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or CurationConfig()
        self.kmer_config = kmer_config or KmerConfig()
        self.stats = RunStatistics()

        if taxonomy is None:
            logger.info("Retrieving taxonomy data.")
            taxonomy = provider.get_taxonomy()
        self.taxonomy = taxonomy

        if reference_genomes is None:
            reference_genomes = provider.get_reference_genomes()
        self._ncbi_ratings = {
            genome_id: NCBI_RATINGS[kind]
            for genome_id, kind in reference_genomes.items()
            if kind in NCBI_RATINGS
        }
        logger.info("%d NCBI special genomes found.", len(self._ncbi_ratings))

        self._candidates: dict[str, CandidateRecord] = {}
        self.missing_lineages: list[GenomeInput] = []

        # Phase 2 state, kept between calls so a stopped run can resume
        self._seed_queue: deque[FeatureRecord] | None = None
        self._dna_cache: HashBatchCache[CandidateRecord] = HashBatchCache(
            self.config.batch_size, "seed DNA"
        )
        self._protein_cache: HashBatchCache[CandidateRecord] = HashBatchCache(
            None, "seed protein"
        )

        # Phase 3 products used by Phase 4
        self._genus_profiles: dict[str, KmerSet] = {}
        self._retry_queue: list[CandidateRecord] = []

    def __len__(self) -> int:
        return len(self._candidates)

    def __contains__(self, genome_id: object) -> bool:
        return genome_id in self._candidates

    def __iter__(self) -> Iterator[CandidateRecord]:
        return iter(self.candidates())

    def get(self, genome_id: str) -> CandidateRecord | None:
        return self._candidates.get(genome_id)

    def candidates(self) -> list[CandidateRecord]:
        """Candidates in processing order (best first)."""
        return sorted(self._candidates.values(), key=CandidateRecord.sort_key)

    @property
    def genus_profiles(self) -> dict[str, KmerSet]:
        return dict(self._genus_profiles)

    @property
    def retry_queue(self) -> list[CandidateRecord]:
        return list(self._retry_queue)

    @property
    def pending_seed_hashes(self) -> list[str]:
        """Seed sequence hashes queued but not yet fetched."""
        return self._dna_cache.pending + [
            md5 for md5 in self._protein_cache.pending if md5 not in self._dna_cache
        ]

    def _remove(self, genome_id: str) -> None:
        del self._candidates[genome_id]

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    def add_genome(
        self, genome_id: str, genome_name: str, lineage: str, score: float
    ) -> bool:
        """
        Add a genome from the evaluation table.

        Returns:
            True if the genome was added, False if its species is unknown
        """
        placement = self.taxonomy.parse_lineage(lineage)
        if placement.species is None:
            logger.debug("Missing species for %s.", genome_id)
            self.stats.count("Missing Species")
            self.missing_lineages.append(
                GenomeInput(
                    genome_id=genome_id,
                    genome_name=genome_name,
                    lineage=lineage,
                    score=score,
                )
            )
            return False

        self._candidates[genome_id] = CandidateRecord(
            genome_id=genome_id,
            genome_name=genome_name,
            domain=placement.domain,
            genus=placement.genus,
            species=placement.species,
            genetic_code=placement.genetic_code,
            score=score,
            rating=self._ncbi_ratings.get(genome_id, QualityRating.NORMAL),
        )
        return True

    def add_genomes(self, genomes: Iterable[GenomeInput]) -> int:
        """Add every genome of an evaluation table; returns the number kept."""
        added = sum(
            1
            for g in genomes
            if self.add_genome(g.genome_id, g.genome_name, g.lineage, g.score)
        )
        logger.info(
            "%d genomes added, %d with missing species.",
            added, len(self.missing_lineages),
        )
        return added

    # ------------------------------------------------------------------
    # Phase 2
    # ------------------------------------------------------------------

    def resolve_seed_proteins(
        self,
        batch_size: int | None = None,
        stop_event: threading.Event | None = None,
    ) -> bool:
        """
        Fetch the seed protein DNA and amino acid sequences.

        Features are processed in order. Their sequence hashes are queued in
        two caches, and both caches are flushed whenever the DNA cache holds
        ``batch_size`` distinct hashes. Genomes without both sequences, or
        whose protein contains "XX", are then removed.

        If ``stop_event`` is set the method returns before the next feature,
        leaving a partly filled batch pending. Unprocessed features and
        unfetched hashes are kept so that a later call resumes from there. A
        provider error propagates with the same state kept.

        Returns:
            True if the phase completed, False if it was stopped
        """
        if batch_size is not None:
            self._dna_cache.batch_size = batch_size

        if self._seed_queue is None:
            logger.info("Retrieving seed protein features.")
            features = self.provider.get_seed_features(
                list(self._candidates), self.config.seed_function
            )
            logger.info("%d seed protein features found.", len(features))
            self._seed_queue = deque(features)
        elif self._dna_cache.is_full or (self._protein_cache and not self._dna_cache):
            # Finish a batch interrupted by a provider error.
            self._flush_seed_caches()

        logger.info("Retrieving seed protein DNA and AA sequences.")
        while self._seed_queue:
            if stop_event is not None and stop_event.is_set():
                logger.warning(
                    "Seed protein resolution stopped with %d features and %d hashes pending.",
                    len(self._seed_queue), len(self.pending_seed_hashes),
                )
                return False
            self._queue_seed_feature(self._seed_queue[0])
            self._seed_queue.popleft()
            if self._dna_cache.is_full:
                self._flush_seed_caches()

        self._flush_seed_caches()
        self._seed_queue = None
        self._remove_incomplete_seeds()
        return True

    def _queue_seed_feature(self, feature: FeatureRecord) -> None:
        # Product queries can return near-miss annotations.
        if not has_role(feature.product, self.config.seed_function):
            return
        candidate = self._candidates.get(feature.genome_id)
        if candidate is None:
            return
        if not feature.na_md5:
            logger.debug("Missing DNA sequence for seed protein of %s.", feature.genome_id)
        elif not feature.aa_md5:
            logger.debug("Missing protein sequence for seed protein of %s.", feature.genome_id)
        elif feature.feature_id:
            candidate.fid = feature.feature_id
            self._dna_cache.add(feature.na_md5, candidate)
            self._protein_cache.add(feature.aa_md5, candidate)

    def _flush_seed_caches(self) -> None:
        self._dna_cache.flush(self.provider.get_sequences, _set_dna)
        self._protein_cache.flush(self.provider.get_sequences, _set_protein)

    def _remove_incomplete_seeds(self) -> None:
        logger.info("Removing genomes with incomplete data or ambiguity.")
        removed = 0
        for candidate in self.candidates():
            remove = False
            if candidate.dna is None:
                remove = True
                self.stats.count("Missing Seed DNA")
            if candidate.protein is None:
                remove = True
                self.stats.count("Missing Seed AA")
            elif candidate.has_ambiguous_protein:
                remove = True
                self.stats.count("Ambiguous Seed")
            if remove:
                logger.debug("Removing %s: incomplete or ambiguous seed protein.", candidate.genome_id)
                self._remove(candidate.genome_id)
                removed += 1
        logger.info("%d incomplete or ambiguous genomes removed.", removed)

    # ------------------------------------------------------------------
    # Phase 3
    # ------------------------------------------------------------------

    def resolve_ssu_rrnas(self) -> None:
        """
        Fetch every SSU rRNA of the surviving genomes and rate them.

        Genomes with no SSU rRNA feature, or none with a sequence, are
        removed. The first genome of each genus rated NORMAL or better
        supplies that genus's reference SSU rRNA. Genomes left at
        SINGLE_SSU are queued for the genus retry when they have a genus.
        """
        logger.info("Retrieving SSU rRNA features.")
        features = self.provider.get_rna_features(list(self._candidates))
        logger.info("%d total rRNAs found.", len(features))

        ssu_features: dict[str, list[FeatureRecord]] = {}
        cache: HashBatchCache[str] = HashBatchCache(None, "SSU rRNA")
        for feature in features:
            if feature.genome_id not in self._candidates or not is_ssu_rrna(feature.product):
                continue
            ssu_features.setdefault(feature.genome_id, []).append(feature)
            if feature.na_md5:
                cache.add(feature.na_md5, feature.genome_id)
        logger.info(
            "%d SSU rRNA features found in %d genomes.",
            sum(len(f) for f in ssu_features.values()), len(ssu_features),
        )

        rnas: dict[str, list[str]] = {}
        cache.flush(
            self.provider.get_sequences,
            lambda genome_id, seq: rnas.setdefault(genome_id, []).append(seq),
        )

        self._genus_profiles.clear()
        self._retry_queue.clear()
        removed = bad = short = 0
        for count, candidate in enumerate(self.candidates(), start=1):
            genome_id = candidate.genome_id
            if genome_id not in ssu_features:
                logger.warning("No SSU rRNA found for %s: %s.", genome_id, candidate.genome_name)
                self.stats.count("SSU Not Found")
                self._remove(genome_id)
                removed += 1
            elif not rnas.get(genome_id):
                logger.warning(
                    "No SSU rRNA sequences found for %s: %s.", genome_id, candidate.genome_name
                )
                self.stats.count("SSU Seq Not Found")
                self._remove(genome_id)
                removed += 1
            else:
                rating = candidate.set_ssu_sequences(
                    rnas[genome_id], self.config, self.kmer_config
                )
                if rating == QualityRating.BAD_SSU:
                    bad += 1
                elif rating == QualityRating.SHORT_SSU:
                    short += 1
                elif rating == QualityRating.SINGLE_SSU:
                    if candidate.genus is not None:
                        self._retry_queue.append(candidate)
                elif candidate.genus is not None and candidate.genus not in self._genus_profiles:
                    self._genus_profiles[candidate.genus] = self.kmer_config.dna_kmers(
                        candidate.ssu_sequence
                    )
            if count % PROGRESS_INTERVAL == 0:
                logger.info(
                    "%d genomes processed, %d bad, %d short, %d queued for retry.",
                    count, bad, short, len(self._retry_queue),
                )
        logger.info(
            "%d genomes deleted due to missing sequences. %d flagged as bad, %d as short.",
            removed, bad, short,
        )

    # ------------------------------------------------------------------
    # Phase 4
    # ------------------------------------------------------------------

    def retry_single_ssus(self) -> int:
        """
        Rate single-SSU genomes against the reference SSU of their genus.

        A genome whose SSU is at least ``max_genus_ssu_distance`` from the
        genus reference becomes BAD_SSU. A closer one is reclaimed as NORMAL,
        or SHORT_SSU when its SSU is shorter than ``min_ssu_len``. Genomes
        whose genus has no reference stay at SINGLE_SSU. No genome is
        removed.

        Returns:
            Number of genomes reclaimed
        """
        logger.info("Retrying %d genomes at genus level.", len(self._retry_queue))
        reclaimed = 0
        for count, candidate in enumerate(self._retry_queue, start=1):
            profile = self._genus_profiles.get(candidate.genus or "")
            if profile is not None:
                distance = profile.distance(self.kmer_config.dna_kmers(candidate.ssu_sequence))
                if distance >= self.config.max_genus_ssu_distance:
                    candidate.rating = QualityRating.BAD_SSU
                else:
                    if len(candidate.ssu_sequence) >= self.config.min_ssu_len:
                        candidate.rating = QualityRating.NORMAL
                    else:
                        candidate.rating = QualityRating.SHORT_SSU
                    reclaimed += 1
            if count % PROGRESS_INTERVAL == 0:
                logger.info("%d genomes checked. %d reclaimed.", count, reclaimed)
        self._retry_queue.clear()
        self.stats.count("Genus Reclaimed", reclaimed)
        logger.info(
            "Genome count is %d. %d were reclaimed by genus testing.",
            len(self), reclaimed,
        )
        return reclaimed

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def prune(self, min_rating: QualityRating | None = None) -> int:
        """Remove genomes rated worse than ``min_rating``.

        Returns:
            Number of genomes removed
        """
        min_rating = min_rating or self.config.min_rating
        removed = 0
        for candidate in self.candidates():
            self.stats.count(f"Rating-{candidate.rating.name}")
            if candidate.rating.is_worse_than(min_rating):
                self._remove(candidate.genome_id)
                removed += 1
        logger.info("%d genomes with rating worse than %s deleted.", removed, min_rating.name)
        self.stats.count("Low Rating", removed)
        self.stats.count("Final Genome Count", len(self))
        return removed

    def rating_counts(self) -> dict[QualityRating, int]:
        counts = dict.fromkeys(RATING_ORDER, 0)
        for candidate in self._candidates.values():
            counts[candidate.rating] += 1
        return counts

    def run(
        self,
        batch_size: int | None = None,
        stop_event: threading.Event | None = None,
        min_rating: QualityRating | None = None,
    ) -> bool:
        """Run phases 2 through 4 and the prune.

        Returns:
            False if seed protein resolution was stopped before completing
        """
        if not self.resolve_seed_proteins(batch_size, stop_event):
            return False
        self.resolve_ssu_rrnas()
        self.retry_single_ssus()
        self.prune(min_rating)
        return True


def _set_dna(candidate: CandidateRecord, sequence: str) -> None:
    candidate.dna = sequence


def _set_protein(candidate: CandidateRecord, sequence: str) -> None:
    candidate.protein = sequence


def curate_candidates(
    genomes: Iterable[GenomeInput],
    provider: SequenceProvider,
    *,
    batch_size: int | None = None,
    config: CurationConfig | None = None,
    kmer_config: KmerConfig | None = None,
    stop_event: threading.Event | None = None,
) -> tuple[list[CandidateRecord], RunStatistics]:
    """
    Curate an evaluation table into rated candidates.

    Args:
        genomes: Rows of the genome evaluation table
        provider: Source of taxonomy, features and sequences
        batch_size: Distinct hashes per seed sequence fetch
        config: Curation thresholds
        kmer_config: Kmer sizes
        stop_event: Set to stop between seed sequence batches

    Returns:
        Surviving candidates in processing order, and the run statistics
    """
    curator = GenomeQualityCurator(provider, config, kmer_config)
    curator.add_genomes(genomes)
    curator.run(batch_size, stop_event)
    return curator.candidates(), curator.stats
