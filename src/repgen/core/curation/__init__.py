"""
Genome curation: taxonomy, annotation helpers, batched sequence lookup and
the multi-phase quality curator.
"""

from repgen.core.curation.cache import HashBatchCache
from repgen.core.curation.curator import GenomeQualityCurator, curate_candidates
from repgen.core.curation.provider import FeatureRecord, SequenceProvider
from repgen.core.curation.taxonomy import Lineage, TaxonomyIndex

__all__ = [
    "FeatureRecord",
    "GenomeQualityCurator",
    "HashBatchCache",
    "Lineage",
    "SequenceProvider",
    "TaxonomyIndex",
    "curate_candidates",
]
