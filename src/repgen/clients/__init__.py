"""
API clients for external services.

Provides the BV-BRC data API client used to curate candidate genomes.
"""

from repgen.clients.bvbrc import BVBRCAPIError, BVBRCClient

__all__ = [
    "BVBRCAPIError",
    "BVBRCClient",
]
