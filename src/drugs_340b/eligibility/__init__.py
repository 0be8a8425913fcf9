"""Eligibility resolution and batch processing."""

from drugs_340b.eligibility.batch import (
    BATCH_MATCH_CANDIDATES,
    NO_MATCHES_MESSAGE,
    BatchOrchestrator,
)
from drugs_340b.eligibility.resolver import EligibilityResolver

__all__ = [
    "BATCH_MATCH_CANDIDATES",
    "NO_MATCHES_MESSAGE",
    "BatchOrchestrator",
    "EligibilityResolver",
]
