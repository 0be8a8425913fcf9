"""Batch drug name matching and 340B checks.

Items are processed sequentially in input order. Blank items are skipped
and not counted. A failure on one item is recorded on that item's row and
never aborts the batch.
"""

import logging
from collections.abc import Iterable

from drugs_340b.eligibility.resolver import EligibilityResolver
from drugs_340b.exceptions import UpstreamError
from drugs_340b.models import (
    ApproximateBatch,
    ApproximateMatchRow,
    EligibilityBatch,
    EligibilityRow,
)
from drugs_340b.rxnav import RxNavClient

logger = logging.getLogger(__name__)

BATCH_MATCH_CANDIDATES = 3
NO_MATCHES_MESSAGE = "No matches found"


def _non_blank(items: Iterable[str]) -> list[str]:
    stripped = (str(item).strip() for item in items if item is not None)
    return [item for item in stripped if item]


class BatchOrchestrator:
    """Runs approximate matching and eligibility checks over lists."""

    def __init__(self, client: RxNavClient, resolver: EligibilityResolver) -> None:
        self.client = client
        self.resolver = resolver

    def batch_approximate(self, names: Iterable[str]) -> ApproximateBatch:
        """Find the best RxNorm match for each drug name.

        Args:
            names: Drug names; blank entries are skipped.

        Returns:
            One row per non-blank name.
        """
        batch = ApproximateBatch()

        for name in _non_blank(names):
            try:
                candidates = self.client.approximate_match(
                    name, BATCH_MATCH_CANDIDATES
                )
            except UpstreamError as e:
                batch.results.append(
                    ApproximateMatchRow(original_name=name, error=str(e))
                )
                continue

            if not candidates:
                batch.results.append(
                    ApproximateMatchRow(original_name=name, error=NO_MATCHES_MESSAGE)
                )
                continue

            best = candidates[0]
            batch.results.append(
                ApproximateMatchRow(
                    original_name=name,
                    found_name=best.name,
                    rxcui=best.rxcui,
                    score=best.score,
                )
            )

        logger.info(f"Matched {batch.total_processed} drug names")
        return batch

    def batch_eligibility(self, ndc_codes: Iterable[str]) -> EligibilityBatch:
        """Check 340B eligibility for each NDC.

        Eligible rows are enriched with the drug name and manufacturer of
        the cache record for that exact NDC, when one exists.

        Args:
            ndc_codes: NDCs; blank entries are skipped.

        Returns:
            One row per non-blank NDC.
        """
        cache = self.resolver.cache
        batch = EligibilityBatch(cache_info=cache.info)

        for ndc in _non_blank(ndc_codes):
            try:
                result = self.resolver.resolve(ndc=ndc)
            except UpstreamError as e:
                batch.results.append(EligibilityRow(ndc=ndc, error=str(e)))
                continue

            row = EligibilityRow(ndc=ndc, is_340b=result.is_340b)
            if result.is_340b:
                record = cache.lookup(ndc)
                if record is not None:
                    row.drug_name = record.drug_name
                    row.manufacturer = record.manufacturer
            batch.results.append(row)

        eligible = sum(1 for row in batch.results if row.is_340b)
        logger.info(
            f"Checked {batch.total_processed} NDCs for 340B eligibility, "
            f"{eligible} eligible"
        )
        return batch
