"""340B eligibility resolution for an NDC, RxCUI or drug name.

Resolution order follows identifier precedence: RxCUI first, then drug
name, then NDC. The name path only records the raw concept search for
diagnostics; it contributes no NDCs to check.
"""

import logging

from drugs_340b.cache import EligibilityCache
from drugs_340b.models import EligibilityResult, ndc_info_list
from drugs_340b.rxnav import RxNavClient

logger = logging.getLogger(__name__)


class EligibilityResolver:
    """Combines RxNav lookups with the eligibility cache."""

    def __init__(self, client: RxNavClient, cache: EligibilityCache) -> None:
        self.client = client
        self.cache = cache

    def related(
        self,
        ndc: str = "",
        rxcui: str = "",
        name: str = "",
    ) -> tuple[dict[str, object], list[str]]:
        """Query RxNav for the identifier with the highest precedence.

        Args:
            ndc: National Drug Code.
            rxcui: RxNorm concept identifier.
            name: Free-text drug name.

        Returns:
            Tuple of (diagnostic payload, candidate NDCs). The payload has a
            single key: "ndcs", "rxcui_search" or "related_ndcs".

        Raises:
            UpstreamError: If the RxNav call fails.
        """
        if rxcui:
            ndcs = self.client.ndcs_for_concept(rxcui)
            return {"ndcs": ndc_info_list(ndcs)}, ndcs
        if name:
            raw = self.client.resolve_concepts_by_name(name)
            return {"rxcui_search": raw}, []
        if ndc:
            ndcs = self.client.related_ndcs(ndc)
            return {"related_ndcs": ndc_info_list(ndcs)}, ndcs
        return {}, []

    def resolve(
        self,
        ndc: str = "",
        rxcui: str = "",
        name: str = "",
    ) -> EligibilityResult:
        """Decide 340B eligibility for an identifier.

        The input NDC (if any) and every candidate NDC from RxNav are looked
        up in the cache. Any eligible record makes the result eligible.

        Raises:
            ValueError: If no identifier is provided.
            UpstreamError: If the RxNav call fails.
        """
        ndc = (ndc or "").strip()
        rxcui = (rxcui or "").strip()
        name = (name or "").strip()

        if not (ndc or rxcui or name):
            raise ValueError("Missing input: provide ndc, rxcui, or name")

        related, candidates = self.related(ndc=ndc, rxcui=rxcui, name=name)

        to_check = [ndc] if ndc else []
        to_check.extend(candidates)

        # One snapshot for the whole request
        table = self.cache.snapshot()
        result = EligibilityResult(related=related, cache_info=self.cache.info)
        for code in dict.fromkeys(to_check):
            record = table.get(code)
            if record is not None and record.is_340b:
                result.eligible_records.append(record)
                result.is_340b = True

        logger.debug(
            f"Checked {len(to_check)} NDCs (ndc={ndc!r}, rxcui={rxcui!r}, "
            f"name={name!r}): is_340b={result.is_340b}"
        )
        return result
