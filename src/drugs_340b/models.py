"""Data models for the 340B drug tool server."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

CACHE_INFO_PREFIX = "Loaded on startup"


@dataclass(frozen=True)
class EligibilityRecord:
    """One row of the 340B NDC eligibility workbook.

    Attributes:
        ndc: National Drug Code as it appears in the workbook (trimmed).
        drug_name: Drug name.
        strength: Strength text, e.g. "40 MG".
        unit_of_measure: Unit of measure text.
        route: Route of administration.
        manufacturer: Manufacturer name.
        package_size: Package size text.
        is_340b: Whether the NDC is 340B eligible.
    """

    ndc: str
    drug_name: str = ""
    strength: str = ""
    unit_of_measure: str = ""
    route: str = ""
    manufacturer: str = ""
    package_size: str = ""
    is_340b: bool = False

    def to_dict(self) -> dict[str, object]:
        """Convert to the wire representation.

        Returns:
            Dictionary keyed by the camelCase field names clients expect.
        """
        return {
            "ndc": self.ndc,
            "drugName": self.drug_name,
            "strength": self.strength,
            "unitOfMeasure": self.unit_of_measure,
            "route": self.route,
            "manufacturer": self.manufacturer,
            "packageSize": self.package_size,
            "is340b": self.is_340b,
        }


# Read-only NDC -> record mapping; never mutated once built.
EligibilityTable = Mapping[str, EligibilityRecord]

EMPTY_TABLE: EligibilityTable = MappingProxyType({})


@dataclass(frozen=True)
class ApproximateCandidate:
    """A ranked candidate returned by RxNav approximate term matching."""

    name: str
    rxcui: str
    score: str

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "rxcui": self.rxcui, "score": self.score}


@dataclass(frozen=True)
class TermDetails:
    """RxTerms properties for a single RxCUI."""

    rxcui: str
    display_name: str = ""
    brand_name: str = ""
    full_name: str = ""
    strength: str = ""
    rxtty: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "rxcui": self.rxcui,
            "displayName": self.display_name,
            "brandName": self.brand_name,
            "fullName": self.full_name,
            "strength": self.strength,
            "rxtty": self.rxtty,
        }


def ndc_info_list(ndcs: list[str]) -> list[dict[str, str]]:
    """Wrap NDC strings in the ``{"ndc11": ...}`` objects RxNav uses."""
    return [{"ndc11": ndc} for ndc in ndcs]


@dataclass
class EligibilityResult:
    """Aggregate 340B answer for one NDC, RxCUI or drug name query.

    Attributes:
        is_340b: True if any checked NDC is eligible in the cache.
        eligible_records: Eligible cache records, in check order.
        related: Upstream payload kept for diagnostics (None if not queried).
        cache_info: Human-readable description of the cache snapshot.
    """

    is_340b: bool = False
    eligible_records: list[EligibilityRecord] = field(default_factory=list)
    related: dict[str, Any] | None = None
    cache_info: str = CACHE_INFO_PREFIX

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            "is_340b": self.is_340b,
            "cache_info": self.cache_info,
        }
        if self.related is not None:
            result["related_ndcs"] = self.related
        if self.eligible_records:
            result["eligible_ndcs"] = [r.to_dict() for r in self.eligible_records]
        return result


@dataclass
class ApproximateMatchRow:
    """Best RxNorm match for one drug name in a batch."""

    original_name: str
    found_name: str = ""
    rxcui: str = ""
    score: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "original_name": self.original_name,
            "found_name": self.found_name,
            "rxcui": self.rxcui,
            "score": self.score,
            "error": self.error,
        }


@dataclass
class EligibilityRow:
    """340B status for one NDC in a batch."""

    ndc: str
    is_340b: bool = False
    drug_name: str = ""
    manufacturer: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "ndc": self.ndc,
            "is_340b": self.is_340b,
            "drug_name": self.drug_name,
            "manufacturer": self.manufacturer,
            "error": self.error,
        }


@dataclass
class ApproximateBatch:
    """Result of matching a list of drug names."""

    results: list[ApproximateMatchRow] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": True,
            "results": [row.to_dict() for row in self.results],
            "total_processed": self.total_processed,
            "note": "Excel-like data structure for RxNorm matches",
        }


@dataclass
class EligibilityBatch:
    """Result of checking a list of NDCs for 340B eligibility."""

    results: list[EligibilityRow] = field(default_factory=list)
    cache_info: str = CACHE_INFO_PREFIX

    @property
    def total_processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": True,
            "results": [row.to_dict() for row in self.results],
            "total_processed": self.total_processed,
            "cache_info": self.cache_info,
            "note": "Excel-like data structure for 340B eligibility",
        }
