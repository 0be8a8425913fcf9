"""Client for the NLM RxNav REST API.

Endpoints used:
- /rxcui/{rxcui}/ndcs.json            NDCs for a concept
- /relatedndc.json?relation=drug      NDCs related to an NDC
- /rxcui.json?name=&search=2          concept search by name (raw body)
- /RxTerms/rxcui/{rxcui}/allinfo.json RxTerms details
- /approximateTerm.json               approximate name matching

Every call is a single GET with no retry. Failures raise UpstreamError.
"""

import logging
from typing import Any
from urllib.parse import quote

import requests

from drugs_340b.config import DEFAULT_RXNAV_BASE_URL
from drugs_340b.exceptions import UpstreamError
from drugs_340b.models import ApproximateCandidate, TermDetails

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1


def coerce_max_entries(max_entries: object) -> int:
    """Coerce a caller-supplied candidate count to a positive integer.

    None, zero, negative and unparseable values fall back to 1.
    """
    try:
        value = int(max_entries)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_MAX_ENTRIES
    return value if value >= 1 else DEFAULT_MAX_ENTRIES


def _segment(value: str) -> str:
    return quote(value.strip(), safe="")


def _object(value: object, field: str) -> dict[str, Any]:
    """Return a JSON object field, treating null as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise UpstreamError(f"RxNav returned unexpected JSON shape for {field}")
    return value


def _array(value: object, field: str, item_type: type) -> list[Any]:
    """Return a JSON array field whose items are all of ``item_type``."""
    if value is None:
        return []
    if not isinstance(value, list) or not all(
        isinstance(item, item_type) for item in value
    ):
        raise UpstreamError(f"RxNav returned unexpected JSON shape for {field}")
    return value


class RxNavClient:
    """Blocking RxNav client sharing one requests session."""

    def __init__(
        self,
        base_url: str = DEFAULT_RXNAV_BASE_URL,
        timeout: float | None = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def _get(
        self, path: str, params: dict[str, Any] | None = None
    ) -> requests.Response:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"RxNav request failed for {path}: {e}")
            raise UpstreamError(f"RxNav request failed: {e}") from e
        return response

    def _get_json(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        response = self._get(path, params)
        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"RxNav returned malformed JSON for {path}: {e}")
            raise UpstreamError(f"RxNav returned malformed JSON: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise UpstreamError(
                f"RxNav returned unexpected JSON type: {type(data).__name__}"
            )
        return data

    def ndcs_for_concept(self, rxcui: str) -> list[str]:
        """Return the NDCs linked to an RxCUI, in upstream order."""
        data = self._get_json(f"rxcui/{_segment(rxcui)}/ndcs.json")
        group = _object(data.get("ndcGroup"), "ndcGroup")
        ndc_list = _object(group.get("ndcList"), "ndcGroup.ndcList")
        ndcs = _array(ndc_list.get("ndc"), "ndcGroup.ndcList.ndc", str)
        return [ndc for ndc in ndcs if ndc]

    def related_ndcs(self, ndc: str) -> list[str]:
        """Return NDCs related to an NDC by drug relation, in upstream order."""
        data = self._get_json(
            "relatedndc.json", params={"relation": "drug", "ndc": ndc.strip()}
        )
        info_list = _object(data.get("ndcInfoList"), "ndcInfoList")
        infos = _array(info_list.get("ndcInfo"), "ndcInfoList.ndcInfo", dict)
        return [str(info["ndc11"]) for info in infos if info.get("ndc11")]

    def resolve_concepts_by_name(self, name: str) -> str:
        """Search concepts by name and return the raw response body."""
        response = self._get("rxcui.json", params={"name": name, "search": 2})
        return response.text

    def term_details(self, rxcui: str) -> TermDetails | None:
        """Return RxTerms details for an RxCUI, or None if there are none."""
        data = self._get_json(f"RxTerms/rxcui/{_segment(rxcui)}/allinfo.json")
        props = _object(data.get("rxtermsProperties"), "rxtermsProperties")
        if not props:
            return None

        return TermDetails(
            rxcui=str(props.get("rxcui") or rxcui),
            display_name=props.get("displayName") or "",
            brand_name=props.get("brandName") or "",
            full_name=props.get("fullName") or "",
            strength=props.get("strength") or "",
            rxtty=props.get("rxtty") or "",
        )

    def approximate_match(
        self,
        term: str,
        max_entries: object = DEFAULT_MAX_ENTRIES,
    ) -> list[ApproximateCandidate]:
        """Return approximate matches for a term in upstream ranking order."""
        data = self._get_json(
            "approximateTerm.json",
            params={
                "term": term.strip(),
                "maxEntries": coerce_max_entries(max_entries),
            },
        )
        group = _object(data.get("approximateGroup"), "approximateGroup")
        candidates = _array(group.get("candidate"), "approximateGroup.candidate", dict)
        return [
            ApproximateCandidate(
                name=c.get("name") or "",
                rxcui=str(c.get("rxcui") or ""),
                score=str(c.get("score") or ""),
            )
            for c in candidates
        ]

    def close(self) -> None:
        self.session.close()
