"""MCP tool definitions for the 340B drug tool server.

Each tool runs its blocking work in a worker thread and returns
pretty-printed JSON. Lookup failures are reported as MCP tool errors.
"""

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from drugs_340b.exceptions import UpstreamError
from drugs_340b.rxnav import DEFAULT_MAX_ENTRIES

if TYPE_CHECKING:
    from drugs_340b.server.app import DrugToolServer

logger = logging.getLogger(__name__)

MISSING_IDENTIFIER_MESSAGE = "Missing input: provide ndc, rxcui, or name"
CACHE_SEARCH_THRESHOLD = 80
CACHE_SEARCH_LIMIT = 10


def _to_json(payload: object) -> str:
    return json.dumps(payload, indent=2)


def parse_string_list(raw: str, argument: str) -> list[str]:
    """Parse a JSON array of strings passed as a tool argument.

    Raises:
        ToolError: If the value is not a JSON array.
    """
    try:
        values = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ToolError(f"Invalid JSON format for {argument}") from e
    if not isinstance(values, list):
        raise ToolError(f"Invalid JSON format for {argument}")
    return ["" if value is None else str(value) for value in values]


async def _run(func, *args, **kwargs):
    """Run a blocking lookup in a worker thread, mapping failures to ToolError."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except UpstreamError as e:
        raise ToolError(str(e)) from e
    except ValueError as e:
        raise ToolError(str(e)) from e


def register_tools(mcp: FastMCP, server: "DrugToolServer") -> None:
    """Register every drug lookup tool on an MCP server."""

    @mcp.tool()
    async def get_related_ndcs(ndc: str = "", rxcui: str = "", name: str = "") -> str:
        """Get related NDCs for a given NDC, RxCUI, or drug name.

        Args:
          ndc: National Drug Code (NDC)
          rxcui: RxNorm Concept Unique Identifier
          name: Drug name
        """
        ndc, rxcui, name = ndc.strip(), rxcui.strip(), name.strip()
        if not (ndc or rxcui or name):
            raise ToolError(MISSING_IDENTIFIER_MESSAGE)
        related, _ = await _run(
            server.resolver.related, ndc=ndc, rxcui=rxcui, name=name
        )
        return _to_json(related)

    @mcp.tool()
    async def get_rx_info(rxcui: str) -> str:
        """Get detailed information for a given RxCUI.

        Args:
          rxcui: RxNorm Concept Unique Identifier
        """
        if not rxcui.strip():
            raise ToolError("rxcui is required")
        details = await _run(server.client.term_details, rxcui)
        if details is None:
            return _to_json({"success": False, "info": None})
        return _to_json({"success": True, "info": details.to_dict()})

    @mcp.tool()
    async def check_340b_eligibility(
        ndc: str = "", rxcui: str = "", name: str = ""
    ) -> str:
        """Check if a drug is 340B eligible based on NDC, RxCUI, or drug name.

        Args:
          ndc: National Drug Code (NDC)
          rxcui: RxNorm Concept Unique Identifier
          name: Drug name
        """
        result = await _run(
            server.resolver.resolve, ndc=ndc, rxcui=rxcui, name=name
        )
        return _to_json(result.to_dict())

    @mcp.tool()
    async def find_approximate_drug_match(
        term: str, max_entries: float = DEFAULT_MAX_ENTRIES
    ) -> str:
        """Find approximate drug name matches using RxNorm API.

        Args:
          term: Drug name to search for
          max_entries: Maximum number of results to return (default: 1)
        """
        if not term.strip():
            raise ToolError("term is required")
        matches = await _run(server.client.approximate_match, term, max_entries)
        return _to_json(
            {
                "term": term,
                "matches": [m.to_dict() for m in matches],
                "success": True,
            }
        )

    @mcp.tool()
    async def generate_rxnorm_excel(drug_names: str) -> str:
        """Process drug names and return rows with their best RxNorm match.

        Args:
          drug_names: JSON array of drug names to process
        """
        names = parse_string_list(drug_names, "drug_names")
        batch = await _run(server.batch.batch_approximate, names)
        return _to_json(batch.to_dict())

    @mcp.tool()
    async def is_340b_excel(ndc_codes: str) -> str:
        """Process NDC codes and return rows with their 340B eligibility status.

        Args:
          ndc_codes: JSON array of NDC codes to check
        """
        codes = parse_string_list(ndc_codes, "ndc_codes")
        batch = await _run(server.batch.batch_eligibility, codes)
        return _to_json(batch.to_dict())

    @mcp.tool()
    async def search_340b_cache(name: str, limit: int = CACHE_SEARCH_LIMIT) -> str:
        """Search the cached 340B NDC list by drug name (fuzzy match).

        Args:
          name: Drug name or fragment, e.g. "HUMIRA"
          limit: Maximum number of records to return (default: 10)
        """
        if not name.strip():
            raise ToolError("name is required")
        matches = await _run(
            server.cache.search_by_name,
            name,
            threshold=CACHE_SEARCH_THRESHOLD,
            limit=limit,
        )
        return _to_json(
            {
                "query": name,
                "matches": [
                    {**record.to_dict(), "score": score} for record, score in matches
                ],
                "cache_info": server.cache.info,
            }
        )

    logger.debug("Registered drug lookup tools")
