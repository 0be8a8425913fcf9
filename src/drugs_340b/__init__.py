"""340B Drug Lookup Tool Server.

Exposes RxNav drug lookups and 340B eligibility checks, backed by an
in-memory NDC eligibility table, as MCP tools.
"""

from drugs_340b.cache import EligibilityCache
from drugs_340b.config import Settings
from drugs_340b.models import EligibilityRecord, EligibilityResult

__version__ = "1.0.0"
__all__ = ["Settings", "EligibilityCache", "EligibilityRecord", "EligibilityResult"]
