"""Data ingestion module for the 340B NDC eligibility workbook.

This module handles:
- Downloading the workbook
- Validating the sheet shape
- Normalizing rows into the NDC eligibility table
"""

import logging

import requests

from drugs_340b.config import Settings
from drugs_340b.ingest.loaders import download_workbook, load_excel_to_polars
from drugs_340b.ingest.normalizers import (
    build_eligibility_table,
    build_table_from_rows,
    cell_text,
    fuzzy_match_drug_partial,
    parse_eligibility_marker,
    row_to_record,
)
from drugs_340b.ingest.validators import ValidationResult, validate_eligibility_sheet
from drugs_340b.models import EligibilityTable

logger = logging.getLogger(__name__)


def ingest_eligibility_table(
    settings: Settings,
    session: requests.Session | None = None,
) -> EligibilityTable:
    """Download, parse and normalize the NDC workbook.

    The table is returned only once every row has been processed.

    Args:
        settings: Application settings (source URL and timeout).
        session: Optional requests session.

    Returns:
        Read-only mapping of NDC to record.

    Raises:
        DownloadError: If the workbook cannot be fetched.
        ParseError: If the workbook cannot be read.
    """
    content = download_workbook(
        settings.ndc_source_url,
        session=session,
        timeout=settings.download_timeout,
    )
    df = load_excel_to_polars(content)
    validation = validate_eligibility_sheet(df)
    logger.info(validation.message)
    return build_eligibility_table(df)


__all__ = [
    "ingest_eligibility_table",
    # Loaders
    "download_workbook",
    "load_excel_to_polars",
    # Validators
    "ValidationResult",
    "validate_eligibility_sheet",
    # Normalizers
    "cell_text",
    "parse_eligibility_marker",
    "row_to_record",
    "build_table_from_rows",
    "build_eligibility_table",
    "fuzzy_match_drug_partial",
]
