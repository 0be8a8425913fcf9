"""Row normalization for the 340B NDC workbook.

This module handles:
- Positional cell extraction (missing cells read as "")
- Eligibility marker interpretation
- Building the NDC -> record table (header skipped, blank codes dropped,
  last duplicate wins)
- Fuzzy drug name matching against cached records
"""

import logging
from collections.abc import Iterable, Sequence
from types import MappingProxyType

import polars as pl
from thefuzz import fuzz  # type: ignore[import-untyped]

from drugs_340b.models import EligibilityRecord, EligibilityTable

logger = logging.getLogger(__name__)

# Fixed column positions in the first sheet
NDC_COLUMN = 0
DRUG_NAME_COLUMN = 1
STRENGTH_COLUMN = 2
UNIT_OF_MEASURE_COLUMN = 3
ROUTE_COLUMN = 4
MANUFACTURER_COLUMN = 5
PACKAGE_SIZE_COLUMN = 6
IS_340B_COLUMN = 7

EXPECTED_COLUMN_COUNT = 8


def cell_text(row: Sequence[object], index: int) -> str:
    """Return the trimmed text of a cell, or "" if the cell is missing.

    Args:
        row: Row values in column order.
        index: Zero-based column position.

    Returns:
        Trimmed string value.
    """
    if index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    return str(value).strip()


def parse_eligibility_marker(marker: str) -> bool:
    """Interpret the eligibility column.

    Only "true" (any case) and "1" count as eligible; anything else,
    including an empty cell, is not eligible.
    """
    return marker.lower() == "true" or marker == "1"


def row_to_record(row: Sequence[object]) -> EligibilityRecord | None:
    """Convert a positional row to a record.

    Returns:
        The record, or None if the NDC cell is blank.
    """
    ndc = cell_text(row, NDC_COLUMN)
    if not ndc:
        return None

    return EligibilityRecord(
        ndc=ndc,
        drug_name=cell_text(row, DRUG_NAME_COLUMN),
        strength=cell_text(row, STRENGTH_COLUMN),
        unit_of_measure=cell_text(row, UNIT_OF_MEASURE_COLUMN),
        route=cell_text(row, ROUTE_COLUMN),
        manufacturer=cell_text(row, MANUFACTURER_COLUMN),
        package_size=cell_text(row, PACKAGE_SIZE_COLUMN),
        is_340b=parse_eligibility_marker(cell_text(row, IS_340B_COLUMN)),
    )


def build_table_from_rows(rows: Iterable[Sequence[object]]) -> EligibilityTable:
    """Build an eligibility table from raw rows, skipping the first (header).

    Args:
        rows: Rows in sheet order, header included.

    Returns:
        Read-only mapping of NDC to record.
    """
    table: dict[str, EligibilityRecord] = {}
    dropped = 0
    duplicates = 0

    for position, row in enumerate(rows):
        if position == 0:
            continue

        record = row_to_record(row)
        if record is None:
            dropped += 1
            continue

        if record.ndc in table:
            duplicates += 1
        table[record.ndc] = record

    if dropped:
        logger.debug(f"Dropped {dropped} rows with a blank NDC")
    if duplicates:
        logger.debug(f"Replaced {duplicates} duplicate NDC rows (last row wins)")

    logger.info(f"Built eligibility table with {len(table)} records")
    return MappingProxyType(table)


def build_eligibility_table(df: pl.DataFrame) -> EligibilityTable:
    """Build an eligibility table from a positionally loaded sheet.

    Args:
        df: DataFrame from ``load_excel_to_polars`` (row 0 is the header).

    Returns:
        Read-only mapping of NDC to record.
    """
    return build_table_from_rows(df.iter_rows())


def fuzzy_match_drug_partial(
    name: str,
    records: Iterable[EligibilityRecord],
    threshold: int = 80,
    limit: int = 10,
) -> list[tuple[EligibilityRecord, int]]:
    """Find cached records whose drug name partially matches a query.

    Uses partial ratio which is better for matching drug names
    where one string is a substring of another (e.g., "HUMIRA" in "HUMIRA PEN").

    Args:
        name: Drug name to match.
        records: Records to search.
        threshold: Minimum similarity score (0-100).
        limit: Maximum number of matches to return.

    Returns:
        (record, score) pairs, best score first; ties keep table order.
    """
    if not name or not name.strip() or limit < 1:
        return []

    name_upper = name.strip().upper()
    matches: list[tuple[EligibilityRecord, int]] = []
    for record in records:
        if not record.drug_name:
            continue
        score = fuzz.partial_ratio(name_upper, record.drug_name.upper())
        if score >= threshold:
            matches.append((record, score))

    matches.sort(key=lambda pair: pair[1], reverse=True)

    if matches:
        logger.debug(
            f"Partial match '{name}' -> {len(matches)} records "
            f"(best: '{matches[0][0].drug_name}', score: {matches[0][1]})"
        )

    return matches[:limit]
