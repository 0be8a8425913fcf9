"""Shape checks for the downloaded 340B NDC workbook sheet."""

import logging
from dataclasses import dataclass, field

import polars as pl

from drugs_340b.ingest.normalizers import EXPECTED_COLUMN_COUNT

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a sheet validation check.

    Attributes:
        is_valid: Whether the validation passed.
        message: Human-readable description of the result.
        row_count: Number of data rows (header excluded).
        warnings: List of non-fatal issues detected.
    """

    is_valid: bool
    message: str
    row_count: int = 0
    warnings: list[str] = field(default_factory=list)


def validate_eligibility_sheet(df: pl.DataFrame) -> ValidationResult:
    """Validate the positional NDC sheet.

    The sheet is never rejected: narrow sheets and missing data rows are
    reported as warnings because missing cells read as empty strings.

    Args:
        df: DataFrame from ``load_excel_to_polars``, header row included.

    Returns:
        ValidationResult with status and details.
    """
    row_count = max(df.height - 1, 0)
    warnings = []

    if df.width < EXPECTED_COLUMN_COUNT:
        warnings.append(
            f"Sheet has {df.width} columns, expected {EXPECTED_COLUMN_COUNT}; "
            f"missing columns will read as empty"
        )

    if row_count == 0:
        warnings.append("Sheet has no data rows below the header")

    for warning in warnings:
        logger.warning(warning)

    return ValidationResult(
        is_valid=True,
        message=f"NDC sheet has {row_count} data rows",
        row_count=row_count,
        warnings=warnings,
    )
