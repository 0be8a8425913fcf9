"""Download and workbook loading utilities for the 340B NDC file."""

import logging
from io import BytesIO

import pandas as pd
import polars as pl
import requests

from drugs_340b.exceptions import DownloadError, ParseError

logger = logging.getLogger(__name__)


def download_workbook(
    url: str,
    session: requests.Session | None = None,
    timeout: float | None = None,
) -> bytes:
    """Download the raw workbook bytes.

    Args:
        url: Location of the workbook.
        session: Optional requests session (a new request is made otherwise).
        timeout: Request timeout in seconds, or None to wait indefinitely.

    Returns:
        Response body as bytes.

    Raises:
        DownloadError: On transport failure or a non-2xx status.
    """
    logger.info(f"Downloading NDC workbook from {url}")
    http = session if session is not None else requests

    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to download NDC file: {e}")
        raise DownloadError(f"failed to download NDC file: {e}") from e

    content = response.content
    logger.info(f"Downloaded {len(content)} bytes")
    return content


def load_excel_to_polars(
    content: bytes,
    sheet_name: str | int = 0,
) -> pl.DataFrame:
    """Load a workbook sheet positionally into a Polars DataFrame.

    Uses pandas as intermediate step for Excel parsing (openpyxl backend),
    then converts to Polars. No header row is interpreted: every row,
    including the first, is returned as data. All cells are read as strings
    and empty cells become "". Columns are named ``column_0``, ``column_1``...

    Args:
        content: Raw workbook bytes.
        sheet_name: Sheet name or index to load. Defaults to first sheet.

    Returns:
        Polars DataFrame of string columns.

    Raises:
        ParseError: If the bytes are not a workbook or it has no sheets.
    """
    logger.info(f"Loading Excel workbook, sheet: {sheet_name}")

    try:
        workbook = pd.ExcelFile(BytesIO(content), engine="openpyxl")
    except Exception as e:
        logger.error(f"Failed to open Excel file: {e}")
        raise ParseError(f"failed to open Excel file: {e}") from e

    with workbook:
        if not workbook.sheet_names:
            raise ParseError("no sheets found in Excel file")

        try:
            pdf = workbook.parse(
                sheet_name=sheet_name,
                header=None,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            logger.error(f"Failed to read sheet {sheet_name}: {e}")
            raise ParseError(f"failed to read sheet {sheet_name}: {e}") from e

    pdf = pdf.fillna("").astype(str)
    pdf.columns = [f"column_{i}" for i in range(pdf.shape[1])]

    df = pl.from_pandas(pdf)

    logger.info(f"Loaded {df.height} rows, {df.width} columns")
    return df
