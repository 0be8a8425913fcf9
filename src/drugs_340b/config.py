"""Configuration management for the 340B drug tool server."""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_NDC_SOURCE_URL = "https://www.340besp.com/ndcs"
DEFAULT_RXNAV_BASE_URL = "https://rxnav.nlm.nih.gov/REST"


def _timeout_from_env(name: str, default: str) -> float | None:
    """Read a timeout in seconds; zero or negative means no timeout."""
    value = float(os.getenv(name, default))
    return value if value > 0 else None


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        log_level: Logging verbosity level.
        ndc_source_url: URL of the 340B NDC eligibility workbook.
        rxnav_base_url: Base URL of the RxNav REST API.
        rxnav_timeout: Per-request RxNav timeout in seconds (None = unbounded).
        download_timeout: Workbook download timeout in seconds (None = unbounded).
        host: Bind address for the HTTP transport.
        port: HTTP port. None selects the stdio transport.
    """

    log_level: str
    ndc_source_url: str
    rxnav_base_url: str
    rxnav_timeout: float | None
    download_timeout: float | None
    host: str = "0.0.0.0"
    port: int | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with loaded configuration.
        """
        load_dotenv()

        log_level = os.getenv("LOG_LEVEL", "INFO")
        ndc_source_url = os.getenv("NDC_SOURCE_URL", DEFAULT_NDC_SOURCE_URL)
        rxnav_base_url = os.getenv("RXNAV_BASE_URL", DEFAULT_RXNAV_BASE_URL)
        rxnav_timeout = _timeout_from_env("RXNAV_TIMEOUT_SECONDS", "30")
        download_timeout = _timeout_from_env("DOWNLOAD_TIMEOUT_SECONDS", "120")
        host = os.getenv("HOST", "0.0.0.0")
        port_raw = os.getenv("PORT", "").strip()
        port = int(port_raw) if port_raw else None

        logger.debug(
            f"Loaded settings: log_level={log_level}, "
            f"ndc_source_url={ndc_source_url}, rxnav_base_url={rxnav_base_url}, "
            f"port={port}"
        )

        return cls(
            log_level=log_level,
            ndc_source_url=ndc_source_url,
            rxnav_base_url=rxnav_base_url,
            rxnav_timeout=rxnav_timeout,
            download_timeout=download_timeout,
            host=host,
            port=port,
        )

    @property
    def use_http(self) -> bool:
        """Whether to serve over HTTP instead of stdio."""
        return self.port is not None
