"""Shared pytest fixtures for 340B drug tool server tests."""

import json
import os
from collections.abc import Callable, Generator
from io import BytesIO
from types import MappingProxyType
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
import requests

from drugs_340b.cache import EligibilityCache
from drugs_340b.config import Settings
from drugs_340b.eligibility import BatchOrchestrator, EligibilityResolver
from drugs_340b.models import EligibilityRecord
from drugs_340b.rxnav import RxNavClient

HEADER_ROW = [
    "NDC",
    "Drug Name",
    "Strength",
    "Unit",
    "Route",
    "Manufacturer",
    "Package Size",
    "340B",
]


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(
        self,
        payload: object = None,
        status_code: int = 200,
        text: str | None = None,
        content: bytes | None = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = content if content is not None else text.encode()

    def json(self) -> object:
        return json.loads(self.text)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def make_session(routes: dict[str, object]) -> MagicMock:
    """Build a fake session that answers GETs by URL substring.

    Route values may be a FakeResponse, an exception instance (raised), or
    a JSON-serializable payload (returned with status 200).
    """
    session = MagicMock(spec=requests.Session)

    def fake_get(url: str, params: dict | None = None, timeout: float | None = None):
        for fragment, answer in routes.items():
            if fragment in url:
                if isinstance(answer, Exception):
                    raise answer
                if isinstance(answer, FakeResponse):
                    return answer
                return FakeResponse(answer)
        return FakeResponse({}, status_code=404)

    session.get.side_effect = fake_get
    return session


def make_workbook(rows: list[list[object]], header: list[str] | None = None) -> bytes:
    """Build xlsx bytes whose first sheet holds a header row and ``rows``."""
    data = [header if header is not None else HEADER_ROW, *rows]
    buffer = BytesIO()
    pd.DataFrame(data).to_excel(buffer, index=False, header=False)
    return buffer.getvalue()


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Set up mock environment variables for testing.

    Yields:
        Dictionary of mock environment variables.
    """
    env_vars = {
        "LOG_LEVEL": "DEBUG",
        "NDC_SOURCE_URL": "https://example.test/ndcs",
        "RXNAV_BASE_URL": "https://rxnav.test/REST",
        "RXNAV_TIMEOUT_SECONDS": "5",
        "DOWNLOAD_TIMEOUT_SECONDS": "0",
        "PORT": "9090",
        "HOST": "127.0.0.1",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at test hosts."""
    return Settings(
        log_level="DEBUG",
        ndc_source_url="https://example.test/ndcs",
        rxnav_base_url="https://rxnav.test/REST",
        rxnav_timeout=5.0,
        download_timeout=10.0,
    )


@pytest.fixture
def humira_record() -> EligibilityRecord:
    """Eligible Humira-like record."""
    return EligibilityRecord(
        ndc="00074433902",
        drug_name="HUMIRA",
        strength="40",
        unit_of_measure="MG/0.8ML",
        route="SUBCUTANEOUS",
        manufacturer="ABBVIE",
        package_size="2",
        is_340b=True,
    )


@pytest.fixture
def enbrel_record() -> EligibilityRecord:
    """Eligible Enbrel-like record."""
    return EligibilityRecord(
        ndc="58406043504",
        drug_name="ENBREL",
        strength="50",
        unit_of_measure="MG/ML",
        route="SUBCUTANEOUS",
        manufacturer="AMGEN",
        package_size="4",
        is_340b=True,
    )


@pytest.fixture
def ineligible_record() -> EligibilityRecord:
    """Cached but not 340B eligible."""
    return EligibilityRecord(
        ndc="00093505601",
        drug_name="GENERIC ORAL",
        manufacturer="TEVA",
        is_340b=False,
    )


@pytest.fixture
def loaded_cache(
    humira_record: EligibilityRecord,
    enbrel_record: EligibilityRecord,
    ineligible_record: EligibilityRecord,
) -> EligibilityCache:
    """Cache holding one ineligible and two eligible records."""
    cache = EligibilityCache()
    cache.load(
        MappingProxyType(
            {
                r.ndc: r
                for r in (humira_record, enbrel_record, ineligible_record)
            }
        )
    )
    return cache


@pytest.fixture
def client_factory() -> Callable[[dict[str, object]], RxNavClient]:
    """Return a factory building an RxNavClient over a fake session."""

    def factory(routes: dict[str, object]) -> RxNavClient:
        return RxNavClient(
            base_url="https://rxnav.test/REST",
            timeout=5.0,
            session=make_session(routes),
        )

    return factory


@pytest.fixture
def resolver_factory(
    client_factory: Callable[[dict[str, object]], RxNavClient],
    loaded_cache: EligibilityCache,
) -> Callable[[dict[str, object]], EligibilityResolver]:
    """Return a factory building a resolver over the loaded cache."""

    def factory(routes: dict[str, object]) -> EligibilityResolver:
        return EligibilityResolver(client_factory(routes), loaded_cache)

    return factory


@pytest.fixture
def batch_factory(
    resolver_factory: Callable[[dict[str, object]], EligibilityResolver],
) -> Callable[[dict[str, object]], BatchOrchestrator]:
    """Return a factory building a batch orchestrator."""

    def factory(routes: dict[str, object]) -> BatchOrchestrator:
        resolver = resolver_factory(routes)
        return BatchOrchestrator(resolver.client, resolver)

    return factory
