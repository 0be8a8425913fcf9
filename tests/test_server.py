"""Tests for server startup and tool registration."""

import asyncio
import json

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from drugs_340b.config import Settings
from drugs_340b.exceptions import DownloadError, ParseError, UpstreamError
from drugs_340b.rxnav import RxNavClient
from drugs_340b.server.app import DrugToolServer
from drugs_340b.server.tools import _run, parse_string_list
from tests.conftest import FakeResponse, make_session, make_workbook

EXPECTED_TOOLS = {
    "get_related_ndcs",
    "get_rx_info",
    "check_340b_eligibility",
    "find_approximate_drug_match",
    "generate_rxnorm_excel",
    "is_340b_excel",
    "search_340b_cache",
}


def _server(
    settings: Settings,
    workbook_answer: object,
    rxnav_routes: dict[str, object] | None = None,
) -> DrugToolServer:
    routes = {"example.test/ndcs": workbook_answer, **(rxnav_routes or {})}
    session = make_session(routes)
    client = RxNavClient(base_url=settings.rxnav_base_url, session=session)
    return DrugToolServer(settings, client=client)


class TestDrugToolServerStartup:
    """Two-phase startup: construct, then activate."""

    def test_build_before_activate_fails(self, test_settings: Settings) -> None:
        server = _server(test_settings, FakeResponse(content=b"", text=""))

        assert server.is_active is False
        with pytest.raises(RuntimeError, match="must be loaded"):
            server.build_mcp()

    def test_activate_loads_cache(self, test_settings: Settings) -> None:
        content = make_workbook(
            [
                ["00074433902", "HUMIRA", "40", "MG", "SC", "ABBVIE", "2", "true"],
                ["", "DROPPED"],
            ]
        )
        server = _server(test_settings, FakeResponse(content=content, text=""))

        server.activate()

        assert server.is_active is True
        assert server.cache.size == 1
        assert server.cache.lookup("00074433902").is_340b is True

    def test_activate_download_failure(self, test_settings: Settings) -> None:
        server = _server(test_settings, FakeResponse(text="", status_code=404))

        with pytest.raises(DownloadError):
            server.activate()
        assert server.is_active is False

    def test_activate_parse_failure(self, test_settings: Settings) -> None:
        server = _server(
            test_settings, FakeResponse(content=b"<html>not xlsx</html>", text="")
        )

        with pytest.raises(ParseError):
            server.activate()
        assert server.is_active is False

    def test_registers_all_tools(self, test_settings: Settings) -> None:
        content = make_workbook([["00074433902", "HUMIRA"]])
        server = _server(test_settings, FakeResponse(content=content, text=""))
        server.activate()

        mcp = server.build_mcp()
        tools = asyncio.run(mcp.list_tools())

        assert {tool.name for tool in tools} == EXPECTED_TOOLS


class TestToolCalls:
    """Tools invoked through the MCP server against a loaded cache."""

    ROWS = [
        ["00074433902", "HUMIRA", "40", "MG", "SC", "ABBVIE", "2", "true"],
        ["58406043504", "ENBREL", "50", "MG", "SC", "AMGEN", "4", "false"],
    ]

    def _active(
        self, settings: Settings, rxnav_routes: dict[str, object] | None = None
    ) -> DrugToolServer:
        content = make_workbook(self.ROWS)
        server = _server(
            settings, FakeResponse(content=content, text=""), rxnav_routes
        )
        server.activate()
        return server

    def _call(
        self, server: DrugToolServer, tool: str, arguments: dict[str, object]
    ) -> dict:
        """Call a tool and decode the JSON text it returns."""
        result = asyncio.run(server.build_mcp().call_tool(tool, arguments))
        if isinstance(result, tuple):
            result = result[0]
        return json.loads(result[0].text)

    def test_related_ndcs_blank_rxcui_uses_ndc(self, test_settings: Settings) -> None:
        """Whitespace-only identifiers are ignored when choosing the lookup."""
        server = self._active(
            test_settings,
            {
                "relatedndc.json": {
                    "ndcInfoList": {"ndcInfo": [{"ndc11": "00074433906"}]}
                }
            },
        )

        payload = self._call(
            server, "get_related_ndcs", {"rxcui": "  ", "ndc": " 00074433902 "}
        )

        assert payload == {"related_ndcs": [{"ndc11": "00074433906"}]}
        params = server.client.session.get.call_args.kwargs["params"]
        assert params == {"relation": "drug", "ndc": "00074433902"}

    def test_related_ndcs_all_blank_is_error(self, test_settings: Settings) -> None:
        server = self._active(test_settings)

        with pytest.raises(ToolError, match="Missing input"):
            self._call(server, "get_related_ndcs", {"rxcui": " ", "name": "\t"})

    def test_check_eligibility_by_ndc(self, test_settings: Settings) -> None:
        server = self._active(test_settings, {"relatedndc.json": {}})

        payload = self._call(
            server, "check_340b_eligibility", {"ndc": "00074433902"}
        )

        assert payload["is_340b"] is True
        assert payload["eligible_ndcs"][0]["manufacturer"] == "ABBVIE"
        assert payload["cache_info"] == "Loaded on startup (2 records)"

    def test_rx_info_not_found(self, test_settings: Settings) -> None:
        server = self._active(test_settings, {"allinfo.json": {}})

        payload = self._call(server, "get_rx_info", {"rxcui": "0"})

        assert payload == {"success": False, "info": None}

    def test_approximate_match(self, test_settings: Settings) -> None:
        server = self._active(
            test_settings,
            {
                "approximateTerm.json": {
                    "approximateGroup": {
                        "candidate": [
                            {"rxcui": "1191", "name": "aspirin", "score": "12.5"}
                        ]
                    }
                }
            },
        )

        payload = self._call(
            server, "find_approximate_drug_match", {"term": "asprin"}
        )

        assert payload == {
            "term": "asprin",
            "matches": [{"name": "aspirin", "rxcui": "1191", "score": "12.5"}],
            "success": True,
        }

    def test_search_cache(self, test_settings: Settings) -> None:
        server = self._active(test_settings)

        payload = self._call(server, "search_340b_cache", {"name": "humira"})

        assert payload["query"] == "humira"
        assert [m["ndc"] for m in payload["matches"]] == ["00074433902"]
        assert payload["matches"][0]["score"] == 100

    def test_batch_eligibility_rejects_bad_json(self, test_settings: Settings) -> None:
        server = self._active(test_settings)

        with pytest.raises(ToolError, match="Invalid JSON format for ndc_codes"):
            self._call(server, "is_340b_excel", {"ndc_codes": "not json"})

    def test_upstream_shape_error_is_tool_error(self, test_settings: Settings) -> None:
        server = self._active(
            test_settings,
            {"relatedndc.json": {"ndcInfoList": {"ndcInfo": {"ndc11": "1"}}}},
        )

        with pytest.raises(ToolError, match="unexpected JSON shape"):
            self._call(server, "check_340b_eligibility", {"ndc": "00074433902"})


class TestParseStringList:
    """Tests for JSON array tool arguments."""

    def test_parses_array(self) -> None:
        assert parse_string_list('["a", " b ", ""]', "drug_names") == ["a", " b ", ""]

    def test_non_string_items_stringified(self) -> None:
        assert parse_string_list("[123, null]", "ndc_codes") == ["123", ""]

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', '"text"'])
    def test_rejects_non_arrays(self, raw: str) -> None:
        with pytest.raises(ToolError, match="Invalid JSON format for ndc_codes"):
            parse_string_list(raw, "ndc_codes")


class TestRunInWorker:
    """Blocking calls are moved off the event loop and errors mapped."""

    def test_returns_value(self) -> None:
        assert asyncio.run(_run(lambda x: x * 2, 21)) == 42

    def test_upstream_error_becomes_tool_error(self) -> None:
        def failing() -> None:
            raise UpstreamError("RxNav request failed: 503")

        with pytest.raises(ToolError, match="503"):
            asyncio.run(_run(failing))

    def test_missing_input_becomes_tool_error(self) -> None:
        def failing() -> None:
            raise ValueError("Missing input: provide ndc, rxcui, or name")

        with pytest.raises(ToolError, match="Missing input"):
            asyncio.run(_run(failing))
