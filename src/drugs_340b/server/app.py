"""Entry point for the 340B drug MCP server.

Run with: drugs-340b-server  (or python -m drugs_340b.server.app)

Startup is two-phase: components are constructed first, then ``activate``
downloads the NDC workbook and loads the cache. No tool is reachable until
activation succeeds; a failed ingestion exits the process with status 1.

Without PORT the server speaks MCP over stdio. With PORT it serves
streamable HTTP on HOST:PORT plus a GET /health check.
"""

import logging
import signal
import sys

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from drugs_340b.cache import EligibilityCache
from drugs_340b.config import Settings
from drugs_340b.eligibility import BatchOrchestrator, EligibilityResolver
from drugs_340b.exceptions import DownloadError, ParseError
from drugs_340b.ingest import ingest_eligibility_table
from drugs_340b.rxnav import RxNavClient
from drugs_340b.server.tools import register_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "340b-drugs"


class DrugToolServer:
    """Owns the cache, RxNav client and lookup services for one process."""

    def __init__(
        self,
        settings: Settings,
        client: RxNavClient | None = None,
        cache: EligibilityCache | None = None,
    ) -> None:
        self.settings = settings
        self.client = client or RxNavClient(
            base_url=settings.rxnav_base_url,
            timeout=settings.rxnav_timeout,
        )
        self.cache = cache or EligibilityCache()
        self.resolver = EligibilityResolver(self.client, self.cache)
        self.batch = BatchOrchestrator(self.client, self.resolver)

    @property
    def is_active(self) -> bool:
        return self.cache.is_loaded

    def activate(self) -> None:
        """Ingest the NDC workbook and install it in the cache.

        Raises:
            DownloadError: If the workbook cannot be fetched.
            ParseError: If the workbook cannot be read.
        """
        logger.info("Initializing NDC cache...")
        table = ingest_eligibility_table(self.settings, session=self.client.session)
        self.cache.load(table)

    def build_mcp(self) -> FastMCP:
        """Create the MCP server with every tool registered.

        Raises:
            RuntimeError: If called before ``activate``.
        """
        if not self.is_active:
            raise RuntimeError("NDC cache must be loaded before serving tools")

        mcp = FastMCP(
            SERVER_NAME,
            host=self.settings.host,
            port=self.settings.port or 8000,
        )
        register_tools(mcp, self)

        @mcp.custom_route("/health", methods=["GET"])
        async def health(request: Request) -> PlainTextResponse:
            return PlainTextResponse("OK")

        return mcp

    def serve(self) -> None:
        """Run the MCP server on the configured transport (blocks)."""
        mcp = self.build_mcp()
        if self.settings.use_http:
            logger.info(f"Starting HTTP MCP server on port {self.settings.port}")
            mcp.run(transport="streamable-http")
        else:
            logger.info("Starting stdio MCP server...")
            mcp.run(transport="stdio")

    def close(self) -> None:
        self.client.close()


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the stdio protocol."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _handle_termination(signum: int, frame: object) -> None:
    logger.info("Shutting down...")
    sys.exit(0)


def main() -> None:
    """Main entry point for the MCP server."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    server = DrugToolServer(settings)
    try:
        server.activate()
    except (DownloadError, ParseError) as e:
        logger.error(f"Failed to initialize NDC cache: {e}")
        server.close()
        sys.exit(1)

    signal.signal(signal.SIGTERM, _handle_termination)

    try:
        server.serve()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        server.close()


if __name__ == "__main__":
    main()
