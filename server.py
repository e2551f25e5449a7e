import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP

from asset_store import AssetStore, StoreUnavailableError, build_store_from_env, get_key_prefix
from managers import AnalyticsManager, CleanupManager, DefaultsManager
from tools.analytics import register_analytics_tools
from tools.cleanup import register_cleanup_tools
from tools.configuration import register_configuration_tools

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("MCP_Server")


def _build_store() -> Optional[AssetStore]:
    # A missing store is reported per invocation, so the server still starts
    try:
        return build_store_from_env()
    except StoreUnavailableError as e:
        logger.warning(f"Asset store unavailable: {e}")
        return None


asset_store = _build_store()
key_prefix = get_key_prefix()
defaults_manager = DefaultsManager()
cleanup_manager = CleanupManager(asset_store, key_prefix)
analytics_manager = AnalyticsManager(asset_store, key_prefix)


# Define application context
class AppContext:
    def __init__(self, store: Optional[AssetStore]):
        self.store = store


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle"""
    logger.info("Starting MCP server lifecycle...")
    try:
        logger.info(
            f"Asset store: {type(asset_store).__name__ if asset_store else 'not configured'}, "
            f"key prefix {key_prefix!r}"
        )
        yield AppContext(store=asset_store)
    finally:
        logger.info("Shutting down MCP server")


# Initialize FastMCP with lifespan
mcp = FastMCP("Asset_Cleanup_MCP_Server", lifespan=app_lifespan)

register_cleanup_tools(mcp, cleanup_manager, defaults_manager)
register_analytics_tools(mcp, analytics_manager)
register_configuration_tools(mcp, defaults_manager)

if __name__ == "__main__":
    mcp.run(transport="streamable-http")
