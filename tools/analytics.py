"""Analytics tools for the asset cleanup MCP server"""

import logging

from mcp.server.fastmcp import FastMCP

from managers.analytics_manager import AnalyticsManager, cleanup_potential
from tools.helpers import run_tool, timestamp

logger = logging.getLogger("MCP_Server")


def register_analytics_tools(
    mcp: FastMCP,
    analytics_manager: AnalyticsManager
):
    """Register analytics tools with the MCP server"""

    @mcp.tool()
    async def cleanup_analytics() -> dict:
        """Summarize waste across the whole asset collection.

        Returns quality and domain distributions, junk/low-quality/duplicate
        counts, estimated wasted storage and prioritized recommendations.
        Read-only: nothing is deleted.
        """
        async def _run(options):
            analytics = await analytics_manager.analyze()
            return {
                "success": True,
                "analytics": analytics,
                "cleanupPotential": cleanup_potential(analytics),
                "timestamp": timestamp(),
            }

        return await run_tool(
            dict,
            _run,
            "Failed to generate cleanup analytics",
            tool_name="cleanup_analytics",
        )

    return {"cleanup_analytics": cleanup_analytics}
