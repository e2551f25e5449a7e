"""Configuration tools for the asset cleanup MCP server"""

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from managers.defaults_manager import MODES


def register_configuration_tools(
    mcp: FastMCP,
    defaults_manager
):
    """Register configuration tools with the MCP server"""

    @mcp.tool()
    def get_cleanup_defaults() -> dict:
        """Get the effective default options for every cleanup mode.

        Returns merged defaults from all sources (runtime, config, env, hardcoded)
        for the modes preview, junk, low_quality and duplicates.
        """
        return defaults_manager.get_all_defaults()

    @mcp.tool()
    def set_cleanup_defaults(
        preview: Optional[Dict[str, Any]] = None,
        junk: Optional[Dict[str, Any]] = None,
        low_quality: Optional[Dict[str, Any]] = None,
        duplicates: Optional[Dict[str, Any]] = None,
        persist: bool = False
    ) -> dict:
        """Set default options for one or more cleanup modes.

        Args:
            preview: e.g. {"qualityThreshold": 40, "maxPreview": 20}
            junk: e.g. {"dryRun": true, "maxDeletions": 200}
            low_quality: e.g. {"qualityThreshold": 25, "excludeJunk": false}
            duplicates: e.g. {"keepStrategy": "most_recent"}
            persist: If True, write defaults to ~/.config/asset-cleanup-mcp/config.json.
                Otherwise, changes last until the server restarts.

        Returns:
            Success status and any validation errors (e.g., unknown options).
        """
        requested = {
            "preview": preview,
            "junk": junk,
            "low_quality": low_quality,
            "duplicates": duplicates,
        }
        results = {}
        errors = []

        for mode in MODES:
            values = requested[mode]
            if not values:
                continue
            result = defaults_manager.set_defaults(mode, values)
            if "error" in result or "errors" in result:
                errors.extend(result.get("errors", [result.get("error")]))
                continue
            results[mode] = result
            if persist:
                persist_result = defaults_manager.persist_defaults(mode, values)
                if "error" in persist_result:
                    errors.append(f"Failed to persist {mode} defaults: {persist_result['error']}")

        if errors:
            return {"success": False, "errors": errors}

        return {"success": True, "updated": results}

    return {
        "get_cleanup_defaults": get_cleanup_defaults,
        "set_cleanup_defaults": set_cleanup_defaults,
    }
