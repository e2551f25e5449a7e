"""Cleanup tools for the asset cleanup MCP server"""

import logging
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from managers.cleanup_manager import CleanupManager, cleanup_recommendations
from tools.helpers import build_cleanup_response, run_tool, timestamp

logger = logging.getLogger("MCP_Server")


def _provided(**kwargs) -> Dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


def register_cleanup_tools(
    mcp: FastMCP,
    cleanup_manager: CleanupManager,
    defaults_manager
):
    """Register cleanup tools with the MCP server"""

    @mcp.tool()
    async def preview_cleanup(
        include_junk: Optional[bool] = None,
        include_low_quality: Optional[bool] = None,
        include_duplicates: Optional[bool] = None,
        quality_threshold: Optional[int] = None,
        max_preview: Optional[int] = None,
    ) -> dict:
        """Preview which assets a cleanup would remove, without deleting anything.

        Scans every asset once and lists junk, low-quality and duplicate
        candidates (each listing capped at max_preview) together with full
        counters and an estimate of the storage that cleanup would free.

        Args:
            include_junk: Include junk assets (default: true)
            include_low_quality: Include assets scoring below quality_threshold (default: true)
            include_duplicates: Include later copies of already-seen assets (default: true)
            quality_threshold: Quality score below which an asset counts as low quality (default: 30)
            max_preview: Maximum entries listed per category (default: 50)
        """
        provided = _provided(
            includeJunk=include_junk,
            includeLowQuality=include_low_quality,
            includeDuplicates=include_duplicates,
            qualityThreshold=quality_threshold,
            maxPreview=max_preview,
        )

        async def _run(options):
            preview = await cleanup_manager.preview(options)
            return {
                "success": True,
                "message": f"Found {preview.estimated_deletions} assets for cleanup",
                "options": options,
                "previewResults": preview.to_dict(),
                "recommendations": cleanup_recommendations(preview),
                "timestamp": timestamp(),
            }

        return await run_tool(
            lambda: defaults_manager.resolve_options("preview", provided),
            _run,
            "Failed to preview cleanup",
            tool_name="preview_cleanup",
        )

    @mcp.tool()
    async def clean_junk_assets(
        dry_run: Optional[bool] = None,
        max_deletions: Optional[int] = None,
        batch_size: Optional[int] = None,
    ) -> dict:
        """Permanently delete junk assets (placeholders, test images, missing fields).

        Deletions are irreversible; run with dry_run=true first to inspect
        the candidates. Junk assets beyond max_deletions are counted as
        skipped and left in place. Individual delete failures are reported in
        cleanupResults.errors and do not stop the run.

        Args:
            dry_run: Report what would be deleted without deleting (default: false)
            max_deletions: Maximum assets deleted in this run (default: 1000)
            batch_size: Deletes issued concurrently per batch (default: 50)
        """
        provided = _provided(dryRun=dry_run, maxDeletions=max_deletions, batchSize=batch_size)

        async def _run(options):
            result = await cleanup_manager.clean_junk(options)
            return build_cleanup_response(result, options)

        return await run_tool(
            lambda: defaults_manager.resolve_options("junk", provided),
            _run,
            "Failed to clean junk assets",
            tool_name="clean_junk_assets",
        )

    @mcp.tool()
    async def clean_low_quality_assets(
        quality_threshold: Optional[int] = None,
        dry_run: Optional[bool] = None,
        max_deletions: Optional[int] = None,
        exclude_junk: Optional[bool] = None,
        batch_size: Optional[int] = None,
    ) -> dict:
        """Permanently delete assets whose quality score is below a threshold.

        Args:
            quality_threshold: Assets scoring below this are deleted (default: 30)
            dry_run: Report what would be deleted without deleting (default: false)
            max_deletions: Maximum assets deleted in this run (default: 500)
            exclude_junk: Leave junk assets to the junk cleanup (default: true)
            batch_size: Deletes issued concurrently per batch (default: 50)
        """
        provided = _provided(
            qualityThreshold=quality_threshold,
            dryRun=dry_run,
            maxDeletions=max_deletions,
            excludeJunk=exclude_junk,
            batchSize=batch_size,
        )

        async def _run(options):
            result = await cleanup_manager.clean_low_quality(options)
            return build_cleanup_response(result, options)

        return await run_tool(
            lambda: defaults_manager.resolve_options("low_quality", provided),
            _run,
            "Failed to clean low-quality assets",
            tool_name="clean_low_quality_assets",
        )

    @mcp.tool()
    async def clean_duplicate_assets(
        dry_run: Optional[bool] = None,
        keep_strategy: Optional[str] = None,
        max_deletions: Optional[int] = None,
        batch_size: Optional[int] = None,
    ) -> dict:
        """Permanently delete duplicate assets, keeping one asset per duplicate group.

        Assets are grouped by a normalized name+locator signature. Within
        each group one keeper is chosen and every other member is deleted.

        Args:
            dry_run: Report what would be deleted without deleting (default: false)
            keep_strategy: "highest_quality", "most_recent" or "smallest_size"
                (default: "highest_quality"; anything else keeps the first-seen asset)
            max_deletions: Maximum assets deleted in this run across all groups (default: 300)
            batch_size: Deletes issued concurrently per batch (default: 50)
        """
        provided = _provided(
            dryRun=dry_run,
            keepStrategy=keep_strategy,
            maxDeletions=max_deletions,
            batchSize=batch_size,
        )

        async def _run(options):
            result = await cleanup_manager.clean_duplicates(options)
            return build_cleanup_response(result, options)

        return await run_tool(
            lambda: defaults_manager.resolve_options("duplicates", provided),
            _run,
            "Failed to clean duplicate assets",
            tool_name="clean_duplicate_assets",
        )

    return {
        "preview_cleanup": preview_cleanup,
        "clean_junk_assets": clean_junk_assets,
        "clean_low_quality_assets": clean_low_quality_assets,
        "clean_duplicate_assets": clean_duplicate_assets,
    }
