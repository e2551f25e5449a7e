"""Shared helper functions for tool implementations"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from asset_quality import format_bytes, percentage
from asset_store import StoreUnavailableError
from models.cleanup import CleanupResult

logger = logging.getLogger("MCP_Server")

MODE_LABELS = {
    "junk": "junk",
    "low_quality": "low-quality",
    "duplicates": "duplicate",
}


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(error: Any, message: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": str(error),
        "message": message,
        "timestamp": timestamp(),
    }


def build_cleanup_response(
    result: CleanupResult,
    options: Dict[str, Any],
) -> Dict[str, Any]:
    """Wrap a cleanup result in the response envelope returned by the cleanup tools.

    A non-empty ``errors`` list in the result is a partial success, not a
    failed invocation, so ``success`` stays True.
    """
    dry_run = options.get("dryRun", False)
    label = MODE_LABELS.get(result.mode, result.mode)
    if dry_run:
        message = f"Would delete {result.deleted} {label} assets (dry run)"
    else:
        message = f"Successfully deleted {result.deleted} {label} assets"

    performance = {"storageSaved": format_bytes(result.storage_saved)}
    if result.mode == "duplicates":
        performance["deduplicationRate"] = percentage(result.deleted, result.found)
    else:
        performance["deletionRate"] = percentage(result.deleted, result.scanned)

    return {
        "success": True,
        "message": message,
        "dryRun": dry_run,
        "options": options,
        "cleanupResults": result.to_dict(),
        "performance": performance,
        "timestamp": timestamp(),
    }


async def run_tool(
    resolve: Callable[[], Dict[str, Any]],
    action: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]],
    failure_message: str,
    tool_name: Optional[str] = None
) -> Dict[str, Any]:
    """Resolve options, run an async action and map failures onto error envelopes"""
    try:
        options = resolve()
    except ValueError as e:
        logger.warning(f"Invalid options for {tool_name or 'tool'}: {e}")
        return error_response(e, "Invalid cleanup options")

    try:
        return await action(options)
    except StoreUnavailableError as e:
        logger.error(f"{tool_name or 'tool'} aborted: {e}")
        return error_response(e, failure_message)
    except Exception as e:
        logger.exception(f"{tool_name or 'tool'} failed")
        return error_response(e, failure_message)
