"""Data models for the asset cleanup MCP server"""

from models.asset import AssetRecord, Dimensions
from models.cleanup import CleanupError, CleanupResult, DeletedAsset, PreviewResult

__all__ = [
    "AssetRecord",
    "Dimensions",
    "CleanupError",
    "CleanupResult",
    "DeletedAsset",
    "PreviewResult",
]
