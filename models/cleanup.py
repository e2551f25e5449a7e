"""Cleanup and preview result models"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class DeletedAsset:
    """One asset removed (or that would be removed in a dry run)"""
    asset_id: Optional[str]
    display_name: Optional[str]
    src: Optional[str]
    reason: str
    key_name: str
    estimated_size: int
    quality_score: Optional[int] = None
    original_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.asset_id,
            "displayName": self.display_name,
            "src": self.src,
            "reason": self.reason,
            "keyName": self.key_name,
            "estimatedSize": self.estimated_size,
        }
        if self.quality_score is not None:
            data["qualityScore"] = self.quality_score
        if self.original_id is not None:
            data["originalId"] = self.original_id
        return data


@dataclass
class CleanupError:
    asset_id: Optional[str]
    key_name: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.asset_id, "keyName": self.key_name, "error": self.error}


@dataclass
class CleanupResult:
    """Report of a single cleanup invocation.

    ``found`` counts every matching candidate, including those left alone
    because ``maxDeletions`` was reached (those are also counted in
    ``skipped``). The name of the found counter depends on the mode.
    """
    mode: str
    scanned: int = 0
    found: int = 0
    deleted: int = 0
    skipped: int = 0
    kept: int = 0
    duplicate_groups: int = 0
    errors: List[CleanupError] = field(default_factory=list)
    deleted_assets: List[DeletedAsset] = field(default_factory=list)
    storage_saved: int = 0

    FOUND_KEYS = {
        "junk": "junkFound",
        "low_quality": "lowQualityFound",
        "duplicates": "duplicatesFound",
    }

    def record_deleted(self, asset: DeletedAsset):
        self.deleted_assets.append(asset)
        self.storage_saved += asset.estimated_size

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"scanned": self.scanned}
        if self.mode == "duplicates":
            data["duplicateGroupsFound"] = self.duplicate_groups
        data[self.FOUND_KEYS.get(self.mode, "found")] = self.found
        data["deleted"] = self.deleted
        data["skipped"] = self.skipped
        if self.mode == "duplicates":
            data["kept"] = self.kept
        data["errors"] = [error.to_dict() for error in self.errors]
        data["deletedAssets"] = [asset.to_dict() for asset in self.deleted_assets]
        data["storageSaved"] = self.storage_saved
        return data


@dataclass
class PreviewResult:
    """Non-destructive listing of what a full cleanup would remove"""
    total_scanned: int = 0
    junk_assets: List[DeletedAsset] = field(default_factory=list)
    low_quality_assets: List[DeletedAsset] = field(default_factory=list)
    duplicate_assets: List[DeletedAsset] = field(default_factory=list)
    junk_found: int = 0
    low_quality_found: int = 0
    duplicates_found: int = 0
    estimated_deletions: int = 0
    estimated_storage_saved: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalScanned": self.total_scanned,
            "junkAssets": [asset.to_dict() for asset in self.junk_assets],
            "lowQualityAssets": [asset.to_dict() for asset in self.low_quality_assets],
            "duplicateAssets": [asset.to_dict() for asset in self.duplicate_assets],
            "junkFound": self.junk_found,
            "lowQualityFound": self.low_quality_found,
            "duplicatesFound": self.duplicates_found,
            "estimatedDeletions": self.estimated_deletions,
            "estimatedStorageSaved": self.estimated_storage_saved,
        }
