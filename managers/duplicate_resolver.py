"""Duplicate grouping and keeper selection"""

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

from asset_quality import calculate_quality_score, estimate_asset_size, generate_asset_signature
from models.asset import AssetRecord

logger = logging.getLogger("MCP_Server")


class KeepStrategy(str, Enum):
    HIGHEST_QUALITY = "highest_quality"
    MOST_RECENT = "most_recent"
    SMALLEST_SIZE = "smallest_size"


class DuplicateIndex:
    """Signature -> assets accumulator for one scan.

    Groups keep insertion order: the first asset seen for a signature anchors
    its group and later arrivals are appended.
    """

    def __init__(self):
        self.groups: Dict[str, List[AssetRecord]] = {}

    def add(self, asset: AssetRecord) -> Optional[AssetRecord]:
        """Add an asset; return the group's anchor if the signature was already seen"""
        signature = generate_asset_signature(asset)
        group = self.groups.get(signature)
        if group is None:
            self.groups[signature] = [asset]
            return None
        group.append(asset)
        return group[0]

    def duplicate_groups(self) -> Iterator[List[AssetRecord]]:
        for group in self.groups.values():
            if len(group) >= 2:
                yield group


def group_duplicates(assets: Iterable[AssetRecord], index: Optional[DuplicateIndex] = None) -> DuplicateIndex:
    index = index if index is not None else DuplicateIndex()
    for asset in assets:
        index.add(asset)
    return index


def recency(asset: AssetRecord) -> float:
    """Modification time (falling back to creation time) as epoch seconds; 0 if unknown"""
    value = asset.last_modified or asset.created_at
    if not value:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        logger.debug(f"Unparseable timestamp {value!r} on asset {asset.asset_id}")
        return 0.0


def select_keeper(duplicates: List[AssetRecord], strategy: str) -> AssetRecord:
    """Pick the one asset to keep; ties keep the earliest in input order"""
    if not duplicates:
        raise ValueError("Cannot select a keeper from an empty group")

    if strategy == KeepStrategy.HIGHEST_QUALITY.value:
        keeper = duplicates[0]
        for current in duplicates[1:]:
            if calculate_quality_score(current.src) > calculate_quality_score(keeper.src):
                keeper = current
        return keeper

    if strategy == KeepStrategy.MOST_RECENT.value:
        keeper = duplicates[0]
        for current in duplicates[1:]:
            if recency(current) > recency(keeper):
                keeper = current
        return keeper

    if strategy == KeepStrategy.SMALLEST_SIZE.value:
        keeper = duplicates[0]
        for current in duplicates[1:]:
            if estimate_asset_size(current) < estimate_asset_size(keeper):
                keeper = current
        return keeper

    return duplicates[0]
