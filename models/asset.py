"""Asset data models"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

Timestamp = Union[int, float, str]


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float


def _finite_number(value: Any) -> bool:
    # json.loads accepts NaN, Infinity and overflowing literals like 1e400
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _coerce_dimensions(value: Any) -> Optional[Dimensions]:
    if not isinstance(value, dict):
        return None
    width = value.get("width")
    height = value.get("height")
    if not _finite_number(width) or not _finite_number(height):
        return None
    return Dimensions(width=width, height=height)


def _coerce_size(value: Any) -> Optional[int]:
    if not _finite_number(value):
        return None
    return int(value)


def _coerce_text(value: Any) -> Optional[str]:
    # Empty strings are as good as missing for classification
    if value is None:
        return None
    text = str(value)
    return text or None


@dataclass
class AssetRecord:
    """Media asset as persisted in the asset store.

    Every field except ``key_name`` may be missing; classification code must
    treat a missing value as the worst case rather than fail.
    """
    key_name: str
    asset_id: Optional[str] = None
    display_name: Optional[str] = None
    src: Optional[str] = None
    file_size: Optional[int] = None
    dimensions: Optional[Dimensions] = None
    last_modified: Optional[Timestamp] = None
    created_at: Optional[Timestamp] = None
    usage_count: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_store(cls, key_name: str, value: Any) -> Optional["AssetRecord"]:
        """Build a record from a decoded store value, or None if it is not an object"""
        if not isinstance(value, dict):
            return None
        asset_id = value.get("id")
        return cls(
            key_name=key_name,
            asset_id=str(asset_id) if asset_id is not None else None,
            display_name=_coerce_text(value.get("displayName")),
            src=_coerce_text(value.get("src")),
            file_size=_coerce_size(value.get("fileSize")),
            dimensions=_coerce_dimensions(value.get("dimensions")),
            last_modified=value.get("lastModified"),
            created_at=value.get("createdAt"),
            usage_count=_coerce_size(value.get("usageCount")),
            raw=value,
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.asset_id,
            "displayName": self.display_name,
            "src": self.src,
        }
