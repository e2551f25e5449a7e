"""Quality scoring, junk classification and size heuristics for media assets

All functions here are pure: they only look at the record handed to them and
never touch the asset store. The heuristics are kept as ordered rule tables
so the evaluation order is plain data that tests can inspect.
"""

import math
import re
from typing import Optional, Sequence, Tuple
from urllib.parse import urlsplit

from models.asset import AssetRecord

# (substring, points) - first match wins, so keep sorted by points
SOURCE_TIER_RULES: Sequence[Tuple[str, int]] = (
    ("dish.scene7.com/is/image/dishenterprise/", 100),
    ("main--da-media--", 90),
    ("dish.scene7.com/is/image/sling/", 80),
    ("dish.scene7.com", 70),
    ("cdn.sling.com", 60),
    ("assets.sling.tv", 50),
)
EXTERNAL_HTTP_POINTS = 30
UNKNOWN_SOURCE_POINTS = 10

# (substring, bonus) - mutually exclusive, first match wins
FORMAT_BONUS_RULES: Sequence[Tuple[str, int]] = (
    ("$transparent-png-desktop$", 20),
    ("format=webp", 15),
    ("optimize=medium", 10),
)

PLACEHOLDER_MARKERS: Sequence[str] = ("example.com", "placeholder")
PLACEHOLDER_PENALTY = 50

JUNK_INDICATORS: Sequence[str] = (
    "placeholder",
    "example.com",
    "test-image",
    "sample",
    "dummy",
    "fake",
    "lorem",
    "internal image",
    "broken",
    "missing",
    "temp",
    "tmp",
    "default",
    "no-image",
    "blank",
    "null",
    "undefined",
    "error",
    "404",
    "not-found",
)

JUNK_REASONS: Sequence[Tuple[str, str]] = (
    ("placeholder", "Placeholder image"),
    ("example.com", "Example domain"),
    ("test-image", "Test image"),
    ("sample", "Sample image"),
    ("dummy", "Dummy content"),
    ("fake", "Fake/mock data"),
    ("internal image", "Invalid internal reference"),
    ("broken", "Broken image reference"),
    ("missing", "Missing image file"),
    ("404", "404 error image"),
    ("not-found", "Not found image"),
)
MISSING_SRC_REASON = "Missing source URL"
MISSING_NAME_REASON = "Missing display name"
GENERIC_JUNK_REASON = "Low quality asset"

# (minimum score, bucket) - checked top to bottom
QUALITY_BUCKETS: Sequence[Tuple[int, str]] = (
    (80, "excellent"),
    (60, "good"),
    (40, "fair"),
)
LOWEST_BUCKET = "poor"

SIGNATURE_MAX_LENGTH = 50
DEFAULT_ASSET_SIZE = 25_000

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")
_BYTE_UNITS = ("Bytes", "KB", "MB", "GB")


def calculate_quality_score(src: Optional[str]) -> int:
    """Score an asset by its source locator alone.

    Roughly 0-140; a missing locator scores 0.
    """
    if not src:
        return 0

    score = UNKNOWN_SOURCE_POINTS
    for pattern, points in SOURCE_TIER_RULES:
        if pattern in src:
            score = points
            break
    else:
        if src.startswith("http"):
            score = EXTERNAL_HTTP_POINTS

    for marker, bonus in FORMAT_BONUS_RULES:
        if marker in src:
            score += bonus
            break

    if any(marker in src for marker in PLACEHOLDER_MARKERS):
        score -= PLACEHOLDER_PENALTY

    return max(0, score)


def _first_indicator(asset: AssetRecord, indicators: Sequence[str]) -> Optional[str]:
    src = asset.src.lower()
    name = asset.display_name.lower()
    for indicator in indicators:
        if indicator in src or indicator in name:
            return indicator
    return None


def is_junk_asset(asset: Optional[AssetRecord]) -> bool:
    """True when the asset lacks a locator or name, or either mentions a junk indicator"""
    if asset is None or not asset.src or not asset.display_name:
        return True
    return _first_indicator(asset, JUNK_INDICATORS) is not None


def get_junk_reason(asset: AssetRecord) -> str:
    if not asset.src:
        return MISSING_SRC_REASON
    if not asset.display_name:
        return MISSING_NAME_REASON

    reasons = dict(JUNK_REASONS)
    indicator = _first_indicator(asset, [indicator for indicator, _ in JUNK_REASONS])
    if indicator is None:
        return GENERIC_JUNK_REASON
    return reasons[indicator]


def _normalize(value: Optional[str]) -> str:
    if not value:
        return ""
    return _NON_ALPHANUMERIC.sub("", value.lower())


def generate_asset_signature(asset: AssetRecord) -> str:
    """Approximate duplicate key: normalized name and locator, truncated.

    Not a digest. Long locators that only differ past the truncation point
    collide on purpose.
    """
    signature = f"{_normalize(asset.display_name)}-{_normalize(asset.src)}"
    return signature[:SIGNATURE_MAX_LENGTH]


def estimate_asset_size(asset: AssetRecord) -> int:
    """Declared size, else a 4:2:0 raster estimate from dimensions, else a default"""
    if asset.file_size:
        return max(0, asset.file_size)
    if asset.dimensions is not None:
        estimate = asset.dimensions.width * asset.dimensions.height * 3 / 2
        if math.isfinite(estimate):
            return max(0, math.floor(estimate))
    return DEFAULT_ASSET_SIZE


def quality_bucket(score: int) -> str:
    for minimum, bucket in QUALITY_BUCKETS:
        if score >= minimum:
            return bucket
    return LOWEST_BUCKET


def extract_domain(src: Optional[str]) -> Optional[str]:
    """Hostname of an absolute URL; relative or malformed locators give None"""
    if not src:
        return None
    try:
        parts = urlsplit(src)
        hostname = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not hostname:
        return None
    return hostname


def format_bytes(num_bytes: float) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(_BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_BYTE_UNITS[index]}"


def percentage(part: int, total: int) -> int:
    """Rounded percentage (halves round up); an empty total yields 0"""
    if not total:
        return 0
    return int(math.floor(part * 100 / total + 0.5))
