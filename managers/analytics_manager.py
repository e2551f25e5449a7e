"""Collection-wide waste analytics and recommendations"""

import logging
from typing import Any, Dict, List, Optional

from asset_quality import (
    calculate_quality_score,
    estimate_asset_size,
    extract_domain,
    format_bytes,
    generate_asset_signature,
    is_junk_asset,
    percentage,
    quality_bucket,
)
from asset_store import DEFAULT_KEY_PREFIX, AssetStore
from managers.asset_scanner import AssetScanner

logger = logging.getLogger("MCP_Server")

STORAGE_WARNING_BYTES = 10 * 1024 * 1024


def _empty_analytics() -> Dict[str, Any]:
    return {
        "totalAssets": 0,
        "junkAssets": 0,
        "lowQualityAssets": 0,
        "duplicateAssets": 0,
        "highQualityAssets": 0,
        "qualityDistribution": {
            "excellent": 0,
            "good": 0,
            "fair": 0,
            "poor": 0,
            "junk": 0,
        },
        "domainDistribution": {},
        "estimatedWaste": {
            "junkStorage": 0,
            "lowQualityStorage": 0,
            "duplicateStorage": 0,
            "totalWaste": 0,
        },
    }


def analytics_recommendations(analytics: Dict[str, Any]) -> List[Dict[str, str]]:
    """Prioritised recommendations; safe on an empty collection"""
    recommendations = []
    total = analytics["totalAssets"]

    junk_percentage = percentage(analytics["junkAssets"], total)
    if junk_percentage > 10:
        recommendations.append({
            "type": "critical",
            "message": f"{junk_percentage}% of assets are junk - immediate cleanup required",
            "action": "Run junk asset cleanup",
            "priority": "high",
        })

    low_quality_percentage = percentage(analytics["lowQualityAssets"], total)
    if low_quality_percentage > 15:
        recommendations.append({
            "type": "warning",
            "message": f"{low_quality_percentage}% of assets are low quality - review recommended",
            "action": "Review and clean low-quality assets",
            "priority": "medium",
        })

    duplicate_percentage = percentage(analytics["duplicateAssets"], total)
    if duplicate_percentage > 5:
        recommendations.append({
            "type": "optimization",
            "message": f"{duplicate_percentage}% of assets are duplicates - deduplication recommended",
            "action": "Run duplicate cleanup",
            "priority": "medium",
        })

    total_waste = analytics["estimatedWaste"]["totalWaste"]
    if total_waste > STORAGE_WARNING_BYTES:
        recommendations.append({
            "type": "storage",
            "message": f"{format_bytes(total_waste)} storage can be saved through cleanup",
            "action": "Comprehensive cleanup recommended",
            "priority": "high",
        })

    return recommendations


class AnalyticsManager:
    """Single-pass aggregation of quality, junk, duplicate and domain statistics.

    Duplicates here are counted with a running "signature seen before" set
    over non-junk assets only. That is coarser than the grouping used by
    duplicate cleanup, so the two numbers can disagree; both are kept as is.
    """

    def __init__(self, store: Optional[AssetStore], prefix: str = DEFAULT_KEY_PREFIX):
        self.scanner = AssetScanner(store, prefix)

    async def analyze(self) -> Dict[str, Any]:
        analytics = _empty_analytics()
        distribution = analytics["qualityDistribution"]
        waste = analytics["estimatedWaste"]
        domains: Dict[str, int] = analytics["domainDistribution"]
        seen_signatures = set()

        async for asset in self.scanner.scan():
            analytics["totalAssets"] += 1
            size = estimate_asset_size(asset)

            if is_junk_asset(asset):
                analytics["junkAssets"] += 1
                distribution["junk"] += 1
                waste["junkStorage"] += size
                continue

            bucket = quality_bucket(calculate_quality_score(asset.src))
            distribution[bucket] += 1
            if bucket == "excellent":
                analytics["highQualityAssets"] += 1
            elif bucket == "poor":
                analytics["lowQualityAssets"] += 1
                waste["lowQualityStorage"] += size

            signature = generate_asset_signature(asset)
            if signature in seen_signatures:
                analytics["duplicateAssets"] += 1
                waste["duplicateStorage"] += size
            else:
                seen_signatures.add(signature)

            domain = extract_domain(asset.src)
            if domain:
                domains[domain] = domains.get(domain, 0) + 1

        waste["totalWaste"] = (
            waste["junkStorage"] + waste["lowQualityStorage"] + waste["duplicateStorage"]
        )
        analytics["recommendations"] = analytics_recommendations(analytics)
        analytics["estimatedWasteBytes"] = dict(waste)
        analytics["estimatedWaste"] = {name: format_bytes(value) for name, value in waste.items()}

        logger.info(
            f"Analytics: total={analytics['totalAssets']} junk={analytics['junkAssets']} "
            f"low_quality={analytics['lowQualityAssets']} duplicates={analytics['duplicateAssets']} "
            f"waste={analytics['estimatedWaste']['totalWaste']}"
        )
        return analytics


def cleanup_potential(analytics: Dict[str, Any]) -> Dict[str, str]:
    waste = analytics["estimatedWaste"]
    return {
        "junkCleanup": f"{analytics['junkAssets']} assets, {waste['junkStorage']}",
        "qualityCleanup": f"{analytics['lowQualityAssets']} assets, {waste['lowQualityStorage']}",
        "duplicateCleanup": f"{analytics['duplicateAssets']} assets, {waste['duplicateStorage']}",
    }
