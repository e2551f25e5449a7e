"""Cleanup orchestration: junk, low-quality and duplicate removal over the asset store"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from asset_quality import (
    calculate_quality_score,
    estimate_asset_size,
    format_bytes,
    get_junk_reason,
    is_junk_asset,
)
from asset_store import DEFAULT_KEY_PREFIX, AssetStore
from managers.asset_scanner import AssetScanner
from managers.duplicate_resolver import DuplicateIndex, select_keeper
from models.asset import AssetRecord
from models.cleanup import CleanupError, CleanupResult, DeletedAsset, PreviewResult

logger = logging.getLogger("MCP_Server")


def describe_asset(
    asset: AssetRecord,
    reason: str,
    quality_score: Optional[int] = None,
    original_id: Optional[str] = None
) -> DeletedAsset:
    return DeletedAsset(
        asset_id=asset.asset_id,
        display_name=asset.display_name,
        src=asset.src,
        reason=reason,
        key_name=asset.key_name,
        estimated_size=estimate_asset_size(asset),
        quality_score=quality_score,
        original_id=original_id,
    )


class _DeletionBatcher:
    """Issues deletes with bounded concurrency and records their outcome.

    Deletes start as soon as they are submitted; once ``batch_size`` are in
    flight they are awaited together before the scan continues. In a dry run
    nothing is deleted and every candidate is recorded as if it had been.
    """

    def __init__(self, store: AssetStore, result: CleanupResult, batch_size: int, dry_run: bool):
        self.store = store
        self.result = result
        self.batch_size = max(1, batch_size)
        self.dry_run = dry_run
        self._pending: List[asyncio.Task] = []

    async def submit(self, asset: DeletedAsset):
        if self.dry_run:
            self.result.record_deleted(asset)
            return
        self._pending.append(asyncio.create_task(self._delete(asset)))
        if len(self._pending) >= self.batch_size:
            await self.flush()

    async def _delete(self, asset: DeletedAsset):
        try:
            await self.store.delete(asset.key_name)
        except Exception as e:
            logger.warning(f"Failed to delete {asset.key_name}: {e}")
            self.result.errors.append(
                CleanupError(asset_id=asset.asset_id, key_name=asset.key_name, error=str(e))
            )
            return
        self.result.deleted += 1
        self.result.record_deleted(asset)

    async def flush(self):
        if not self._pending:
            return
        pending, self._pending = self._pending, []
        await asyncio.gather(*pending)

    async def finish(self):
        await self.flush()
        if self.dry_run:
            self.result.deleted = len(self.result.deleted_assets)


class CleanupManager:
    """Runs the cleanup modes against one asset namespace of the store"""

    def __init__(self, store: Optional[AssetStore], prefix: str = DEFAULT_KEY_PREFIX):
        self.scanner = AssetScanner(store, prefix)

    async def clean_junk(self, options: Dict[str, Any]) -> CleanupResult:
        store = self.scanner.require_store()
        result = CleanupResult(mode="junk")
        batcher = _DeletionBatcher(store, result, options["batchSize"], options["dryRun"])
        max_deletions = options["maxDeletions"]
        candidates = 0

        try:
            async for asset in self.scanner.scan(result.errors):
                result.scanned += 1
                if not is_junk_asset(asset):
                    continue
                result.found += 1
                if candidates >= max_deletions:
                    result.skipped += 1
                    continue
                candidates += 1
                await batcher.submit(describe_asset(asset, get_junk_reason(asset)))
        finally:
            await batcher.finish()

        logger.info(
            f"Junk cleanup (dry_run={options['dryRun']}): scanned={result.scanned} "
            f"found={result.found} deleted={result.deleted} skipped={result.skipped} "
            f"errors={len(result.errors)} saved={format_bytes(result.storage_saved)}"
        )
        return result

    async def clean_low_quality(self, options: Dict[str, Any]) -> CleanupResult:
        store = self.scanner.require_store()
        result = CleanupResult(mode="low_quality")
        batcher = _DeletionBatcher(store, result, options["batchSize"], options["dryRun"])
        threshold = options["qualityThreshold"]
        max_deletions = options["maxDeletions"]
        candidates = 0

        try:
            async for asset in self.scanner.scan(result.errors):
                result.scanned += 1
                if options["excludeJunk"] and is_junk_asset(asset):
                    continue
                score = calculate_quality_score(asset.src)
                if score >= threshold:
                    continue
                result.found += 1
                if candidates >= max_deletions:
                    result.skipped += 1
                    continue
                candidates += 1
                reason = f"Quality score {score} below threshold {threshold}"
                await batcher.submit(describe_asset(asset, reason, quality_score=score))
        finally:
            await batcher.finish()

        logger.info(
            f"Low-quality cleanup (dry_run={options['dryRun']}, threshold={threshold}): "
            f"scanned={result.scanned} found={result.found} deleted={result.deleted} "
            f"skipped={result.skipped} errors={len(result.errors)}"
        )
        return result

    async def clean_duplicates(self, options: Dict[str, Any]) -> CleanupResult:
        store = self.scanner.require_store()
        result = CleanupResult(mode="duplicates")
        batcher = _DeletionBatcher(store, result, options["batchSize"], options["dryRun"])
        strategy = options["keepStrategy"]
        max_deletions = options["maxDeletions"]

        # Grouping needs the full scan before any keeper can be chosen
        index = DuplicateIndex()
        async for asset in self.scanner.scan(result.errors):
            result.scanned += 1
            index.add(asset)

        candidates = 0
        try:
            for group in index.duplicate_groups():
                result.duplicate_groups += 1
                result.found += len(group) - 1
                keeper = select_keeper(group, strategy)
                for duplicate in group:
                    if duplicate is keeper:
                        continue
                    if candidates >= max_deletions:
                        result.skipped += 1
                        continue
                    candidates += 1
                    reason = f"Duplicate of {keeper.display_name} (kept: {keeper.asset_id})"
                    await batcher.submit(describe_asset(duplicate, reason, original_id=keeper.asset_id))
                result.kept += 1
        finally:
            await batcher.finish()

        logger.info(
            f"Duplicate cleanup (dry_run={options['dryRun']}, strategy={strategy}): "
            f"groups={result.duplicate_groups} duplicates={result.found} "
            f"deleted={result.deleted} skipped={result.skipped} errors={len(result.errors)}"
        )
        return result

    async def preview(self, options: Dict[str, Any]) -> PreviewResult:
        """List what junk, low-quality and duplicate cleanup would remove, without deleting"""
        preview = PreviewResult()
        max_preview = options["maxPreview"]
        threshold = options["qualityThreshold"]
        index = DuplicateIndex()

        async for asset in self.scanner.scan():
            preview.total_scanned += 1
            size = estimate_asset_size(asset)
            junk = is_junk_asset(asset)

            if options["includeJunk"] and junk:
                preview.junk_found += 1
                if len(preview.junk_assets) < max_preview:
                    preview.junk_assets.append(describe_asset(asset, get_junk_reason(asset)))
                preview.estimated_deletions += 1
                preview.estimated_storage_saved += size

            if options["includeLowQuality"] and not junk:
                score = calculate_quality_score(asset.src)
                if score < threshold:
                    preview.low_quality_found += 1
                    if len(preview.low_quality_assets) < max_preview:
                        reason = f"Quality score {score} below threshold {threshold}"
                        preview.low_quality_assets.append(
                            describe_asset(asset, reason, quality_score=score)
                        )
                    preview.estimated_deletions += 1
                    preview.estimated_storage_saved += size

            if options["includeDuplicates"]:
                original = index.add(asset)
                if original is not None:
                    preview.duplicates_found += 1
                    if len(preview.duplicate_assets) < max_preview:
                        preview.duplicate_assets.append(
                            describe_asset(
                                asset,
                                f"Duplicate of {original.display_name}",
                                original_id=original.asset_id,
                            )
                        )
                    preview.estimated_deletions += 1
                    preview.estimated_storage_saved += size

        logger.info(
            f"Cleanup preview: scanned={preview.total_scanned} "
            f"estimated_deletions={preview.estimated_deletions} "
            f"estimated_saved={format_bytes(preview.estimated_storage_saved)}"
        )
        return preview


def _total_size(assets: List[DeletedAsset]) -> int:
    return sum(asset.estimated_size for asset in assets)


def cleanup_recommendations(preview: PreviewResult) -> List[Dict[str, Any]]:
    """Recommendations derived from the (capped) preview listings"""
    recommendations = []

    if preview.junk_assets:
        recommendations.append({
            "type": "critical",
            "action": "cleanup_junk",
            "message": f"{len(preview.junk_assets)} junk assets found - immediate cleanup recommended",
            "impact": "high",
            "estimatedSavings": format_bytes(_total_size(preview.junk_assets)),
        })

    if len(preview.low_quality_assets) > 10:
        recommendations.append({
            "type": "warning",
            "action": "review_quality",
            "message": f"{len(preview.low_quality_assets)} low-quality assets found - review recommended",
            "impact": "medium",
            "estimatedSavings": format_bytes(_total_size(preview.low_quality_assets)),
        })

    if len(preview.duplicate_assets) > 5:
        recommendations.append({
            "type": "optimization",
            "action": "deduplicate",
            "message": f"{len(preview.duplicate_assets)} duplicate assets found - deduplication recommended",
            "impact": "medium",
            "estimatedSavings": format_bytes(_total_size(preview.duplicate_assets)),
        })

    return recommendations
