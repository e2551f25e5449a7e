"""Tests for the cleanup orchestrator

Async operations are driven with asyncio.run so the suite only needs pytest.
"""

import asyncio

import pytest

from asset_store import KVStoreError, MemoryAssetStore, StoreUnavailableError
from conftest import HERO_SRC, make_asset
from managers.cleanup_manager import CleanupManager, cleanup_recommendations

JUNK_OPTIONS = {"dryRun": False, "maxDeletions": 1000, "batchSize": 50}
LOW_QUALITY_OPTIONS = {
    "dryRun": False,
    "qualityThreshold": 30,
    "maxDeletions": 500,
    "excludeJunk": True,
    "batchSize": 50,
}
DUPLICATE_OPTIONS = {
    "dryRun": False,
    "keepStrategy": "highest_quality",
    "maxDeletions": 300,
    "batchSize": 50,
}
PREVIEW_OPTIONS = {
    "includeJunk": True,
    "includeLowQuality": True,
    "includeDuplicates": True,
    "qualityThreshold": 30,
    "maxPreview": 50,
}
LONG_SRC = "https://dish.scene7.com/is/image/dishenterprise/hero-banner.jpg"


def junk_store(count=3, store_class=MemoryAssetStore, **kwargs):
    """Store with `count` junk assets, two good ones, a malformed value and a foreign key"""
    entries = {}
    for n in range(1, count + 1):
        entries[f"image:j{n}"] = make_asset(f"j{n}", f"placeholder {n}", f"https://example.com/{n}.jpg")
    entries["image:g1"] = make_asset("g1", "Hero", HERO_SRC)
    entries["image:g2"] = make_asset("g2", "Logo", "https://cdn.sling.com/logo.png")
    entries["image:bad"] = "{not json"
    entries["analysis:j1"] = make_asset("x", "placeholder", "https://example.com/x.jpg")
    return store_class(entries, **kwargs)


def with_options(base, **overrides):
    options = dict(base)
    options.update(overrides)
    return options


class TrackingStore(MemoryAssetStore):
    """Memory store that records how many deletes are in flight at once"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.max_in_flight = 0
        self.delete_calls = []

    async def delete(self, key):
        self.delete_calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.001)
            await super().delete(key)
        finally:
            self.in_flight -= 1


class FailingReadStore(MemoryAssetStore):
    """Memory store whose reads raise a configured error for some keys"""

    def __init__(self, *args, read_failures=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.read_failures = dict(read_failures or {})

    async def get(self, key):
        failure = self.read_failures.get(key)
        if failure is not None:
            raise failure
        return await super().get(key)


class TestJunkCleanup:
    """Tests for CleanupManager.clean_junk"""

    def test_dry_run_leaves_store_untouched(self):
        store = junk_store()
        before = store.keys()
        result = asyncio.run(CleanupManager(store).clean_junk(with_options(JUNK_OPTIONS, dryRun=True)))

        assert store.keys() == before
        assert result.scanned == 5
        assert result.found == 3
        assert result.deleted == 3
        assert [a.key_name for a in result.deleted_assets] == ["image:j1", "image:j2", "image:j3"]
        assert result.storage_saved == 3 * 25_000

    def test_deletes_junk(self):
        store = junk_store()
        result = asyncio.run(CleanupManager(store).clean_junk(JUNK_OPTIONS))

        assert result.deleted == 3
        assert result.errors == []
        assert store.keys() == ["image:g1", "image:g2", "image:bad", "analysis:j1"]
        assert result.deleted_assets[0].reason == "Placeholder image"

    def test_malformed_values_not_scanned(self):
        store = junk_store(count=0)
        store.put("image:null", "null")
        result = asyncio.run(CleanupManager(store).clean_junk(JUNK_OPTIONS))
        assert result.scanned == 2
        assert result.errors == []

    @pytest.mark.parametrize("dry_run", [True, False])
    def test_cap_counts_skipped(self, dry_run):
        """Test exactly maxDeletions candidates are handled and the rest skipped"""
        store = junk_store(count=5)
        options = with_options(JUNK_OPTIONS, dryRun=dry_run, maxDeletions=2)
        result = asyncio.run(CleanupManager(store).clean_junk(options))

        assert result.found == 5
        assert result.deleted == 2
        assert result.skipped == 3
        assert sorted(a.key_name for a in result.deleted_assets) == ["image:j1", "image:j2"]
        if not dry_run:
            assert "image:j3" in store.keys()
            assert "image:j1" not in store.keys()

    def test_delete_failures_are_recorded(self):
        """Test a failing delete is reported and the scan continues"""
        store = junk_store(delete_failures={"image:j2": RuntimeError("boom")})
        result = asyncio.run(CleanupManager(store).clean_junk(JUNK_OPTIONS))

        assert result.deleted == 2
        assert len(result.errors) == 1
        assert result.errors[0].to_dict() == {"id": "j2", "keyName": "image:j2", "error": "boom"}
        assert "image:j2" in store.keys()
        assert "image:j3" not in store.keys()

    def test_dry_run_issues_no_deletes(self):
        store = junk_store(store_class=TrackingStore)
        asyncio.run(CleanupManager(store).clean_junk(with_options(JUNK_OPTIONS, dryRun=True)))
        assert store.delete_calls == []

    def test_batch_size_bounds_concurrency(self):
        store = TrackingStore({
            f"image:j{n}": make_asset(f"j{n}", "dummy", f"/media/{n}.png") for n in range(7)
        })
        result = asyncio.run(CleanupManager(store).clean_junk(with_options(JUNK_OPTIONS, batchSize=2)))

        assert result.deleted == 7
        assert store.keys() == []
        assert 1 <= store.max_in_flight <= 2

    def test_read_failure_is_recorded_and_scan_continues(self):
        """Test a single unreadable key does not abort the run"""
        store = FailingReadStore(
            {f"image:{n}": make_asset(str(n), "dummy", f"/media/{n}.png") for n in range(10)},
            read_failures={"image:9": KVStoreError("KV read of image:9 failed: 500 - oops")},
        )
        result = asyncio.run(CleanupManager(store).clean_junk(JUNK_OPTIONS))

        assert result.scanned == 9
        assert result.deleted == 9
        assert store.keys() == ["image:9"]
        assert [e.to_dict() for e in result.errors] == [
            {"id": None, "keyName": "image:9", "error": "KV read of image:9 failed: 500 - oops"}
        ]

    def test_pending_deletes_finish_when_store_becomes_unreachable(self):
        """Test deletes already issued complete before the outage propagates"""
        store = FailingReadStore(
            {f"image:{n}": make_asset(str(n), "dummy", f"/media/{n}.png") for n in range(5)},
            read_failures={"image:3": StoreUnavailableError("KV read of image:3 failed: timeout")},
        )
        with pytest.raises(StoreUnavailableError):
            asyncio.run(CleanupManager(store).clean_junk(JUNK_OPTIONS))
        assert store.keys() == ["image:3", "image:4"]

    def test_out_of_range_file_size(self):
        store = MemoryAssetStore({"image:big": '{"id": "big", "displayName": "dummy", "fileSize": 1e400}'})
        result = asyncio.run(CleanupManager(store).clean_junk(JUNK_OPTIONS))
        assert result.deleted == 1
        assert result.storage_saved == 25_000

    def test_store_required(self):
        with pytest.raises(StoreUnavailableError):
            asyncio.run(CleanupManager(None).clean_junk(JUNK_OPTIONS))

    def test_to_dict_shape(self):
        result = asyncio.run(CleanupManager(junk_store()).clean_junk(with_options(JUNK_OPTIONS, dryRun=True)))
        data = result.to_dict()
        assert set(data) == {
            "scanned", "junkFound", "deleted", "skipped", "errors", "deletedAssets", "storageSaved",
        }
        assert data["deletedAssets"][0] == {
            "id": "j1",
            "displayName": "placeholder 1",
            "src": "https://example.com/1.jpg",
            "reason": "Placeholder image",
            "keyName": "image:j1",
            "estimatedSize": 25_000,
        }


class TestLowQualityCleanup:
    """Tests for CleanupManager.clean_low_quality"""

    def _store(self):
        return MemoryAssetStore({
            "image:good": make_asset("good", "Hero", HERO_SRC),
            "image:low": make_asset("low", "Banner", "/media/banner.png"),
            "image:edge": make_asset("edge", "Photo", "https://images.unsplash.com/photo.jpg"),
            "image:junk": make_asset("junk", "Team", "/media/placeholder.png"),
        })

    def test_excludes_junk_by_default(self):
        store = self._store()
        result = asyncio.run(CleanupManager(store).clean_low_quality(LOW_QUALITY_OPTIONS))

        assert result.scanned == 4
        assert result.found == 1
        assert result.deleted == 1
        deleted = result.deleted_assets[0]
        assert deleted.key_name == "image:low"
        assert deleted.quality_score == 10
        assert deleted.reason == "Quality score 10 below threshold 30"
        assert store.keys() == ["image:good", "image:edge", "image:junk"]

    def test_include_junk(self):
        store = self._store()
        options = with_options(LOW_QUALITY_OPTIONS, excludeJunk=False, dryRun=True)
        result = asyncio.run(CleanupManager(store).clean_low_quality(options))

        assert result.found == 2
        assert [a.quality_score for a in result.deleted_assets] == [10, 0]
        assert len(store.keys()) == 4

    def test_threshold_is_strict(self):
        """Test an asset scoring exactly the threshold is kept"""
        options = with_options(LOW_QUALITY_OPTIONS, qualityThreshold=31, dryRun=True)
        result = asyncio.run(CleanupManager(self._store()).clean_low_quality(options))
        assert sorted(a.key_name for a in result.deleted_assets) == ["image:edge", "image:low"]

    def test_cap(self):
        store = MemoryAssetStore({
            f"image:l{n}": make_asset(f"l{n}", f"Banner {n}", f"/media/banner-{n}.png") for n in range(3)
        })
        options = with_options(LOW_QUALITY_OPTIONS, maxDeletions=1)
        result = asyncio.run(CleanupManager(store).clean_low_quality(options))
        assert result.deleted == 1
        assert result.skipped == 2
        assert result.to_dict()["lowQualityFound"] == 3


class TestDuplicateCleanup:
    """Tests for CleanupManager.clean_duplicates"""

    def test_highest_quality_keeper(self):
        store = MemoryAssetStore({
            "image:d1": make_asset("1", "Hero", LONG_SRC + "?v=1"),
            "image:d2": make_asset("2", "Hero", LONG_SRC + "?v=1&format=webp"),
            "image:solo": make_asset("3", "Logo", "https://cdn.sling.com/logo.png"),
            "image:bad": "[broken",
        })
        result = asyncio.run(CleanupManager(store).clean_duplicates(DUPLICATE_OPTIONS))

        assert result.scanned == 3
        assert result.duplicate_groups == 1
        assert result.found == 1
        assert result.kept == 1
        assert result.deleted == 1
        assert result.deleted_assets[0].key_name == "image:d1"
        assert result.deleted_assets[0].reason == "Duplicate of Hero (kept: 2)"
        assert store.keys() == ["image:d2", "image:solo", "image:bad"]

    def test_tie_keeps_first_seen(self):
        store = MemoryAssetStore({
            "image:a": make_asset("a", "Hero", HERO_SRC),
            "image:b": make_asset("b", "Hero", HERO_SRC),
            "image:c": make_asset("c", "Hero", HERO_SRC),
        })
        result = asyncio.run(CleanupManager(store).clean_duplicates(with_options(DUPLICATE_OPTIONS, dryRun=True)))
        assert [a.key_name for a in result.deleted_assets] == ["image:b", "image:c"]
        assert result.deleted == 2
        assert len(store.keys()) == 3

    def test_most_recent_strategy(self):
        store = MemoryAssetStore({
            "image:a": make_asset("a", "Hero", HERO_SRC, lastModified="2023-01-01T00:00:00Z"),
            "image:b": make_asset("b", "Hero", HERO_SRC, createdAt="2024-05-01T00:00:00Z"),
        })
        options = with_options(DUPLICATE_OPTIONS, keepStrategy="most_recent")
        asyncio.run(CleanupManager(store).clean_duplicates(options))
        assert store.keys() == ["image:b"]

    def test_smallest_size_strategy(self):
        store = MemoryAssetStore({
            "image:a": make_asset("a", "Hero", HERO_SRC, fileSize=90_000),
            "image:b": make_asset("b", "Hero", HERO_SRC, fileSize=40_000),
        })
        options = with_options(DUPLICATE_OPTIONS, keepStrategy="smallest_size")
        result = asyncio.run(CleanupManager(store).clean_duplicates(options))
        assert store.keys() == ["image:b"]
        assert result.storage_saved == 90_000

    def test_global_cap_starves_later_groups(self):
        """Test the cap runs across groups in first-seen order"""
        entries = {}
        for group in ("Hero", "Logo"):
            for n in range(3):
                entries[f"image:{group}{n}"] = make_asset(f"{group}{n}", group, HERO_SRC)
        store = MemoryAssetStore(entries)
        options = with_options(DUPLICATE_OPTIONS, maxDeletions=3)
        result = asyncio.run(CleanupManager(store).clean_duplicates(options))

        assert result.duplicate_groups == 2
        assert result.found == 4
        assert result.deleted == 3
        assert result.skipped == 1
        assert result.kept == 2
        assert store.keys() == ["image:Hero0", "image:Logo0", "image:Logo2"]

    def test_shared_id_under_different_keys(self):
        """Test only the non-keeper record is removed when ids collide"""
        store = MemoryAssetStore({
            "image:a": make_asset("same", "Hero", HERO_SRC),
            "image:b": make_asset("same", "Hero", HERO_SRC),
        })
        result = asyncio.run(CleanupManager(store).clean_duplicates(DUPLICATE_OPTIONS))
        assert result.deleted == 1
        assert store.keys() == ["image:a"]

    def test_errors_do_not_abort(self):
        store = MemoryAssetStore(
            {
                "image:a": make_asset("a", "Hero", HERO_SRC),
                "image:b": make_asset("b", "Hero", HERO_SRC),
                "image:c": make_asset("c", "Hero", HERO_SRC),
            },
            delete_failures={"image:b": OSError("network down")},
        )
        result = asyncio.run(CleanupManager(store).clean_duplicates(DUPLICATE_OPTIONS))
        assert result.deleted == 1
        assert result.errors[0].key_name == "image:b"
        assert store.keys() == ["image:a", "image:b"]

    def test_read_failure_is_recorded(self):
        store = FailingReadStore(
            {
                "image:a": make_asset("a", "Hero", HERO_SRC),
                "image:b": make_asset("b", "Hero", HERO_SRC),
                "image:c": make_asset("c", "Hero", HERO_SRC),
            },
            read_failures={"image:b": KVStoreError("KV read of image:b failed: 502 - bad gateway")},
        )
        result = asyncio.run(CleanupManager(store).clean_duplicates(DUPLICATE_OPTIONS))

        assert result.scanned == 2
        assert result.deleted == 1
        assert [e.key_name for e in result.errors] == ["image:b"]
        assert store.keys() == ["image:a", "image:b"]

    def test_to_dict_shape(self):
        store = MemoryAssetStore({"image:a": make_asset("a", "Hero", HERO_SRC)})
        data = asyncio.run(CleanupManager(store).clean_duplicates(DUPLICATE_OPTIONS)).to_dict()
        assert data["duplicateGroupsFound"] == 0
        assert data["duplicatesFound"] == 0
        assert data["kept"] == 0
        assert data["scanned"] == 1


class TestPreview:
    """Tests for CleanupManager.preview"""

    def _store(self):
        return MemoryAssetStore({
            "image:g1": make_asset("g1", "Hero", HERO_SRC),
            "image:g2": make_asset("g2", "Hero", HERO_SRC),
            "image:l1": make_asset("l1", "Banner", "/media/banner.png"),
            "image:j1": make_asset("j1", "placeholder", "https://example.com/placeholder.jpg"),
            "image:j2": make_asset("j2", "Team photo"),
            "image:bad": "nope",
        })

    def test_counts_without_deleting(self):
        store = self._store()
        preview = asyncio.run(CleanupManager(store).preview(PREVIEW_OPTIONS))

        assert len(store.keys()) == 6
        assert preview.total_scanned == 5
        assert [a.key_name for a in preview.junk_assets] == ["image:j1", "image:j2"]
        assert preview.junk_assets[1].reason == "Missing source URL"
        assert [a.key_name for a in preview.low_quality_assets] == ["image:l1"]
        duplicate = preview.duplicate_assets[0]
        assert duplicate.key_name == "image:g2"
        assert duplicate.original_id == "g1"
        assert duplicate.reason == "Duplicate of Hero"
        assert preview.estimated_deletions == 4
        assert preview.estimated_storage_saved == 100_000

    def test_max_preview_caps_listings_only(self):
        preview = asyncio.run(CleanupManager(self._store()).preview(with_options(PREVIEW_OPTIONS, maxPreview=1)))
        assert len(preview.junk_assets) == 1
        assert preview.junk_found == 2
        assert preview.estimated_deletions == 4

    def test_category_toggles(self):
        options = with_options(PREVIEW_OPTIONS, includeJunk=False, includeDuplicates=False)
        preview = asyncio.run(CleanupManager(self._store()).preview(options))
        assert preview.junk_assets == []
        assert preview.duplicate_assets == []
        assert preview.estimated_deletions == 1

    def test_recommendations(self):
        preview = asyncio.run(CleanupManager(self._store()).preview(PREVIEW_OPTIONS))
        recommendations = cleanup_recommendations(preview)
        assert [r["action"] for r in recommendations] == ["cleanup_junk"]
        assert recommendations[0]["estimatedSavings"] == "48.83 KB"

    def test_to_dict(self):
        data = asyncio.run(CleanupManager(self._store()).preview(PREVIEW_OPTIONS)).to_dict()
        assert data["totalScanned"] == 5
        assert data["lowQualityAssets"][0]["qualityScore"] == 10
        assert data["duplicateAssets"][0]["originalId"] == "g1"
