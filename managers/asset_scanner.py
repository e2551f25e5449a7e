"""Namespace scan shared by the cleanup and analytics managers"""

import logging
from typing import AsyncIterator, List, Optional

from asset_store import DEFAULT_KEY_PREFIX, AssetStore, KVStoreError, StoreUnavailableError
from models.asset import AssetRecord
from models.cleanup import CleanupError

logger = logging.getLogger("MCP_Server")


class AssetScanner:
    """Reads every asset record under one key prefix of the store"""

    def __init__(self, store: Optional[AssetStore], prefix: str = DEFAULT_KEY_PREFIX):
        self.store = store
        self.prefix = prefix

    def require_store(self) -> AssetStore:
        if self.store is None:
            raise StoreUnavailableError("KV storage not available")
        return self.store

    async def scan(self, errors: Optional[List[CleanupError]] = None) -> AsyncIterator[AssetRecord]:
        """Yield every parseable asset in listing order.

        A failed read of a single key is logged and skipped, and appended to
        ``errors`` when given. Listing failures and an unreachable store
        propagate.
        """
        store = self.require_store()
        keys = await store.list_keys(self.prefix)
        logger.info(f"Scanning {len(keys)} keys with prefix {self.prefix!r}")
        for key in keys:
            try:
                value = await store.get(key)
            except KVStoreError as e:
                logger.warning(f"Skipping {key}: {e}")
                if errors is not None:
                    errors.append(CleanupError(asset_id=None, key_name=key, error=str(e)))
                continue
            asset = AssetRecord.from_store(key, value)
            if asset is None:
                logger.debug(f"Skipping unreadable asset at {key}")
                continue
            yield asset
