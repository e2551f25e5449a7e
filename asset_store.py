"""Key-value asset store backends (Cloudflare Workers KV and in-memory)"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger("AssetStore")

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
LIST_PAGE_LIMIT = 1000
DEFAULT_KEY_PREFIX = "image:"


class StoreUnavailableError(Exception):
    """The asset store is not configured or cannot be reached"""


class KVStoreError(Exception):
    """A store request failed"""


class AssetStore:
    """Minimal async key-value interface the cleanup engine depends on"""

    async def list_keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    async def get(self, key: str) -> Optional[Any]:
        """Decoded JSON value, or None if the key is absent or does not parse"""
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        """Remove a key; deleting an absent key is not an error"""
        raise NotImplementedError


def _decode(key: str, text: Optional[str]) -> Optional[Any]:
    if text is None:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.warning(f"Value for key {key} is not valid JSON; treating as missing")
        return None


class MemoryAssetStore(AssetStore):
    """Dict-backed store, listed in insertion order.

    Values are kept serialised so malformed entries can be stored verbatim.
    ``delete_failures`` maps keys to the exception their delete should raise.
    """

    def __init__(
        self,
        entries: Optional[Mapping[str, Any]] = None,
        delete_failures: Optional[Dict[str, Exception]] = None
    ):
        self._values: Dict[str, str] = {}
        self.delete_failures = dict(delete_failures or {})
        for key, value in (entries or {}).items():
            self.put(key, value)

    def put(self, key: str, value: Any):
        self._values[key] = value if isinstance(value, str) else json.dumps(value)

    def keys(self) -> List[str]:
        return list(self._values)

    async def list_keys(self, prefix: str = "") -> List[str]:
        await asyncio.sleep(0)
        return [key for key in self._values if key.startswith(prefix)]

    async def get(self, key: str) -> Optional[Any]:
        await asyncio.sleep(0)
        return _decode(key, self._values.get(key))

    async def delete(self, key: str) -> None:
        await asyncio.sleep(0)
        failure = self.delete_failures.get(key)
        if failure is not None:
            raise failure
        self._values.pop(key, None)

    @classmethod
    def from_file(cls, path: Path) -> "MemoryAssetStore":
        """Seed a store from a JSON object of key -> asset record"""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Seed file {path} must contain a JSON object")
        return cls(data)


class CloudflareKVStore(AssetStore):
    """Workers KV namespace accessed through the Cloudflare REST API.

    ``requests`` is blocking, so every call runs in a worker thread to keep
    the event loop free while deletes are batched.
    """

    def __init__(
        self,
        account_id: str,
        namespace_id: str,
        api_token: str,
        base_url: str = CLOUDFLARE_API_BASE,
        timeout: int = 30
    ):
        self.namespace_url = (
            f"{base_url}/accounts/{account_id}/storage/kv/namespaces/{namespace_id}"
        )
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_token}"})

    def _value_url(self, key: str) -> str:
        return f"{self.namespace_url}/values/{quote(key, safe='')}"

    def _list_keys_sync(self, prefix: str) -> List[str]:
        keys: List[str] = []
        cursor = None
        while True:
            params: Dict[str, Any] = {"prefix": prefix, "limit": LIST_PAGE_LIMIT}
            if cursor:
                params["cursor"] = cursor
            try:
                response = self.session.get(
                    f"{self.namespace_url}/keys", params=params, timeout=self.timeout
                )
            except requests.RequestException as e:
                raise StoreUnavailableError(f"KV list failed: {e}")
            if response.status_code != 200:
                raise KVStoreError(f"KV list failed: {response.status_code} - {response.text}")
            payload = response.json()
            keys.extend(entry["name"] for entry in payload.get("result", []))
            cursor = (payload.get("result_info") or {}).get("cursor")
            if not cursor:
                break
        logger.debug(f"Listed {len(keys)} keys with prefix {prefix!r}")
        return keys

    def _get_sync(self, key: str) -> Optional[Any]:
        try:
            response = self.session.get(self._value_url(key), timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreUnavailableError(f"KV read of {key} failed: {e}")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise KVStoreError(f"KV read of {key} failed: {response.status_code} - {response.text}")
        return _decode(key, response.text)

    def _delete_sync(self, key: str) -> None:
        response = self.session.delete(self._value_url(key), timeout=self.timeout)
        if response.status_code not in (200, 404):
            raise KVStoreError(f"KV delete of {key} failed: {response.status_code} - {response.text}")

    async def list_keys(self, prefix: str = "") -> List[str]:
        return await asyncio.to_thread(self._list_keys_sync, prefix)

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._get_sync, key)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)


def get_key_prefix(environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    return environ.get("ASSET_KEY_PREFIX", DEFAULT_KEY_PREFIX)


def build_store_from_env(environ: Optional[Mapping[str, str]] = None) -> AssetStore:
    """Create the configured store.

    ASSET_STORE selects ``cloudflare`` (default) or ``memory``; the memory
    store can be seeded from ASSET_STORE_FILE.
    """
    environ = os.environ if environ is None else environ
    backend = environ.get("ASSET_STORE", "cloudflare").strip().lower()

    if backend == "memory":
        seed_file = environ.get("ASSET_STORE_FILE")
        if seed_file:
            try:
                store = MemoryAssetStore.from_file(Path(seed_file))
            except (OSError, ValueError) as e:
                raise StoreUnavailableError(f"Cannot load asset seed file {seed_file}: {e}")
            logger.info(f"Loaded {len(store.keys())} assets from {seed_file}")
            return store
        return MemoryAssetStore()

    if backend != "cloudflare":
        raise StoreUnavailableError(f"Unknown asset store backend: {backend}")

    account_id = environ.get("CF_ACCOUNT_ID")
    namespace_id = environ.get("CF_KV_NAMESPACE_ID")
    api_token = environ.get("CF_API_TOKEN")
    missing = [
        name for name, value in (
            ("CF_ACCOUNT_ID", account_id),
            ("CF_KV_NAMESPACE_ID", namespace_id),
            ("CF_API_TOKEN", api_token),
        ) if not value
    ]
    if missing:
        raise StoreUnavailableError(f"KV storage not available: missing {', '.join(missing)}")
    return CloudflareKVStore(account_id, namespace_id, api_token)
