"""Token icons and descriptive metadata from the public asset repositories."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Sequence

import backoff
import requests

from ..cache import CachedFetcher, CacheStore
from ..domain import TokenMetadata, address_key
from ..settings import AggregatorSettings
from .router_api import is_permanent_http_error

logger = logging.getLogger(__name__)


class AssetService:
    """Resolves icon URLs and metadata for token addresses.

    The icon index (the set of addresses with a published logo) is fetched
    once per cache lifetime and shared by every lookup.
    """

    def __init__(
        self,
        settings: AggregatorSettings,
        cache: CacheStore | None = None,
        session: requests.Session | None = None,
    ):
        self.chain_id = settings.chain_id
        self.icons_url = settings.asset_icons_url.rstrip("/")
        self.index_url = f"{settings.asset_index_url.rstrip('/')}/{self.chain_id}"
        self.metadata_url = settings.token_metadata_url.format(chain_id=self.chain_id)
        self.timeout = settings.http_timeout
        self.session = session or requests.Session()
        store = cache or CacheStore(
            default_ttl=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )
        self._index: CachedFetcher[frozenset[str]] = CachedFetcher(
            "assets/icons", self.chain_id, store
        )

    @backoff.on_exception(
        backoff.expo,
        (requests.exceptions.RequestException, requests.exceptions.HTTPError),
        max_tries=5,
        giveup=is_permanent_http_error,
        jitter=backoff.full_jitter,
    )
    def _get_json(self, url: str) -> Any:
        logger.debug("Calling %s", url)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        try:
            return response.json()
        except json.JSONDecodeError:
            raise ValueError(f"Invalid JSON from {url}")

    def icon_url(self, address: str) -> str:
        return (
            f"{self.icons_url}/multichain-tokens/{self.chain_id}/{address}/logo-128.png"
        )

    async def _load_index(self) -> frozenset[str]:
        data = await asyncio.to_thread(self._get_json, self.index_url)
        if not isinstance(data, list):
            raise ValueError(f"Invalid icon index structure: {data}")
        return frozenset(
            address_key(entry["name"])
            for entry in data
            if isinstance(entry, dict) and entry.get("type", "dir") == "dir"
        )

    async def icon_for(self, addresses: Sequence[str]) -> dict[str, str]:
        """Map each address with a published icon to its URL. Others are omitted."""
        index = await self._index.fetch_or_compute(self._load_index)
        return {
            address: self.icon_url(address)
            for address in addresses
            if address_key(address) in index
        }

    async def token_metadata(self) -> list[TokenMetadata]:
        data = await asyncio.to_thread(self._get_json, self.metadata_url)
        if not isinstance(data, list):
            raise ValueError(f"Invalid metadata structure: {data}")
        metadata: list[TokenMetadata] = []
        for item in data:
            if not isinstance(item, dict) or "address" not in item:
                logger.warning("Skipping malformed metadata entry: %s", item)
                continue
            extra = {
                k: v
                for k, v in item.items()
                if k not in {"address", "description", "website"}
            }
            metadata.append(
                TokenMetadata(
                    address=item["address"],
                    description=item.get("description"),
                    website=item.get("website"),
                    extra=extra,
                )
            )
        return metadata
