from __future__ import annotations

from typing import Sequence

from ...cache import CachedFetcher, CacheStore
from ...clients.base import RegistryLens, TokenHelper
from ...domain import (
    Balance,
    Position,
    RegistryAsset,
    RegistryAssetDynamic,
    RegistryAssetStatic,
    Token,
    address_key,
)
from ...errors import MergeConsistencyError
from ...logger import get_logger
from .base import ProviderAdapter

logger = get_logger(__name__)


def _filter_by_address(records: list, addresses: Sequence[str] | None) -> list:
    if addresses is None:
        return records
    wanted = {address_key(address) for address in addresses}
    return [record for record in records if address_key(record.address) in wanted]


class RegistryProvider(ProviderAdapter):
    """Provider backed by an on-chain registry of vaults or lending markets.

    Tokens are the registry's underlying tokens; balances are plain ERC20
    balances of those tokens.
    """

    def __init__(
        self,
        chain_id: int,
        lens: RegistryLens,
        helper: TokenHelper,
        cache: CacheStore | None = None,
    ):
        super().__init__(chain_id)
        self.lens = lens
        self.helper = helper
        self.cache = cache or CacheStore()
        namespace = self.kind.value
        self._tokens: CachedFetcher[list[Token]] = CachedFetcher(
            f"{namespace}/tokens", chain_id, self.cache
        )
        self._get: CachedFetcher[list[RegistryAsset]] = CachedFetcher(
            f"{namespace}/get", chain_id, self.cache
        )
        self._get_dynamic: CachedFetcher[list[RegistryAssetDynamic]] = CachedFetcher(
            f"{namespace}/getDynamic", chain_id, self.cache
        )

    async def list_entities(self) -> list[Token]:
        return await self._tokens.fetch_or_compute(self._load_tokens)

    async def _load_tokens(self) -> list[Token]:
        token_addresses = await self.lens.token_addresses()
        erc20_tokens = await self.helper.tokens(token_addresses)
        logger.debug(
            "%s registry lists %d underlying tokens", self.adapter_name, len(erc20_tokens)
        )
        return [
            Token.from_erc20(erc20, self.kind.data_source) for erc20 in erc20_tokens
        ]

    async def balances_of(self, account: str) -> list[Balance]:
        """Fetch ``account``'s balance of every underlying token of the registry.

        Raises:
            MergeConsistencyError: If the helper reports a balance for a token
                the registry does not list
        """
        tokens = await self.list_entities()
        by_address = {address_key(token.address): token for token in tokens}
        raw_balances = await self.helper.token_balances(
            account, [token.address for token in tokens]
        )

        balances: list[Balance] = []
        for raw in raw_balances:
            token = by_address.get(address_key(raw.address))
            if token is None:
                raise MergeConsistencyError(
                    f"Token does not exist for Balance({raw.address})"
                )
            balances.append(
                Balance(
                    address=raw.address,
                    owner=account,
                    token=token,
                    amount=raw.amount,
                    amount_usd=raw.amount_usd,
                )
            )
        return balances

    async def get(self, addresses: Sequence[str] | None = None) -> list[RegistryAsset]:
        """Get registry assets with their static and dynamic halves joined.

        Args:
            addresses: Optional filter; all assets are returned when omitted

        Raises:
            MergeConsistencyError: If a static record has no dynamic counterpart
        """
        cached = await self._get.fetch()
        if cached is not None:
            return _filter_by_address(cached, addresses)
        if addresses is not None:
            return await self._join(addresses)
        return await self._get.fetch_or_compute(lambda: self._join(None))

    async def _join(self, addresses: Sequence[str] | None) -> list[RegistryAsset]:
        statics = await self.lens.assets_static(addresses)
        dynamics = await self.lens.assets_dynamic(addresses)
        dynamic_by_address = {address_key(d.address): d for d in dynamics}

        assets: list[RegistryAsset] = []
        for static in statics:
            dynamic = dynamic_by_address.get(address_key(static.address))
            if dynamic is None:
                raise MergeConsistencyError(
                    f"Dynamic asset does not exist for {static.address}"
                )
            assets.append(RegistryAsset(static=static, dynamic=dynamic))
        return assets

    async def get_static(
        self, addresses: Sequence[str] | None = None
    ) -> list[RegistryAssetStatic]:
        return await self.lens.assets_static(addresses)

    async def get_dynamic(
        self, addresses: Sequence[str] | None = None
    ) -> list[RegistryAssetDynamic]:
        cached = await self._get_dynamic.fetch()
        if cached is not None:
            return _filter_by_address(cached, addresses)
        if addresses is not None:
            return await self.lens.assets_dynamic(addresses)
        return await self._get_dynamic.fetch_or_compute(self._all_dynamic)

    async def _all_dynamic(self) -> list[RegistryAssetDynamic]:
        return await self.lens.assets_dynamic(None)

    async def positions_of(
        self, account: str, addresses: Sequence[str] | None = None
    ) -> list[Position]:
        return await self.lens.positions_of(account, addresses)
