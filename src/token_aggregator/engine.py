"""Aggregation of tokens and balances across providers."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Sequence, TypeVar

from .adapters.providers.base import ProviderAdapter
from .cache import CachedFetcher, CacheStore
from .clients.base import AssetMetadataService
from .domain import Balance, Token, TokenMetadata, address_key
from .errors import ProviderFailure, UnsupportedNetworkError
from .logger import get_logger
from .networks import ProviderKind, active_provider_kinds

if TYPE_CHECKING:
    from .pricing import PriceResolver

logger = get_logger(__name__)

R = TypeVar("R")


def merge_tokens(contributions: Sequence[Sequence[Token]]) -> list[Token]:
    """Merge per-provider token lists into one list, unique by address.

    Args:
        contributions: Token lists in precedence order, highest first

    Returns:
        One token per address. Fields come from the first provider that
        reported the address; ``data_source`` is the union of every provider
        that reported it.
    """
    merged: dict[str, Token] = {}
    for tokens in contributions:
        for token in tokens:
            key = address_key(token.address)
            existing = merged.get(key)
            if existing is None:
                merged[key] = token
            else:
                merged[key] = replace(
                    existing, data_source=existing.data_source | token.data_source
                )
    return list(merged.values())


def merge_balances(
    contributions: Sequence[Sequence[Balance]],
    supported: Sequence[Token],
    owner: str,
) -> list[Balance]:
    """Merge per-provider balances, attaching each to its supported token.

    Zero balances and amounts that are not integers are skipped, so a later provider's non-zero amount can
    still fill an address an earlier provider reported as empty. Balances for
    addresses outside ``supported`` are dropped.
    """
    tokens_by_address = {address_key(token.address): token for token in supported}
    merged: dict[str, Balance] = {}
    for balances in contributions:
        for balance in balances:
            try:
                if balance.is_zero:
                    continue
            except ValueError:
                logger.warning(
                    "Skipping balance of %s with non-integer amount %r",
                    balance.address,
                    balance.amount,
                )
                continue
            key = address_key(balance.address)
            token = tokens_by_address.get(key)
            if token is None:
                logger.debug(
                    "Dropping balance for unsupported token %s", balance.address
                )
                continue
            if key in merged:
                continue
            merged[key] = replace(balance, token=token, owner=owner)
    return list(merged.values())


class AggregationEngine:
    """Supported tokens and account balances across every provider on a network.

    Providers are queried concurrently. A failing provider is logged and
    contributes nothing; the healthy providers' results are still returned.
    """

    def __init__(
        self,
        chain_id: int,
        providers: Iterable[ProviderAdapter],
        cache: CacheStore,
        assets: AssetMetadataService | None = None,
        prices: PriceResolver | None = None,
        ttl: float | None = None,
    ):
        self.chain_id = chain_id
        self.providers: dict[ProviderKind, ProviderAdapter] = {
            provider.kind: provider for provider in providers
        }
        self.cache = cache
        self.assets = assets
        self.prices = prices
        self._supported: CachedFetcher[list[Token]] = CachedFetcher(
            "tokens/supported", chain_id, cache, ttl
        )
        self._metadata: CachedFetcher[list[TokenMetadata]] = CachedFetcher(
            "tokens/metadata", chain_id, cache, ttl
        )

    def active_providers(self) -> list[ProviderAdapter]:
        """Providers enabled on this network that were configured, in precedence order."""
        active: list[ProviderAdapter] = []
        for kind in active_provider_kinds(self.chain_id):
            provider = self.providers.get(kind)
            if provider is None:
                logger.debug(
                    "Provider '%s' is active on chain %d but not configured",
                    kind.value,
                    self.chain_id,
                )
                continue
            active.append(provider)
        return active

    async def supported_entities(self) -> list[Token]:
        """Get every token supported by at least one provider on this network.

        Returns:
            Tokens unique by address. An unsupported network yields an empty
            list without contacting any provider.
        """
        if not active_provider_kinds(self.chain_id):
            logger.debug("No providers active on chain %d", self.chain_id)
            return []
        return await self._supported.fetch_or_compute(self._load_supported)

    async def _load_supported(self) -> list[Token]:
        providers = self.active_providers()
        logger.info("Fetching supported tokens from %d providers...", len(providers))
        results = await asyncio.gather(
            *[provider.list_entities() for provider in providers],
            return_exceptions=True,
        )
        contributions = _collect_results(providers, results, "tokens")
        tokens = merge_tokens(contributions)
        logger.debug("Merged %d supported tokens", len(tokens))
        tokens = await self._attach_icons(tokens)
        return await self._attach_prices(tokens)

    async def _attach_icons(self, tokens: list[Token]) -> list[Token]:
        missing = [token.address for token in tokens if token.icon is None]
        if not missing or self.assets is None:
            return tokens
        try:
            icons = await self.assets.icon_for(missing)
        except Exception as e:
            logger.warning("Icon lookup failed, leaving icons unset: %s", e)
            return tokens

        icons_by_address = {address_key(a): url for a, url in icons.items()}
        return [
            replace(token, icon=icons_by_address[address_key(token.address)])
            if token.icon is None and address_key(token.address) in icons_by_address
            else token
            for token in tokens
        ]

    async def _attach_prices(self, tokens: list[Token]) -> list[Token]:
        missing = [token.address for token in tokens if token.price_usd is None]
        if not missing or self.prices is None:
            return tokens
        try:
            prices = await self.prices.price_of_many(missing)
        except Exception as e:
            logger.warning("Price lookup failed, leaving prices unset: %s", e)
            return tokens

        prices_by_address = {address_key(a): price for a, price in prices.items()}
        return [
            replace(token, price_usd=str(prices_by_address[address_key(token.address)]))
            if token.price_usd is None
            and address_key(token.address) in prices_by_address
            else token
            for token in tokens
        ]

    async def balances_of(
        self, account: str, addresses: Sequence[str] | None = None
    ) -> list[Balance]:
        """Get ``account``'s non-zero balances of supported tokens.

        Args:
            account: Owner address
            addresses: Optional token filter, applied after every provider
                has been queried for its full token set

        Returns:
            Balances unique by token address; on conflicts the provider
            listed first in the capability matrix wins.
        """
        if not active_provider_kinds(self.chain_id):
            logger.error(str(UnsupportedNetworkError(self.chain_id)))
            return []

        supported = await self.supported_entities()
        represented = set().union(*(token.data_source for token in supported))
        providers = [
            provider
            for provider in self.active_providers()
            if provider.kind.data_source in represented
        ]

        logger.info(
            "Fetching balances of %s from %d providers...", account, len(providers)
        )
        results = await asyncio.gather(
            *[provider.balances_of(account) for provider in providers],
            return_exceptions=True,
        )
        contributions = _collect_results(providers, results, "balances")
        balances = merge_balances(contributions, supported, account)

        if addresses is not None:
            wanted = {address_key(address) for address in addresses}
            balances = [b for b in balances if address_key(b.address) in wanted]
        return balances

    async def metadata(
        self, addresses: Sequence[str] | None = None
    ) -> list[TokenMetadata]:
        """Get descriptive token metadata, optionally restricted to ``addresses``."""
        if self.assets is None:
            return []
        assets = self.assets
        metadata = await self._metadata.fetch_or_compute(assets.token_metadata)
        if addresses is None:
            return metadata
        wanted = {address_key(address) for address in addresses}
        return [m for m in metadata if address_key(m.address) in wanted]

    async def icon(
        self, address: str | Sequence[str]
    ) -> str | None | dict[str, str]:
        """Icon URL for one address, or a mapping for a list of addresses."""
        if self.assets is None:
            return None if isinstance(address, str) else {}
        if isinstance(address, str):
            icons = await self.assets.icon_for([address])
            return icons.get(address)
        return await self.assets.icon_for(list(address))


def _collect_results(
    providers: Sequence[ProviderAdapter],
    results: Sequence[BaseException | R],
    what: str,
) -> list[R]:
    """Split asyncio.gather results into successes and logged provider failures.

    Successful results keep the providers' precedence order. Failures are
    logged and dropped; cancellation is re-raised.
    """
    collected: list[R] = []
    for provider, result in zip(providers, results):
        if isinstance(result, Exception):
            failure = ProviderFailure(provider.adapter_name, result)
            logger.error("Failed to fetch %s: %s", what, failure)
            continue
        if isinstance(result, BaseException):
            raise result
        logger.debug(
            "Provider '%s' returned %d %s",
            provider.adapter_name,
            len(result),  # type: ignore[arg-type]
            what,
        )
        collected.append(result)
    return collected
