from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation

from ...cache import CachedFetcher, CacheStore
from ...clients.base import RouterClient
from ...domain import Balance, DataSource, Token, address_key
from ...logger import get_logger
from ...networks import ProviderKind
from .base import ProviderAdapter

logger = get_logger(__name__)


class AggregatorProvider(ProviderAdapter):
    """Tokens the third-party liquidity router can zap into a vault."""

    def __init__(
        self,
        chain_id: int,
        router: RouterClient,
        cache: CacheStore | None = None,
    ):
        super().__init__(chain_id)
        self.router = router
        self.cache = cache or CacheStore()
        self._tokens: CachedFetcher[list[Token]] = CachedFetcher(
            "aggregator/tokens", chain_id, self.cache
        )

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.AGGREGATOR

    async def list_entities(self) -> list[Token]:
        return await self._tokens.fetch_or_compute(self._load_tokens)

    async def _load_tokens(self) -> list[Token]:
        tokens = await self.router.supported_tokens()
        logger.debug("Router supports %d tokens", len(tokens))
        return [
            replace(token, data_source=frozenset({DataSource.AGGREGATOR}))
            for token in tokens
        ]

    async def balances_of(self, account: str) -> list[Balance]:
        return await self.router.balances(account)

    async def price_of(self, address: str) -> Decimal | None:
        key = address_key(address)
        for token in await self.list_entities():
            if address_key(token.address) != key or token.price_usd is None:
                continue
            try:
                return Decimal(token.price_usd)
            except InvalidOperation:
                logger.warning(
                    "Router reported an invalid price for %s: %r",
                    address,
                    token.price_usd,
                )
                return None
        return None
