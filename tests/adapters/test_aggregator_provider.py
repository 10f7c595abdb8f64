from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from token_aggregator.adapters.providers.aggregator import AggregatorProvider
from token_aggregator.domain import DataSource, Token

DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


@pytest.fixture
def router():
    router = AsyncMock()
    router.supported_tokens.return_value = [
        Token(address=DAI, name="DAI", symbol="DAI", decimals=18, price_usd="1.0002"),
        Token(address=USDC, name="USDC", symbol="USDC", decimals=6, price_usd="n/a"),
    ]
    return router


@pytest.mark.asyncio
async def test_tokens_are_tagged_and_cached(router):
    provider = AggregatorProvider(1, router)

    tokens = await provider.list_entities()
    await provider.list_entities()

    assert all(t.data_source == {DataSource.AGGREGATOR} for t in tokens)
    router.supported_tokens.assert_awaited_once()


@pytest.mark.asyncio
async def test_price_of_reads_router_price(router):
    provider = AggregatorProvider(1, router)

    assert await provider.price_of(DAI.lower()) == Decimal("1.0002")
    assert await provider.price_of("0x0000000000000000000000000000000000000001") is None


@pytest.mark.asyncio
async def test_price_of_ignores_malformed_price(router, caplog):
    provider = AggregatorProvider(1, router)

    assert await provider.price_of(USDC) is None
    assert "invalid price" in caplog.text


@pytest.mark.asyncio
async def test_balances_delegate_to_router(router):
    router.balances.return_value = []
    provider = AggregatorProvider(1, router)

    assert await provider.balances_of("0xabc") == []
    router.balances.assert_awaited_once_with("0xabc")
