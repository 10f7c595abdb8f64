from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from token_aggregator.clients.erc20 import Erc20Client
from token_aggregator.clients.oracle import OracleClient
from token_aggregator.constants import ETH_ADDRESS
from token_aggregator.settings import AggregatorSettings

ACCOUNT = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
VAULT = "0xdA816459F1AB5631232FE5e97a05BBBb94970c95"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


@pytest.fixture
def settings():
    return AggregatorSettings(
        chain_id=1, rpc_url="https://rpc.example", rpc_delay=0, rpc_jitter=0
    )


@pytest.fixture
def w3():
    return MagicMock()


@pytest.fixture
def contract(w3):
    contract = MagicMock()
    w3.eth.contract.return_value = contract
    return contract


@pytest.mark.asyncio
async def test_tokens_reads_erc20_fields(settings, w3, contract):
    fns = contract.functions
    fns.name.return_value.call.return_value = "Dai Stablecoin"
    fns.symbol.return_value.call.return_value = "DAI"
    fns.decimals.return_value.call.return_value = 18
    client = Erc20Client(settings, w3=w3)

    tokens = await client.tokens([DAI, ETH_ADDRESS])

    assert [(t.symbol, t.decimals) for t in tokens] == [("DAI", 18), ("ETH", 18)]
    assert w3.eth.contract.call_count == 1


@pytest.mark.asyncio
async def test_tokens_skip_failing_reads(settings, w3, contract):
    contract.functions.name.return_value.call.side_effect = ValueError("not a token")
    client = Erc20Client(settings, w3=w3)

    assert await client.tokens([DAI]) == []


@pytest.mark.asyncio
async def test_token_balances_include_native_asset(settings, w3, contract):
    contract.functions.balanceOf.return_value.call.return_value = 5 * 10**18
    w3.eth.get_balance.return_value = 7
    client = Erc20Client(settings, w3=w3)

    balances = await client.token_balances(ACCOUNT, [DAI, ETH_ADDRESS])

    assert [(b.address, b.amount) for b in balances] == [
        (DAI, str(5 * 10**18)),
        (ETH_ADDRESS, "7"),
    ]
    contract.functions.balanceOf.assert_called_once_with(ACCOUNT)


@pytest.mark.asyncio
async def test_allowance_and_approve_transaction(settings, w3, contract):
    fns = contract.functions
    fns.allowance.return_value.call.return_value = 123
    fns.approve.return_value.build_transaction.return_value = {"to": DAI, "data": "0x"}
    client = Erc20Client(settings, w3=w3)

    assert await client.allowance(DAI, ACCOUNT, VAULT) == 123
    fns.allowance.assert_called_once_with(ACCOUNT, VAULT)

    tx = await client.build_approve_transaction(DAI, VAULT, 500, ACCOUNT)
    assert tx == {"to": DAI, "data": "0x"}
    fns.approve.assert_called_once_with(VAULT, 500)
    fns.approve.return_value.build_transaction.assert_called_once_with({"from": ACCOUNT})


@pytest.mark.asyncio
async def test_oracle_scales_usdc_prices(settings, w3, contract):
    fns = contract.functions
    fns.getPriceUsdcRecommended.return_value.call.return_value = 1_000_500
    fns.getPriceFromRouter.return_value.call.return_value = 998_000
    client = OracleClient(settings, w3=w3)

    assert await client.price_usdc(DAI) == Decimal("1.0005")
    assert await client.price_from_router(DAI, USDC) == Decimal(998_000)
    fns.getPriceFromRouter.assert_called_once_with(DAI, USDC)


def test_oracle_requires_address():
    settings = AggregatorSettings(chain_id=10, rpc_url="https://rpc.example")

    with pytest.raises(ValueError, match="oracle_address must be configured"):
        OracleClient(settings, w3=MagicMock())


@pytest.mark.asyncio
async def test_router_quote_keeps_output_token_units(settings, w3, contract):
    contract.functions.getPriceFromRouter.return_value.call.return_value = 10**18
    client = OracleClient(settings, w3=w3)

    assert await client.price_from_router(USDC, DAI) == Decimal(10**18)
