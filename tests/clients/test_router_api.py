from unittest.mock import MagicMock

import pytest
import requests
from pydantic import SecretStr

from token_aggregator.clients.router_api import RouterApiClient
from token_aggregator.domain import DataSource, GasPrices
from token_aggregator.settings import AggregatorSettings

ACCOUNT = "0x00000000000000000000000000000000000000aa"
DAI = "0x6b175474e89094c44da98b954eedeac495271d0f"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


def make_response(payload, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        error = requests.exceptions.HTTPError(f"{status} error")
        error.response = response
        response.raise_for_status.side_effect = error
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    settings = AggregatorSettings(
        router_api_url="https://router.example/v1/",
        router_api_key=SecretStr("key"),
    )
    return RouterApiClient(settings, session=session)


@pytest.mark.asyncio
async def test_supported_tokens_parses_and_hides(client, session):
    session.get.return_value = make_response(
        [
            {"address": DAI, "symbol": "DAI", "decimals": 18, "price": 1.0002},
            {"address": USDC, "symbol": "USDC", "decimals": 6, "price": 1, "hide": True},
        ]
    )

    tokens = await client.supported_tokens()

    assert len(tokens) == 1
    assert tokens[0].address == "0x6B175474E89094C44Da98b954EedeAC495271d0F"
    assert tokens[0].name == "DAI"
    assert tokens[0].price_usd == "1.0002"
    assert tokens[0].data_source == {DataSource.AGGREGATOR}

    url = session.get.call_args.args[0]
    params = session.get.call_args.kwargs["params"]
    assert url == "https://router.example/v1/prices"
    assert params == {"network": "ethereum", "api_key": "key"}


@pytest.mark.asyncio
async def test_balances_flatten_products(client, session):
    session.get.return_value = make_response(
        {
            ACCOUNT: {
                "products": [
                    {
                        "assets": [
                            {
                                "address": DAI,
                                "symbol": "DAI",
                                "decimals": 18,
                                "balanceRaw": "2500000000000000000",
                                "balanceUSD": 2.5,
                            }
                        ]
                    }
                ]
            }
        }
    )

    balances = await client.balances(ACCOUNT)

    assert len(balances) == 1
    assert balances[0].amount == "2500000000000000000"
    assert balances[0].amount_usd == "2.5"
    assert balances[0].owner.lower() == ACCOUNT
    assert session.get.call_args.kwargs["params"]["addresses[]"] == ACCOUNT


@pytest.mark.asyncio
async def test_gas(client, session):
    session.get.return_value = make_response({"standard": 10, "instant": 30, "fast": 20})

    assert await client.gas() == GasPrices(standard=10, instant=30, fast=20)


@pytest.mark.asyncio
async def test_gas_rejects_incomplete_response(client, session):
    session.get.return_value = make_response({"standard": 10})

    with pytest.raises(ValueError, match="Invalid gas price response"):
        await client.gas()


@pytest.mark.asyncio
async def test_zap_in_approval_state_and_transaction(client, session):
    session.get.return_value = make_response(
        {
            "isApproved": False,
            "ownerAddress": ACCOUNT,
            "spenderAddress": "0xspender",
            "allowance": "0",
            "tokenAddress": USDC,
        }
    )

    state = await client.zap_in_approval_state(ACCOUNT, USDC, "yearn")

    assert state.is_approved is False
    assert state.spender == "0xspender"
    assert state.allowance == "0"
    assert session.get.call_args.args[0].endswith("/zap-in/vault/yearn/approval-state")

    session.get.return_value = make_response({"to": USDC, "data": "0x"})
    tx = await client.zap_in_approval_transaction(ACCOUNT, USDC, "3000000000", "yearn")

    assert tx == {"to": USDC, "data": "0x"}
    assert session.get.call_args.kwargs["params"]["gasPrice"] == "3000000000"


@pytest.mark.asyncio
async def test_zap_out_endpoints(client, session):
    session.get.return_value = make_response({"isApproved": True})

    state = await client.zap_out_approval_state(ACCOUNT, DAI)

    assert state.is_approved is True
    assert session.get.call_args.args[0].endswith("/zap-out/vault/yearn/approval-state")


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(client, session):
    session.get.return_value = make_response({"message": "bad request"}, status=400)

    with pytest.raises(requests.exceptions.HTTPError):
        await client.gas()
    assert session.get.call_count == 1


@pytest.mark.asyncio
async def test_invalid_approval_state_is_rejected(client, session):
    session.get.return_value = make_response({"unexpected": True})

    with pytest.raises(ValueError, match="Invalid approval state response"):
        await client.zap_out_approval_state(ACCOUNT, DAI)


@pytest.mark.asyncio
async def test_balances_normalise_float_amounts(client, session):
    def asset(address, symbol, raw):
        return {"address": address, "symbol": symbol, "decimals": 18, "balanceRaw": raw}

    session.get.return_value = make_response(
        {
            ACCOUNT: {
                "products": [
                    {
                        "assets": [
                            asset(DAI, "DAI", 1.5e21),
                            asset(USDC, "USDC", 0.25),
                        ]
                    }
                ]
            }
        }
    )

    balances = await client.balances(ACCOUNT)

    assert [(b.token.symbol, b.amount) for b in balances] == [
        ("DAI", "1500000000000000000000")
    ]
