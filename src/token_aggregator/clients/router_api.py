"""HTTP client for the liquidity router / aggregator API."""

from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import backoff
import requests
from web3 import Web3

from ..constants import ROUTER_NETWORKS
from ..domain import (
    Balance,
    DataSource,
    GasPrices,
    RawTransaction,
    RouterApprovalState,
    Token,
)
from ..settings import AggregatorSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def is_permanent_http_error(e: Exception) -> bool:
    return (
        isinstance(e, requests.exceptions.HTTPError)
        and e.response is not None
        and e.response.status_code not in RETRYABLE_STATUS
    )


class RouterApiClient:
    """Client for the router's token, balance, gas and approval endpoints."""

    def __init__(
        self,
        settings: AggregatorSettings,
        session: requests.Session | None = None,
    ):
        self.chain_id = settings.chain_id
        self.base_url = settings.router_api_url.rstrip("/")
        self.network = ROUTER_NETWORKS.get(settings.chain_id, "ethereum")
        self.timeout = settings.http_timeout
        self._api_key = (
            settings.router_api_key.get_secret_value()
            if settings.router_api_key
            else None
        )
        self.session = session or requests.Session()

    @backoff.on_exception(
        backoff.expo,
        (requests.exceptions.RequestException, requests.exceptions.HTTPError),
        max_tries=5,
        giveup=is_permanent_http_error,
        jitter=backoff.full_jitter,
    )
    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        query: dict[str, Any] = {"network": self.network, **(params or {})}
        if self._api_key:
            query["api_key"] = self._api_key
        logger.debug("Calling %s", url)
        response = self.session.get(url, params=query, timeout=self.timeout)
        response.raise_for_status()
        try:
            return response.json()
        except json.JSONDecodeError:
            raise ValueError(f"Invalid JSON from router API at {path}")

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self._get, path, params)

    async def supported_tokens(self) -> list[Token]:
        data = await self._request("/prices")
        if not isinstance(data, list):
            raise ValueError(f"Invalid response structure: {data}")
        tokens: list[Token] = []
        for item in data:
            if item.get("hide"):
                continue
            tokens.append(self._parse_token(item))
        return tokens

    async def balances(self, account: str) -> list[Balance]:
        owner = Web3.to_checksum_address(account)
        data = await self._request(
            "/protocols/tokens/balances", {"addresses[]": owner.lower()}
        )
        if not isinstance(data, dict):
            raise ValueError(f"Invalid response structure: {data}")
        account_data = data.get(owner.lower()) or {}
        balances: list[Balance] = []
        for product in account_data.get("products", []):
            for asset in product.get("assets", []):
                token = self._parse_token(asset)
                try:
                    amount = _raw_amount(asset.get("balanceRaw", "0"))
                except ValueError as e:
                    logger.warning("Skipping router balance of %s: %s", token.address, e)
                    continue
                balances.append(
                    Balance(
                        address=token.address,
                        owner=owner,
                        token=token,
                        amount=amount,
                        amount_usd=_optional_str(asset.get("balanceUSD")),
                    )
                )
        return balances

    async def gas(self) -> GasPrices:
        data = await self._request("/gas-price")
        try:
            return GasPrices(
                standard=float(data["standard"]),
                instant=float(data["instant"]),
                fast=float(data["fast"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid gas price response: {data}") from e

    async def zap_in_approval_state(
        self, account: str, token: str, label: str
    ) -> RouterApprovalState:
        data = await self._request(
            f"/zap-in/vault/{label}/approval-state",
            {"ownerAddress": account, "sellTokenAddress": token},
        )
        return _parse_approval_state(data)

    async def zap_in_approval_transaction(
        self, account: str, token: str, gas_price: str, label: str
    ) -> RawTransaction:
        return await self._request(
            f"/zap-in/vault/{label}/approval-transaction",
            {
                "gasPrice": gas_price,
                "ownerAddress": account,
                "sellTokenAddress": token,
            },
        )

    async def zap_out_approval_state(
        self, account: str, token: str
    ) -> RouterApprovalState:
        data = await self._request(
            "/zap-out/vault/yearn/approval-state",
            {"ownerAddress": account, "sellTokenAddress": token},
        )
        return _parse_approval_state(data)

    async def zap_out_approval_transaction(
        self, account: str, token: str, gas_price: str
    ) -> RawTransaction:
        return await self._request(
            "/zap-out/vault/yearn/approval-transaction",
            {
                "gasPrice": gas_price,
                "ownerAddress": account,
                "sellTokenAddress": token,
            },
        )

    @staticmethod
    def _parse_token(item: dict[str, Any]) -> Token:
        try:
            address = Web3.to_checksum_address(item["address"])
            symbol = str(item["symbol"])
            decimals = int(item["decimals"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid token entry: {item}") from e
        return Token(
            address=address,
            name=str(item.get("name") or symbol),
            symbol=symbol,
            decimals=decimals,
            data_source=frozenset({DataSource.AGGREGATOR}),
            price_usd=_price_str(item.get("price")),
        )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _raw_amount(value: Any) -> str:
    """Smallest-unit amount as an integer string. Integral JSON floats are accepted."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid raw amount: {value!r}") from None
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise ValueError(f"Invalid raw amount: {value!r}")
    return str(int(amount))


def _price_str(value: Any) -> str | None:
    if value is None:
        return None
    try:
        return str(Decimal(str(value)))
    except InvalidOperation:
        logger.warning("Ignoring malformed router price %r", value)
        return None


def _parse_approval_state(data: Any) -> RouterApprovalState:
    if not isinstance(data, dict) or "isApproved" not in data:
        raise ValueError(f"Invalid approval state response: {data}")
    allowance = data.get("allowance")
    return RouterApprovalState(
        is_approved=bool(data["isApproved"]),
        owner=data.get("ownerAddress"),
        spender=data.get("spenderAddress"),
        allowance=None if allowance is None else str(allowance),
        token=data.get("tokenAddress"),
    )
