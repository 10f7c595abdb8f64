"""Canonical USD prices: router quote first, dedicated oracle as fallback."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Sequence

from .clients.base import PriceOracle, RouterQuoter
from .constants import USDC_PRICE_DECIMALS
from .domain import address_key
from .errors import PriceUnavailableError
from .logger import get_logger
from .networks import ensure_supported

logger = get_logger(__name__)


class PriceResolver:
    """Resolve token prices in USD on one network.

    A router quote against the numeraire (a USD stablecoin) is tried first;
    when it errors or returns a non-positive amount, the oracle's own USD
    price is used instead.
    """

    def __init__(
        self,
        chain_id: int,
        oracle: PriceOracle,
        quoter: RouterQuoter | None = None,
        numeraire: str | None = None,
        numeraire_decimals: int = USDC_PRICE_DECIMALS,
    ):
        self.chain_id = chain_id
        self.oracle = oracle
        self.quoter = quoter
        self.numeraire = numeraire
        self._numeraire_scale = Decimal(10) ** numeraire_decimals

    async def price_of(self, address: str) -> Decimal:
        """Get the USD price of one token.

        Raises:
            UnsupportedNetworkError: If the network is not in the capability matrix
            PriceUnavailableError: If neither the router nor the oracle can price it
        """
        ensure_supported(self.chain_id)
        if self.numeraire is not None and address_key(address) == address_key(
            self.numeraire
        ):
            return Decimal(1)

        router_price = await self._router_quote(address)
        if router_price is not None:
            return router_price

        try:
            return await self.oracle.price_usdc(address)
        except Exception as e:
            raise PriceUnavailableError(
                f"Failed to price {address} through the oracle: {e}"
            ) from e

    async def _router_quote(self, address: str) -> Decimal | None:
        if self.quoter is None or self.numeraire is None:
            return None
        try:
            price = await self.quoter.price_from_router(address, self.numeraire)
        except Exception as e:
            logger.debug("Router quote failed for %s, using oracle: %s", address, e)
            return None
        if price <= 0:
            logger.debug("Router has no liquidity for %s, using oracle", address)
            return None
        return price / self._numeraire_scale

    async def price_of_many(self, addresses: Sequence[str]) -> dict[str, Decimal]:
        """Get USD prices for several tokens, each resolved independently.

        Returns:
            Mapping of address to price for every token that could be priced.
            Tokens that failed are logged and left out.

        Raises:
            UnsupportedNetworkError: If the network is not in the capability
                matrix; raised before any price source is called
        """
        ensure_supported(self.chain_id)
        results = await asyncio.gather(
            *[self.price_of(address) for address in addresses],
            return_exceptions=True,
        )

        prices: dict[str, Decimal] = {}
        for address, result in zip(addresses, results):
            if isinstance(result, Exception):
                logger.warning("Could not price %s: %s", address, result)
                continue
            if isinstance(result, BaseException):
                raise result
            prices[address] = result
        return prices

    async def exchange_rate(self, token_from: str, token_to: str) -> Decimal:
        """Get how much ``token_to`` one ``token_from`` is worth on the router.

        The amount is unscaled, in ``token_to``'s smallest unit.
        """
        ensure_supported(self.chain_id)
        if self.quoter is None:
            raise PriceUnavailableError("No router quoter configured")
        try:
            return await self.quoter.price_from_router(token_from, token_to)
        except Exception as e:
            raise PriceUnavailableError(
                f"Failed to quote {token_from} -> {token_to}: {e}"
            ) from e
