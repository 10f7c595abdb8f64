from __future__ import annotations

from decimal import Decimal

from web3 import Web3
from web3.contract import Contract

from ..abi import load_oracle_abi
from ..constants import USDC_PRICE_DECIMALS
from ..logger import get_logger
from ..settings import AggregatorSettings
from .rpc import ThrottledRpc

logger = get_logger(__name__)

_USDC_SCALE = Decimal(10) ** USDC_PRICE_DECIMALS


class OracleClient(ThrottledRpc):
    """Price oracle contract reads.

    USD prices come back in USDC with six decimals and are scaled to Decimal.
    Router quotes are returned unscaled, in the output token's smallest unit.
    """

    def __init__(self, settings: AggregatorSettings, w3: Web3 | None = None):
        super().__init__(settings, w3)
        self.oracle_address = Web3.to_checksum_address(settings.oracle_address_required)
        self._contract: Contract = self.w3.eth.contract(
            address=self.oracle_address, abi=load_oracle_abi()
        )

    async def price_usdc(self, token: str) -> Decimal:
        raw = await self._rpc(
            self._contract.functions.getPriceUsdcRecommended(
                Web3.to_checksum_address(token)
            ).call
        )
        logger.debug("Oracle price for %s: %s", token, raw)
        return Decimal(int(raw)) / _USDC_SCALE

    async def price_from_router(self, token_in: str, token_out: str) -> Decimal:
        raw = await self._rpc(
            self._contract.functions.getPriceFromRouter(
                Web3.to_checksum_address(token_in), Web3.to_checksum_address(token_out)
            ).call
        )
        return Decimal(int(raw))
