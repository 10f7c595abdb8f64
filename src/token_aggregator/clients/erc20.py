"""On-chain ERC20 reads and approve-transaction building."""

from __future__ import annotations

import asyncio
from typing import Sequence

from web3 import Web3
from web3.contract import Contract

from ..abi import load_erc20_abi
from ..constants import ETH_ADDRESS
from ..domain import ERC20, RawBalance, RawTransaction, address_key
from ..logger import get_logger
from ..settings import AggregatorSettings
from .rpc import ThrottledRpc

logger = get_logger(__name__)


class Erc20Client(ThrottledRpc):
    """Token helper backed by direct ERC20 contract calls."""

    def __init__(self, settings: AggregatorSettings, w3: Web3 | None = None):
        super().__init__(settings, w3)
        self._abi = load_erc20_abi()
        self._contracts: dict[str, Contract] = {}

    def _contract(self, token: str) -> Contract:
        key = address_key(token)
        contract = self._contracts.get(key)
        if contract is None:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(token), abi=self._abi
            )
            self._contracts[key] = contract
        return contract

    async def token(self, address: str) -> ERC20:
        if address_key(address) == address_key(ETH_ADDRESS):
            return ERC20(address=ETH_ADDRESS, name="Ether", symbol="ETH", decimals=18)
        fns = self._contract(address).functions
        name, symbol, decimals = await asyncio.gather(
            self._rpc(fns.name().call),
            self._rpc(fns.symbol().call),
            self._rpc(fns.decimals().call),
        )
        return ERC20(
            address=Web3.to_checksum_address(address),
            name=name,
            symbol=symbol,
            decimals=int(decimals),
        )

    async def tokens(self, addresses: Sequence[str]) -> list[ERC20]:
        """Read name, symbol and decimals for each address.

        Tokens whose reads fail are logged and left out of the result.
        """
        results = await asyncio.gather(
            *(self.token(address) for address in addresses), return_exceptions=True
        )
        tokens: list[ERC20] = []
        for address, result in zip(addresses, results):
            if isinstance(result, BaseException):
                logger.warning("Skipping token %s: %s", address, result)
                continue
            tokens.append(result)
        return tokens

    async def balance_of(self, account: str, token: str) -> int:
        owner = Web3.to_checksum_address(account)
        if address_key(token) == address_key(ETH_ADDRESS):
            return int(await self._rpc(self.w3.eth.get_balance, owner))
        fns = self._contract(token).functions
        return int(await self._rpc(fns.balanceOf(owner).call))

    async def token_balances(
        self, account: str, addresses: Sequence[str]
    ) -> list[RawBalance]:
        results = await asyncio.gather(
            *(self.balance_of(account, address) for address in addresses),
            return_exceptions=True,
        )
        balances: list[RawBalance] = []
        for address, result in zip(addresses, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Skipping balance of %s for %s: %s", address, account, result
                )
                continue
            balances.append(
                RawBalance(address=Web3.to_checksum_address(address), amount=str(result))
            )
        return balances

    async def allowance(self, token: str, owner: str, spender: str) -> int:
        fns = self._contract(token).functions
        value = await self._rpc(
            fns.allowance(
                Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
            ).call
        )
        return int(value)

    async def build_approve_transaction(
        self, token: str, spender: str, amount: int, sender: str
    ) -> RawTransaction:
        fns = self._contract(token).functions
        call = fns.approve(Web3.to_checksum_address(spender), int(amount))
        return await self._rpc(
            call.build_transaction, {"from": Web3.to_checksum_address(sender)}
        )
