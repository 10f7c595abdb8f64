"""Interfaces of the upstream collaborators consumed by the aggregation layer."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, Sequence

from ..domain import (
    ERC20,
    AssetUserMetadata,
    Balance,
    GasPrices,
    Position,
    RawBalance,
    RawTransaction,
    RegistryAssetDynamic,
    RegistryAssetStatic,
    RouterApprovalState,
    Token,
    TokenMetadata,
    UserSummary,
)


class RegistryLens(Protocol):
    """Read access to a vault or lending-market registry contract."""

    async def token_addresses(self) -> list[str]: ...

    async def assets_static(
        self, addresses: Sequence[str] | None = None
    ) -> list[RegistryAssetStatic]: ...

    async def assets_dynamic(
        self, addresses: Sequence[str] | None = None
    ) -> list[RegistryAssetDynamic]: ...

    async def positions_of(
        self, account: str, addresses: Sequence[str] | None = None
    ) -> list[Position]: ...

    async def summary_of(self, account: str) -> UserSummary: ...

    async def user_metadata_of(
        self, account: str, addresses: Sequence[str] | None = None
    ) -> list[AssetUserMetadata]: ...


class TokenHelper(Protocol):
    """ERC20 reads and approval transaction building."""

    async def tokens(self, addresses: Sequence[str]) -> list[ERC20]: ...

    async def token_balances(
        self, account: str, addresses: Sequence[str]
    ) -> list[RawBalance]: ...

    async def allowance(self, token: str, owner: str, spender: str) -> int: ...

    async def build_approve_transaction(
        self, token: str, spender: str, amount: int, sender: str
    ) -> RawTransaction: ...


class RouterClient(Protocol):
    """Third-party liquidity router."""

    async def supported_tokens(self) -> list[Token]: ...

    async def balances(self, account: str) -> list[Balance]: ...

    async def gas(self) -> GasPrices: ...

    async def zap_in_approval_state(
        self, account: str, token: str, label: str
    ) -> RouterApprovalState: ...

    async def zap_in_approval_transaction(
        self, account: str, token: str, gas_price: str, label: str
    ) -> RawTransaction: ...

    async def zap_out_approval_state(
        self, account: str, token: str
    ) -> RouterApprovalState: ...

    async def zap_out_approval_transaction(
        self, account: str, token: str, gas_price: str
    ) -> RawTransaction: ...


class RouterQuoter(Protocol):
    """On-chain router quote between two tokens.

    The quote is the raw amount of ``token_out``, in its own smallest unit.
    """

    async def price_from_router(self, token_in: str, token_out: str) -> Decimal: ...


class PriceOracle(Protocol):
    """Dedicated price oracle quoting USD prices."""

    async def price_usdc(self, token: str) -> Decimal: ...


class AssetMetadataService(Protocol):
    """Icons and descriptive metadata for tokens. Best effort."""

    async def icon_for(self, addresses: Sequence[str]) -> dict[str, str]: ...

    async def token_metadata(self) -> list[TokenMetadata]: ...


class TransactionSender(Protocol):
    """Signs and broadcasts a transaction on behalf of an account."""

    async def send_transaction(self, transaction: RawTransaction) -> object: ...
