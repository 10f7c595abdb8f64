"""Domain models shared by providers, the aggregation engine and approvals."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DataSource(str, Enum):
    """Upstream provider that contributed a token record."""

    VAULTS = "vaults"
    LENDING_MARKET = "lendingMarket"
    AGGREGATOR = "aggregator"


def address_key(address: str) -> str:
    """Case-normalized form of an address used for matching records."""
    return address.lower()


@dataclass(frozen=True)
class ERC20:
    """Static ERC20 metadata read from chain."""

    address: str
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class Token:
    """A token reachable through one or more providers."""

    address: str
    name: str
    symbol: str
    decimals: int
    data_source: frozenset[DataSource] = frozenset()
    icon: str | None = None
    price_usd: str | None = None  # numeric string, keeps full precision

    @classmethod
    def from_erc20(
        cls,
        erc20: ERC20,
        source: DataSource,
        icon: str | None = None,
        price_usd: str | None = None,
    ) -> Token:
        return cls(
            address=erc20.address,
            name=erc20.name,
            symbol=erc20.symbol,
            decimals=erc20.decimals,
            data_source=frozenset({source}),
            icon=icon,
            price_usd=price_usd,
        )


@dataclass(frozen=True)
class RawBalance:
    """Balance as reported by a collaborator, before a token is attached."""

    address: str
    amount: str  # integer in the token's smallest unit
    amount_usd: str | None = None


@dataclass(frozen=True)
class Balance:
    """Amount of ``token`` held by ``owner``."""

    address: str
    owner: str
    token: Token
    amount: str
    amount_usd: str | None = None

    @property
    def is_zero(self) -> bool:
        return int(self.amount) == 0


@dataclass(frozen=True)
class TokenMetadata:
    """Descriptive metadata published for a token."""

    address: str
    description: str | None = None
    website: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegistryAssetStatic:
    """Immutable part of a vault or lending market record."""

    address: str
    token_address: str
    name: str
    symbol: str
    decimals: int
    version: str | None = None


@dataclass(frozen=True)
class RegistryAssetDynamic:
    """Time-varying part of a vault or lending market record."""

    address: str
    token_address: str
    underlying_balance: str
    underlying_balance_usd: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegistryAsset:
    """A vault or lending market: static and dynamic halves joined by address."""

    static: RegistryAssetStatic
    dynamic: RegistryAssetDynamic

    @property
    def address(self) -> str:
        return self.static.address


@dataclass(frozen=True)
class Position:
    """An account's position in a registry asset."""

    asset_address: str
    account: str
    type_id: str
    balance: str
    balance_usd: str | None = None


@dataclass(frozen=True)
class UserSummary:
    """Account-wide summary for a registry (e.g. lending totals)."""

    account: str
    supplied_usd: str
    borrowed_usd: str
    borrow_limit_usd: str | None = None
    utilization_ratio: str | None = None


@dataclass(frozen=True)
class AssetUserMetadata:
    """Per-asset account flags, e.g. whether a market is entered as collateral."""

    asset_address: str
    account: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GasPrices:
    """Router gas price tiers, in gwei."""

    standard: float
    instant: float
    fast: float


@dataclass(frozen=True)
class RouterApprovalState:
    """Router view of whether ``owner`` approved the router for ``token``."""

    is_approved: bool
    owner: str | None = None
    spender: str | None = None
    allowance: str | None = None
    token: str | None = None


@dataclass(frozen=True)
class Allowance:
    """Current allowance of ``spender`` over ``owner``'s ``token``."""

    amount: str
    owner: str
    spender: str
    token: str


RawTransaction = dict[str, Any]
