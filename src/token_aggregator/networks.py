"""Which providers participate on which network."""

from __future__ import annotations

from enum import Enum

from .constants import ARBITRUM, FANTOM, LOCAL_FORK, MAINNET
from .domain import DataSource
from .errors import UnsupportedNetworkError


class ProviderKind(str, Enum):
    VAULTS = "vaults"
    LENDING_MARKET = "lendingMarket"
    AGGREGATOR = "aggregator"

    @property
    def data_source(self) -> DataSource:
        return DataSource(self.value)

    @classmethod
    def from_data_source(cls, source: DataSource) -> ProviderKind:
        return cls(source.value)


# Listing order is precedence order: the first provider wins on field conflicts.
CAPABILITY_MATRIX: dict[int, tuple[ProviderKind, ...]] = {
    MAINNET: (
        ProviderKind.VAULTS,
        ProviderKind.LENDING_MARKET,
        ProviderKind.AGGREGATOR,
    ),
    LOCAL_FORK: (
        ProviderKind.VAULTS,
        ProviderKind.LENDING_MARKET,
        ProviderKind.AGGREGATOR,
    ),
    FANTOM: (ProviderKind.VAULTS, ProviderKind.LENDING_MARKET),
    ARBITRUM: (ProviderKind.VAULTS, ProviderKind.LENDING_MARKET),
}


def active_provider_kinds(chain_id: int) -> list[ProviderKind]:
    """Return the providers active on ``chain_id`` in precedence order.

    Networks missing from the matrix have no providers; this is a valid,
    empty answer rather than an error.
    """
    return list(CAPABILITY_MATRIX.get(chain_id, ()))


def is_supported(chain_id: int) -> bool:
    return chain_id in CAPABILITY_MATRIX


def ensure_supported(chain_id: int) -> None:
    """Raise UnsupportedNetworkError if ``chain_id`` is not in the matrix."""
    if not is_supported(chain_id):
        raise UnsupportedNetworkError(chain_id)


def precedence(chain_id: int, kind: ProviderKind) -> int:
    """Rank of ``kind`` on ``chain_id``; lower wins. Inactive kinds rank last."""
    kinds = CAPABILITY_MATRIX.get(chain_id, ())
    return kinds.index(kind) if kind in kinds else len(kinds)
