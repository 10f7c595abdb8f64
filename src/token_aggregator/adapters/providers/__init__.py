from __future__ import annotations

from ...networks import ProviderKind
from .aggregator import AggregatorProvider
from .base import ProviderAdapter
from .lending_market import LendingMarketProvider
from .registry import RegistryProvider
from .vaults import VaultProvider

PROVIDER_REGISTRY: dict[ProviderKind, type[ProviderAdapter]] = {
    ProviderKind.VAULTS: VaultProvider,
    ProviderKind.LENDING_MARKET: LendingMarketProvider,
    ProviderKind.AGGREGATOR: AggregatorProvider,
}


def get_provider_class(kind: ProviderKind | str) -> type[ProviderAdapter]:
    """Get provider class by kind.

    Args:
        kind: Provider kind or its string value (e.g. "lendingMarket")

    Returns:
        Provider class

    Raises:
        ValueError: If kind is not recognized
    """
    try:
        resolved = ProviderKind(kind)
    except ValueError:
        raise ValueError(
            f"Unknown provider '{kind}'. "
            f"Available: {', '.join(k.value for k in PROVIDER_REGISTRY)}"
        ) from None
    return PROVIDER_REGISTRY[resolved]


__all__ = [
    "PROVIDER_REGISTRY",
    "AggregatorProvider",
    "LendingMarketProvider",
    "ProviderAdapter",
    "RegistryProvider",
    "VaultProvider",
    "get_provider_class",
]
