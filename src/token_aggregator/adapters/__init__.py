from __future__ import annotations

from .providers import PROVIDER_REGISTRY, ProviderAdapter, get_provider_class

__all__ = ["PROVIDER_REGISTRY", "ProviderAdapter", "get_provider_class"]
