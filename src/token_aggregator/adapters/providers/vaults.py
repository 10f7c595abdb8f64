from __future__ import annotations

from ...networks import ProviderKind
from .registry import RegistryProvider


class VaultProvider(RegistryProvider):
    """Tokens accepted by the automated-vault registry."""

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.VAULTS
