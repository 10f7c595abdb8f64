from __future__ import annotations

from typing import Sequence

from ...domain import AssetUserMetadata, UserSummary
from ...networks import ProviderKind
from .registry import RegistryProvider


class LendingMarketProvider(RegistryProvider):
    """Underlying tokens of the lending-market registry, plus account views."""

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.LENDING_MARKET

    async def summary_of(self, account: str) -> UserSummary:
        """Get the account-wide lending summary (supplied, borrowed, limits)."""
        return await self.lens.summary_of(account)

    async def metadata_of(
        self, account: str, addresses: Sequence[str] | None = None
    ) -> list[AssetUserMetadata]:
        """Get per-market account flags, optionally restricted to ``addresses``."""
        return await self.lens.user_metadata_of(account, addresses)
