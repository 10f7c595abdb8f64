from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ...domain import Balance, Token
from ...networks import ProviderKind


class ProviderAdapter(ABC):
    """Abstract base class for upstream token providers."""

    def __init__(self, chain_id: int):
        """Initialize the adapter for one network.

        Args:
            chain_id: Network the adapter reads from
        """
        self.chain_id = chain_id

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Return which provider this adapter implements."""
        ...

    @property
    def adapter_name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def list_entities(self) -> list[Token]:
        """List every token this provider can route deposits through."""
        ...

    @abstractmethod
    async def balances_of(self, account: str) -> list[Balance]:
        """Fetch ``account``'s balances of this provider's tokens."""
        ...

    async def price_of(self, address: str) -> Decimal | None:
        """USD price this provider reports for ``address``, if it reports any."""
        return None
