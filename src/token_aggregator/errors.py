"""Typed errors surfaced by the aggregation layer."""

from __future__ import annotations


class AggregatorError(Exception):
    """Base class for all errors raised by token-aggregator."""


class UnsupportedNetworkError(AggregatorError):
    """Raised when a mandatory code path needs a network absent from the capability matrix."""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(f"the chain {chain_id} hasn't been implemented yet")


class ProviderFailure(AggregatorError):
    """One provider adapter failed. Absorbed at the aggregation boundary."""

    def __init__(self, provider: str, cause: BaseException):
        self.provider = provider
        self.cause = cause
        super().__init__(f"Provider '{provider}' failed: {cause}")


class MergeConsistencyError(AggregatorError):
    """Raised when paired upstream records (static/dynamic, balance/token) do not line up."""


class TransactionError(AggregatorError):
    """Raised when an approval transaction cannot be built or submitted."""


class PriceUnavailableError(AggregatorError):
    """Raised when no price source could price a token."""
