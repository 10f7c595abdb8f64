"""Multi-source token aggregation and caching layer."""

from .approvals import ApprovalIntent, ApprovalState, ApprovalWorkflow
from .cache import CachedFetcher, CacheStore
from .domain import Allowance, Balance, DataSource, Token
from .engine import AggregationEngine
from .errors import (
    AggregatorError,
    MergeConsistencyError,
    PriceUnavailableError,
    ProviderFailure,
    TransactionError,
    UnsupportedNetworkError,
)
from .networks import ProviderKind, active_provider_kinds
from .pricing import PriceResolver
from .settings import AggregatorSettings

__all__ = [
    "AggregationEngine",
    "AggregatorError",
    "AggregatorSettings",
    "Allowance",
    "ApprovalIntent",
    "ApprovalState",
    "ApprovalWorkflow",
    "Balance",
    "CacheStore",
    "CachedFetcher",
    "DataSource",
    "MergeConsistencyError",
    "PriceResolver",
    "PriceUnavailableError",
    "ProviderFailure",
    "ProviderKind",
    "Token",
    "TransactionError",
    "UnsupportedNetworkError",
    "active_provider_kinds",
]
