from __future__ import annotations

from .assets import AssetService
from .base import (
    AssetMetadataService,
    PriceOracle,
    RegistryLens,
    RouterClient,
    RouterQuoter,
    TokenHelper,
    TransactionSender,
)
from .erc20 import Erc20Client
from .oracle import OracleClient
from .router_api import RouterApiClient

__all__ = [
    "AssetMetadataService",
    "AssetService",
    "Erc20Client",
    "OracleClient",
    "PriceOracle",
    "RegistryLens",
    "RouterApiClient",
    "RouterClient",
    "RouterQuoter",
    "TokenHelper",
    "TransactionSender",
]
