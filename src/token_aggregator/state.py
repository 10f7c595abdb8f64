"""Application state container and service wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .adapters.providers.aggregator import AggregatorProvider
from .adapters.providers.base import ProviderAdapter
from .adapters.providers.lending_market import LendingMarketProvider
from .adapters.providers.vaults import VaultProvider
from .approvals import ApprovalWorkflow
from .cache import CacheStore
from .clients.assets import AssetService
from .clients.base import RegistryLens, TransactionSender
from .clients.erc20 import Erc20Client
from .clients.oracle import OracleClient
from .clients.router_api import RouterApiClient
from .engine import AggregationEngine
from .networks import active_provider_kinds
from .pricing import PriceResolver
from .settings import AggregatorSettings


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Clients are built lazily so commands that only need the router never
    touch an RPC endpoint.
    """

    settings: AggregatorSettings
    logger: logging.Logger
    cache: CacheStore = field(init=False)

    def __post_init__(self) -> None:
        self.cache = CacheStore(
            default_ttl=self.settings.cache_ttl_seconds,
            max_entries=self.settings.cache_max_entries,
        )

    def router(self) -> RouterApiClient:
        return RouterApiClient(self.settings)

    def erc20(self) -> Erc20Client:
        return Erc20Client(self.settings)

    def price_resolver(self) -> PriceResolver:
        oracle = OracleClient(self.settings)
        return PriceResolver(
            self.settings.chain_id,
            oracle,
            quoter=oracle,
            numeraire=self.settings.numeraire_address,
        )

    def engine(
        self,
        vault_lens: RegistryLens | None = None,
        lending_lens: RegistryLens | None = None,
        with_prices: bool = False,
    ) -> AggregationEngine:
        """Build the aggregation engine.

        Registry-backed providers are only wired when a lens is given for
        them; the router provider is always present.
        """
        chain_id = self.settings.chain_id
        providers: list[ProviderAdapter] = [
            AggregatorProvider(chain_id, self.router(), self.cache)
        ]
        if vault_lens is not None or lending_lens is not None:
            helper = self.erc20()
            if vault_lens is not None:
                providers.append(VaultProvider(chain_id, vault_lens, helper, self.cache))
            if lending_lens is not None:
                providers.append(
                    LendingMarketProvider(chain_id, lending_lens, helper, self.cache)
                )

        wired = {provider.kind for provider in providers}
        missing = [
            kind.value for kind in active_provider_kinds(chain_id) if kind not in wired
        ]
        if missing:
            self.logger.warning(
                "Providers %s are active on chain %d but have no registry reader "
                "configured; their tokens and balances are not included",
                ", ".join(missing),
                chain_id,
            )
        return AggregationEngine(
            chain_id,
            providers,
            self.cache,
            assets=AssetService(self.settings, self.cache),
            prices=self.price_resolver() if with_prices else None,
            ttl=self.settings.cache_ttl_seconds,
        )

    def approvals(self, sender: TransactionSender) -> ApprovalWorkflow:
        return ApprovalWorkflow(
            self.settings.chain_id,
            self.erc20(),
            self.router(),
            sender,
            partner_address=self.settings.partner_address,
            router_label=self.settings.router_label,
        )
