from __future__ import annotations

import asyncio
import random
from typing import Any, Callable

import backoff
from web3 import Web3
from web3.exceptions import ProviderConnectionError

from ..settings import AggregatorSettings


def build_web3(settings: AggregatorSettings) -> Web3:
    return Web3(
        Web3.HTTPProvider(
            settings.rpc_url_required,
            request_kwargs={"timeout": settings.http_timeout},
        )
    )


class ThrottledRpc:
    """Runs blocking web3 calls in a thread, throttled and retried."""

    def __init__(self, settings: AggregatorSettings, w3: Web3 | None = None):
        self.w3 = w3 or build_web3(settings)
        self._rpc_sem = asyncio.Semaphore(settings.max_calls)
        self._rpc_delay = settings.rpc_delay  # seconds
        self._rpc_jitter = settings.rpc_jitter  # seconds

    @backoff.on_exception(
        backoff.expo, (ProviderConnectionError), max_time=30, jitter=backoff.full_jitter
    )
    async def _rpc(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Throttle + backoff a single RPC."""
        async with self._rpc_sem:
            try:
                return await asyncio.to_thread(fn, *args, **kwargs)
            finally:
                delay = self._rpc_delay + random.random() * self._rpc_jitter
                if delay > 0:
                    await asyncio.sleep(delay)
