"""
Nonce tracking for one wallet.

The counter for each network starts uninitialized, is fetched from the node
on first use, and is then only read and incremented locally until it is
reset. Two submissions issued back to back therefore get sequential nonces
without waiting for the first one to be mined.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional

import structlog

from .models import Network


NonceFetcher = Callable[[Network], Awaitable[int]]


@dataclass
class NonceState:
    """Tracks the local nonce counter for one network."""
    network: Network
    value: Optional[int] = None                 # None until fetched
    fetch_count: int = 0
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def initialized(self) -> bool:
        return self.value is not None


class NonceManager:
    """
    Owns the nonce counters of a single account.

    Not safe for concurrent use: callers serialize submissions per wallet.
    """

    def __init__(self, fetcher: NonceFetcher, logger=None):
        self._fetch = fetcher
        self._states: Dict[Network, NonceState] = {}
        self.logger = logger or structlog.get_logger(__name__)

    def _state(self, network: Network) -> NonceState:
        if network not in self._states:
            self._states[network] = NonceState(network=network)
        return self._states[network]

    async def get_nonce(self, network: Network = Network.PRIMARY) -> int:
        """
        Return the nonce for the next transaction.

        Fetches the confirmed transaction count from the node only while the
        counter is uninitialized. Fetch errors propagate.
        """
        state = self._state(network)

        if state.value is None:
            value = await self._fetch(network)
            state.value = value
            state.fetch_count += 1
            state.last_updated = datetime.now(timezone.utc)
            self.logger.info(f"Initial nonce from network: {value}", network=network.value)
        else:
            self.logger.debug(f"Using tracked nonce: {state.value}", network=network.value)

        return state.value

    def increment_nonce(self, network: Network = Network.PRIMARY) -> None:
        """Advance the counter by one; no-op while uninitialized."""
        state = self._state(network)
        if state.value is None:
            return

        state.value += 1
        state.last_updated = datetime.now(timezone.utc)
        self.logger.debug(f"Incremented nonce to: {state.value}", network=network.value)

    def reset_nonce(self, network: Network = Network.PRIMARY) -> None:
        """Forget the counter so the next ``get_nonce`` re-fetches."""
        state = self._state(network)
        state.value = None
        state.last_updated = datetime.now(timezone.utc)

    def get_state(self, network: Network = Network.PRIMARY) -> NonceState:
        return self._state(network)


class NoncePolicy(ABC):
    """Decides how the counter moves around signing and broadcasting."""

    name: str

    @abstractmethod
    def after_sign(self, nonces: NonceManager, network: Network) -> None:
        """Called once the transaction is signed, before it is broadcast."""

    @abstractmethod
    def on_broadcast_failure(self, nonces: NonceManager, network: Network) -> None:
        """Called when the broadcast (or receipt wait) fails."""


class OptimisticNoncePolicy(NoncePolicy):
    """
    Increment right after signing and never reconcile.

    If the broadcast fails, the local counter stays ahead of the node until
    ``reset_nonce`` is called and later submissions leave a nonce gap.
    """

    name = "optimistic"

    def after_sign(self, nonces: NonceManager, network: Network) -> None:
        nonces.increment_nonce(network)

    def on_broadcast_failure(self, nonces: NonceManager, network: Network) -> None:
        return None


class StrictNoncePolicy(OptimisticNoncePolicy):
    """Same increment, but a failed broadcast forces a re-fetch."""

    name = "strict"

    def on_broadcast_failure(self, nonces: NonceManager, network: Network) -> None:
        nonces.reset_nonce(network)
        nonces.logger.warning("Broadcast failed, nonce will be re-fetched", network=network.value)
