"""
Fungible Token Governance - Token State Tracking

This module holds the per-symbol cache of server-confirmed ``TokenState``
snapshots. Snapshots are replaced wholesale, never patched.

Refreshes are stamped with a per-symbol generation number. Starting a
mutation or observing its commit bumps the generation, so a refresh that
began before the commit cannot overwrite the cache with stale data once the
mutation has landed. Mutations on the same symbol are serialized through a
per-symbol ``asyncio.Lock``.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from .schema import TokenState


@dataclass
class CachedState:
    """Cached snapshot with the generation it was fetched under."""
    state: TokenState
    generation: int


class StateTracker:
    """
    Per-symbol TokenState cache owned by one client session.

    Nothing here is process-wide: each session creates its own tracker.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._entries: Dict[str, CachedState] = {}
        self._generations: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

        self.stats = {
            "refreshes": 0,
            "stale_refreshes_discarded": 0,
            "mutations": 0,
        }

    def get(self, symbol: str) -> Optional[TokenState]:
        entry = self._entries.get(symbol)
        return entry.state if entry else None

    def entry(self, symbol: str) -> Optional[CachedState]:
        return self._entries.get(symbol)

    def generation(self, symbol: str) -> int:
        return self._generations.get(symbol, 0)

    def lock(self, symbol: str) -> asyncio.Lock:
        if symbol not in self._locks:
            self._locks[symbol] = asyncio.Lock()
        return self._locks[symbol]

    def _bump(self, symbol: str) -> int:
        self._generations[symbol] = self.generation(symbol) + 1
        return self._generations[symbol]

    def mark_committed(self, symbol: str) -> None:
        """Record that a mutation on ``symbol`` has been confirmed by the ledger."""
        generation = self._bump(symbol)
        self.logger.debug(f"Mutation committed for {symbol}, generation {generation}")

    def store(self, symbol: str, state: TokenState, generation: int) -> bool:
        """
        Replace the cached snapshot if ``generation`` is still current.

        Returns:
            True if stored, False if the snapshot was stale and discarded
        """
        if generation != self.generation(symbol):
            self.stats["stale_refreshes_discarded"] += 1
            self.logger.warning(
                f"Discarding stale state for {symbol}: fetched at generation "
                f"{generation}, current {self.generation(symbol)}"
            )
            return False

        self._entries[symbol] = CachedState(state=state, generation=generation)
        return True

    def invalidate(self, symbol: str) -> None:
        self._entries.pop(symbol, None)
        self._bump(symbol)

    async def refresh(self, symbol: str,
                      fetch: Callable[[], Awaitable[TokenState]]) -> TokenState:
        """
        Fetch a fresh snapshot and cache it unless a mutation intervened.

        Args:
            symbol: Token symbol
            fetch: Coroutine factory returning the latest TokenState

        Returns:
            The fetched snapshot (returned even when it was too stale to cache)
        """
        generation = self.generation(symbol)
        state = await fetch()
        self.stats["refreshes"] += 1
        if self.store(symbol, state, generation):
            self.logger.debug(f"Refreshed state for {symbol} at generation {generation}")
        return state

    @asynccontextmanager
    async def mutation(self, symbol: str) -> AsyncIterator[None]:
        """
        Serialize a mutating action on ``symbol``.

        Entering bumps the generation so refreshes already in flight are
        discarded when they complete.
        """
        async with self.lock(symbol):
            self._bump(symbol)
            self.stats["mutations"] += 1
            yield
