"""
Fungible Token Governance - Client Session

A ``TokenSession`` is the caller-owned home of all client-side mutable
state: the Provider connection, the per-symbol TokenState cache, the role
sets and the lifecycle used to guard actions. Two sessions never share a
cache.
"""

import asyncio
import logging
from typing import Iterable, Optional

from errors import UnexpectedResultError
from governance.actions import LifecycleState
from governance.lifecycle import GovernanceLifecycle
from governance.relay import AuthorizationRelay
from governance.roles import GovernanceRoles

from .schema import AccountState, TokenState
from .state_tracker import StateTracker


class TokenSession:
    """
    Per-caller session over one Provider.

    Args:
        provider: Ledger access capability
        roles: Governance role sets
        lifecycle: Lifecycle to guard actions with (built from ``roles`` when omitted)
    """

    def __init__(self, provider, roles: Optional[GovernanceRoles] = None,
                 lifecycle: Optional[GovernanceLifecycle] = None):
        self.provider = provider
        self.roles = roles or GovernanceRoles()
        self.lifecycle = lifecycle or GovernanceLifecycle(self.roles)
        self.tracker = StateTracker()
        self.relay = AuthorizationRelay(self)
        self.logger = logging.getLogger(__name__)

    def cached_state(self, symbol: str) -> Optional[TokenState]:
        return self.tracker.get(symbol)

    async def _fetch(self, symbol: str) -> TokenState:
        state = await self.provider.query(symbol)
        if state is None:
            raise UnexpectedResultError(f"token {symbol} not found", symbol=symbol)
        return state

    async def refresh(self, symbol: str) -> TokenState:
        """Re-query the Provider and replace the cached snapshot."""
        state = await self.tracker.refresh(symbol, lambda: self._fetch(symbol))
        self.logger.info(f"Refreshed {symbol}: owner {state.owner}, supply {state.total_supply}")
        return state

    async def get_state(self, symbol: str, refresh: bool = False) -> TokenState:
        cached = self.tracker.get(symbol)
        if cached is not None and not refresh:
            return cached
        return await self.refresh(symbol)

    async def query_account(self, symbol: str, address: str) -> AccountState:
        return await self.provider.query_account(symbol, address)

    async def lifecycle_state(self, symbol: str, addresses: Iterable[str],
                              creating: bool = False) -> LifecycleState:
        """
        Assemble the state an action is evaluated against.

        Creation checks the ledger directly so an existing symbol is seen
        even when this session never cached it. Other actions use the cached
        token snapshot, fetching it on first use. Account states are always
        queried fresh.
        """
        if creating:
            token = await self.provider.query(symbol)
            if token is None:
                return LifecycleState(token=None)
        else:
            token = await self.get_state(symbol)

        distinct = list(dict.fromkeys(addresses))
        accounts = await asyncio.gather(*(self.query_account(symbol, address) for address in distinct))
        return LifecycleState(token=token, accounts=dict(zip(distinct, accounts)))
