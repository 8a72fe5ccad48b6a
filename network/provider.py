"""
Fungible Token Governance - Ledger Provider

The Provider is the capability through which the client reads ledger state
and submits signed transactions. It is an explicit dependency of every
session; nothing here is global.

``JsonRpcProvider`` adapts the blocking ``JsonRpcClient`` to the async
relay pipeline by running calls in the default executor. Every response is
sanitized through the format validator before it reaches governance code,
and node-side rejections reported with a taxonomy code are re-raised as the
matching ``TokenError`` subclass. Transport failures propagate unchanged as
``RPCError``.
"""

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from errors import error_from_code, is_error_code
from registry.schema import AccountState, TokenState
from transaction.builder import Receipt, SignedTransaction
from validator.core import check_format
from validator.schemas import TRANSACTION_FEE_SCHEMA

from .rpc import JsonRpcClient, RPCConfig, RPCError


class Provider(ABC):
    """Ledger access capability."""

    @abstractmethod
    async def query(self, symbol: str) -> Optional[TokenState]:
        """Return the current TokenState, or None if the symbol is unknown."""

    @abstractmethod
    async def query_account(self, symbol: str, address: str) -> AccountState:
        """Return the per-account state of ``address`` for ``symbol``."""

    @abstractmethod
    async def submit(self, signed: SignedTransaction) -> Receipt:
        """Submit a signed transaction and wait for its receipt."""

    @abstractmethod
    async def estimate_fee(self, action_kind: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Estimate the ``{denom, amount}`` fee for an action."""


class JsonRpcProvider(Provider):
    """Provider backed by a ledger node's JSON-RPC endpoint."""

    METHOD_QUERY = "token_getState"
    METHOD_QUERY_ACCOUNT = "token_getAccount"
    METHOD_SUBMIT = "tx_submit"
    METHOD_ESTIMATE_FEE = "tx_estimateFee"

    def __init__(self, client: Optional[JsonRpcClient] = None,
                 config: Optional[RPCConfig] = None):
        self.client = client or JsonRpcClient(config)
        self.logger = logging.getLogger(__name__)

    async def _call(self, method: str, params: Dict[str, Any]) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, functools.partial(self.client.call, method, params)
            )
        except RPCError as e:
            node_code = e.data.get("code") if isinstance(e.data, dict) else None
            if is_error_code(node_code):
                self.logger.error(f"Ledger rejected {method}: {node_code} {e.message}")
                raise error_from_code(node_code, e.message, rpc_code=e.code) from e
            raise

    async def query(self, symbol: str) -> Optional[TokenState]:
        result = await self._call(self.METHOD_QUERY, {"symbol": symbol})
        if result is None:
            return None
        return TokenState.from_wire(result)

    async def query_account(self, symbol: str, address: str) -> AccountState:
        result = await self._call(self.METHOD_QUERY_ACCOUNT, {"symbol": symbol, "address": address})
        if result is None:
            return AccountState(symbol=symbol, owner=address)
        return AccountState.from_wire(result)

    async def submit(self, signed: SignedTransaction) -> Receipt:
        result = await self._call(self.METHOD_SUBMIT, signed.to_dict())
        receipt = Receipt.from_dict(result)
        self.logger.info(f"Receipt {receipt.hash} status {receipt.status}")
        return receipt

    async def estimate_fee(self, action_kind: str, params: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._call(self.METHOD_ESTIMATE_FEE, {"kind": action_kind, "params": params})
        return check_format(TRANSACTION_FEE_SCHEMA, result)

    def close(self):
        self.client.close()
