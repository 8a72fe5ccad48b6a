"""
Fungible Token Governance - Ledger Access

JSON-RPC transport and the Provider capability built on it.
"""

from .rpc import (
    RPCError,
    RPCConnectionError,
    RPCAuthError,
    RPCTimeoutError,
    RPCConfig,
    RPCResponse,
    ConnectionPool,
    JsonRpcClient,
)
from .provider import Provider, JsonRpcProvider

__all__ = [
    "RPCError",
    "RPCConnectionError",
    "RPCAuthError",
    "RPCTimeoutError",
    "RPCConfig",
    "RPCResponse",
    "ConnectionPool",
    "JsonRpcClient",
    "Provider",
    "JsonRpcProvider",
]
