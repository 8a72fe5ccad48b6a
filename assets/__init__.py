"""
Fungible Token Governance - Token Clients
"""

from .fungible import FungibleToken

__all__ = ["FungibleToken"]
