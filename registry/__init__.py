"""
Fungible Token Governance - Registry

Immutable token models and the per-symbol state cache.
"""

from .schema import (
    FeeDescriptor,
    FeeSetting,
    TokenProperties,
    TokenState,
    AccountState,
)
from .state_tracker import CachedState, StateTracker

__all__ = [
    "FeeDescriptor",
    "FeeSetting",
    "TokenProperties",
    "TokenState",
    "AccountState",
    "CachedState",
    "StateTracker",
]
