"""
Fungible Token Governance - Lifecycle and Relay

Guarded token state machine and the propose / authorize / relay pipeline.
"""

from .actions import (
    TokenAction,
    StatusKind,
    StatusAction,
    ActionRequest,
    LifecycleState,
    ACTION_SCHEMAS,
    is_status_kind,
    schema_for,
)
from .roles import GovernanceRoles
from .rules import GuardRule, GuardStage, default_rules
from .lifecycle import GovernanceLifecycle, TransitionResult
from .relay import AuthorizationRelay, verify_integrity

__all__ = [
    "TokenAction",
    "StatusKind",
    "StatusAction",
    "ActionRequest",
    "LifecycleState",
    "ACTION_SCHEMAS",
    "is_status_kind",
    "schema_for",
    "GovernanceRoles",
    "GuardRule",
    "GuardStage",
    "default_rules",
    "GovernanceLifecycle",
    "TransitionResult",
    "AuthorizationRelay",
    "verify_integrity",
]
