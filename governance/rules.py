"""
Fungible Token Governance - Guard Rules

This module implements the guard rules evaluated by the governance
lifecycle. Each rule belongs to one stage:

1. Authorization: is the actor allowed to request this action at all
2. Idempotency: is the resource already in the requested state
3. Policy: supply, burnability, balances, freezes and fee schedules

The lifecycle runs rules stage by stage and reports the first failure.
Rules return an error instead of raising so the lifecycle can offer both a
result-returning and a raising entry point.
"""

import logging
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import FrozenSet, Iterable, List, Optional

from errors import (
    ExistsError,
    InsufficientFundsError,
    MissingFeesError,
    NotAllowedError,
    TokenError,
)

from .actions import ActionRequest, LifecycleState, StatusKind, TokenAction, STATUS_KINDS
from .roles import GovernanceRoles


class GuardStage(IntEnum):
    """Evaluation stage; lower stages run first."""
    AUTHORIZATION = 1
    IDEMPOTENCY = 2
    POLICY = 3


def _kinds(*kinds) -> FrozenSet[str]:
    return frozenset(kind.value if hasattr(kind, "value") else kind for kind in kinds)


# Actions that move or create value on an approved token
VALUE_ACTIONS = _kinds(TokenAction.MINT, TokenAction.BURN, TokenAction.TRANSFER)
OWNERSHIP_ACTIONS = _kinds(TokenAction.TRANSFER_OWNERSHIP, TokenAction.ACCEPT_OWNERSHIP)

# Actions always required in an approved fee schedule
BASE_FEE_ACTIONS = (
    TokenAction.TRANSFER.value,
)


class GuardRule(ABC):
    """
    Abstract base class for lifecycle guard rules.

    Subclasses set ``stage`` and ``actions`` (an empty set applies the
    rule to every action kind).
    """

    stage: GuardStage = GuardStage.POLICY
    actions: FrozenSet[str] = frozenset()

    def __init__(self, name: str, description: str, enabled: bool = True):
        self.name = name
        self.description = description
        self.enabled = enabled
        self.logger = logging.getLogger(f"governance.rules.{name}")

    def is_applicable(self, request: ActionRequest) -> bool:
        if not self.enabled:
            return False
        return not self.actions or request.kind in self.actions

    @abstractmethod
    def check(self, state: LifecycleState, request: ActionRequest) -> Optional[TokenError]:
        """
        Evaluate the rule.

        Args:
            state: Token and account states the action applies to
            request: Decoded action request

        Returns:
            None if the guard passes, otherwise the error to report
        """


# Authorization

class TokenExistsRule(GuardRule):
    stage = GuardStage.AUTHORIZATION
    actions = VALUE_ACTIONS | OWNERSHIP_ACTIONS | STATUS_KINDS

    def __init__(self):
        super().__init__("token_exists", "Action targets an existing token")

    def check(self, state, request):
        if state.token is None:
            return NotAllowedError(f"token {request.symbol} does not exist", symbol=request.symbol)
        return None


class ActorMatchesPayloadRule(GuardRule):
    """The payload's acting address must be the proposer of the transaction."""

    stage = GuardStage.AUTHORIZATION
    actions = VALUE_ACTIONS | OWNERSHIP_ACTIONS | _kinds(TokenAction.CREATE)

    def __init__(self):
        super().__init__("actor_matches_payload", "Payload sender is the proposer")

    def check(self, state, request):
        for key in ("from", "owner"):
            sender = request.payload.get(key)
            if sender is not None and sender != request.actor:
                return NotAllowedError(
                    f"{request.kind} payload names {sender} but was proposed by {request.actor}",
                    key=key,
                )
        return None


class OwnerRule(GuardRule):
    stage = GuardStage.AUTHORIZATION
    actions = _kinds(TokenAction.MINT, TokenAction.TRANSFER_OWNERSHIP)

    def __init__(self):
        super().__init__("owner", "Only the token owner may mint or offer ownership")

    def check(self, state, request):
        if request.actor != state.token.owner:
            return NotAllowedError(
                f"{request.actor} is not the owner of {request.symbol}",
                owner=state.token.owner,
            )
        return None


class OffereeRule(GuardRule):
    stage = GuardStage.AUTHORIZATION
    actions = _kinds(TokenAction.ACCEPT_OWNERSHIP)

    def __init__(self):
        super().__init__("offeree", "Only the pending offeree may accept ownership")

    def check(self, state, request):
        token = state.token
        if not token.has_pending_offer:
            return NotAllowedError(f"{request.symbol} has no pending ownership offer")
        if request.actor != token.new_owner:
            return NotAllowedError(
                f"{request.actor} is not the pending owner of {request.symbol}",
                new_owner=token.new_owner,
            )
        return None


class ProposerRoleRule(GuardRule):
    stage = GuardStage.AUTHORIZATION
    actions = STATUS_KINDS

    def __init__(self, roles: GovernanceRoles):
        super().__init__("proposer_role", "Status actions are proposed by a governance proposer")
        self.roles = roles

    def check(self, state, request):
        if not self.roles.is_proposer(request.actor):
            return NotAllowedError(f"{request.actor} may not propose {request.kind}")
        return None


# Idempotency

class SymbolAvailableRule(GuardRule):
    stage = GuardStage.IDEMPOTENCY
    actions = _kinds(TokenAction.CREATE)

    def __init__(self):
        super().__init__("symbol_available", "A symbol identifies at most one token")

    def check(self, state, request):
        if state.token is not None:
            return ExistsError(f"token {request.symbol} already exists", symbol=request.symbol)
        return None


class StatusIdempotencyRule(GuardRule):
    """Re-applying a status the resource already has is rejected, not absorbed."""

    stage = GuardStage.IDEMPOTENCY
    actions = STATUS_KINDS

    def __init__(self):
        super().__init__("status_idempotency", "Status actions must change the status")

    def check(self, state, request):
        token = state.token
        kind = StatusKind(request.kind)

        if kind == StatusKind.APPROVE and token.approved:
            return NotAllowedError(f"{request.symbol} is already approved")
        if kind == StatusKind.FREEZE and token.frozen:
            return NotAllowedError(f"{request.symbol} is already frozen")
        if kind == StatusKind.UNFREEZE and not token.frozen:
            return NotAllowedError(f"{request.symbol} is not frozen")
        if kind == StatusKind.APPROVE_OWNERSHIP_TRANSFER and token.ownership_approved:
            return ExistsError(f"ownership transfer of {request.symbol} is already approved")

        if kind.is_account_status:
            account = state.account(request.symbol, request.target)
            if kind == StatusKind.FREEZE_ACCOUNT and account.frozen:
                return NotAllowedError(f"account {request.target} is already frozen")
            if kind == StatusKind.UNFREEZE_ACCOUNT and not account.frozen:
                return NotAllowedError(f"account {request.target} is not frozen")
        return None


class PendingOfferRule(GuardRule):
    stage = GuardStage.IDEMPOTENCY
    actions = _kinds(TokenAction.TRANSFER_OWNERSHIP)

    def __init__(self):
        super().__init__("pending_offer", "An ownership offer must name a new offeree")

    def check(self, state, request):
        token = state.token
        if request.target == token.owner:
            return NotAllowedError(f"{request.target} already owns {request.symbol}")
        if request.target == token.new_owner:
            return NotAllowedError(f"ownership of {request.symbol} is already offered to {request.target}")
        return None


# Policy

class AmountRule(GuardRule):
    """
    Negative amounts fail locally with NOT_ALLOWED.

    A ledger node that receives a negative transfer reports
    UNEXPECTED_RESULT instead, so callers comparing local and node-side
    rejections see different codes for the same input.
    """

    stage = GuardStage.POLICY
    actions = VALUE_ACTIONS | _kinds(TokenAction.CREATE)

    def __init__(self):
        super().__init__("amount", "Amounts cannot be negative")

    def check(self, state, request):
        if request.amount is not None and request.amount < 0:
            return NotAllowedError(f"negative amount {request.amount}", amount=request.amount)
        return None


class TokenActiveRule(GuardRule):
    """Everything except approval requires an approved token; value and ownership moves need it unfrozen."""

    stage = GuardStage.POLICY
    actions = VALUE_ACTIONS | OWNERSHIP_ACTIONS | (STATUS_KINDS - _kinds(StatusKind.APPROVE))

    def __init__(self):
        super().__init__("token_active", "Token must be approved and not frozen")

    def check(self, state, request):
        token = state.token
        if not token.approved:
            return NotAllowedError(f"{request.symbol} is not approved")
        if token.frozen and request.kind in VALUE_ACTIONS | OWNERSHIP_ACTIONS:
            return NotAllowedError(f"{request.symbol} is frozen")
        return None


class AccountFrozenRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(TokenAction.TRANSFER, TokenAction.BURN)

    def __init__(self):
        super().__init__("account_frozen", "Frozen accounts cannot send or receive")

    def check(self, state, request):
        if state.account(request.symbol, request.actor).frozen:
            return NotAllowedError(f"account {request.actor} is frozen")
        if request.kind == TokenAction.TRANSFER.value:
            if state.account(request.symbol, request.target).frozen:
                return NotAllowedError(f"account {request.target} is frozen")
        return None


class SupplyPolicyRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(TokenAction.MINT)

    def __init__(self):
        super().__init__("supply_policy", "Fixed-supply tokens cannot be minted; dynamic supply is capped")

    def check(self, state, request):
        token = state.token
        if token.fixed_supply:
            return NotAllowedError(f"{request.symbol} has a fixed supply")
        # a zero cap means the supply is unbounded
        if token.max_supply and token.total_supply + request.amount > token.max_supply:
            return NotAllowedError(
                f"minting {request.amount} exceeds the maximum supply of {request.symbol}",
                total_supply=token.total_supply,
                max_supply=token.max_supply,
            )
        return None


class BurnableRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(TokenAction.BURN)

    def __init__(self):
        super().__init__("burnable", "Only burnable tokens can be burned")

    def check(self, state, request):
        if not state.token.burnable:
            return NotAllowedError(f"{request.symbol} is not burnable")
        return None


class BalanceRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(TokenAction.BURN, TokenAction.TRANSFER)

    def __init__(self):
        super().__init__("balance", "Amount cannot exceed the sender balance")

    def check(self, state, request):
        balance = state.account(request.symbol, request.actor).balance
        if request.amount > balance:
            return InsufficientFundsError(
                f"{request.actor} holds {balance} {request.symbol}, needs {request.amount}",
                required=request.amount,
                available=balance,
            )
        return None


class OwnershipApprovalRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(TokenAction.ACCEPT_OWNERSHIP)

    def __init__(self, roles: GovernanceRoles):
        super().__init__("ownership_approval", "Ownership acceptance may require governance approval")
        self.roles = roles

    def check(self, state, request):
        if self.roles.require_ownership_approval and not state.token.ownership_approved:
            return NotAllowedError(f"ownership transfer of {request.symbol} is not approved")
        return None


class OfferRequiredRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(StatusKind.APPROVE_OWNERSHIP_TRANSFER)

    def __init__(self):
        super().__init__("offer_required", "Only a pending ownership offer can be approved")

    def check(self, state, request):
        if not state.token.has_pending_offer:
            return NotAllowedError(f"{request.symbol} has no pending ownership offer")
        return None


class FeeScheduleRule(GuardRule):
    stage = GuardStage.POLICY
    actions = _kinds(StatusKind.APPROVE)

    def __init__(self):
        super().__init__("fee_schedule", "Approval must map every chargeable action to a fee")

    def required_actions(self, state: LifecycleState, request: ActionRequest) -> List[str]:
        token = state.token
        burnable = token.burnable if request.burnable is None else request.burnable
        required = list(BASE_FEE_ACTIONS)
        if burnable:
            required.append(TokenAction.BURN.value)
        return required

    def check(self, state, request):
        missing = [
            action for action in self.required_actions(state, request)
            if not request.token_fees.get(action)
        ]
        if missing:
            return MissingFeesError(
                f"fee schedule for {request.symbol} is missing {', '.join(missing)}",
                missing=missing,
            )
        return None


def default_rules(roles: GovernanceRoles) -> List[GuardRule]:
    """Build the standard guard set, in evaluation order within each stage."""
    return [
        TokenExistsRule(),
        ActorMatchesPayloadRule(),
        OwnerRule(),
        OffereeRule(),
        ProposerRoleRule(roles),
        SymbolAvailableRule(),
        StatusIdempotencyRule(),
        PendingOfferRule(),
        AmountRule(),
        TokenActiveRule(),
        AccountFrozenRule(),
        SupplyPolicyRule(),
        BurnableRule(),
        BalanceRule(),
        OwnershipApprovalRule(roles),
        OfferRequiredRule(),
        FeeScheduleRule(),
    ]


def order_rules(rules: Iterable[GuardRule]) -> List[GuardRule]:
    """Stable sort by stage, keeping registration order inside a stage."""
    return sorted(rules, key=lambda rule: rule.stage)
