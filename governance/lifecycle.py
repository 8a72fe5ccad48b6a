"""
Fungible Token Governance - Lifecycle State Machine

The lifecycle decides whether an action is legal against the current token
state and computes the state it leads to. Every transition is a total
function ``(state, request) -> TransitionResult``: guard rules run in stage
order (authorization, idempotency, policy) and the first failing rule
determines the reported error. Successful transitions return a new
``LifecycleState``; snapshots are never patched in place.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from errors import NotAllowedError, TokenError
from registry.schema import TokenState

from .actions import (
    ActionRequest,
    LifecycleState,
    StatusKind,
    TokenAction,
    ACTION_SCHEMAS,
)
from .roles import GovernanceRoles
from .rules import GuardRule, default_rules, order_rules


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of evaluating one action."""
    allowed: bool
    state: Optional[LifecycleState] = None
    error: Optional[TokenError] = None
    failed_rule: Optional[str] = None

    def unwrap(self) -> LifecycleState:
        if self.error is not None:
            raise self.error
        return self.state


class GovernanceLifecycle:
    """
    Guarded state machine for one token resource.

    The same instance can be shared by every token of a session; it holds
    no per-token state of its own.
    """

    def __init__(self, roles: Optional[GovernanceRoles] = None,
                 rules: Optional[List[GuardRule]] = None):
        """
        Initialize the lifecycle.

        Args:
            roles: Governance role sets (unrestricted when omitted)
            rules: Guard rules replacing the default set
        """
        self.roles = roles or GovernanceRoles()
        self.rules = order_rules(rules if rules is not None else default_rules(self.roles))
        self.logger = logging.getLogger("governance.lifecycle")

        self._transitions: Dict[str, Callable[[LifecycleState, ActionRequest], LifecycleState]] = {
            TokenAction.CREATE.value: self._create,
            TokenAction.MINT.value: self._mint,
            TokenAction.BURN.value: self._burn,
            TokenAction.TRANSFER.value: self._transfer,
            TokenAction.TRANSFER_OWNERSHIP.value: self._transfer_ownership,
            TokenAction.ACCEPT_OWNERSHIP.value: self._accept_ownership,
            StatusKind.APPROVE.value: self._approve,
            StatusKind.FREEZE.value: self._set_frozen(True),
            StatusKind.UNFREEZE.value: self._set_frozen(False),
            StatusKind.FREEZE_ACCOUNT.value: self._set_account_frozen(True),
            StatusKind.UNFREEZE_ACCOUNT.value: self._set_account_frozen(False),
            StatusKind.APPROVE_OWNERSHIP_TRANSFER.value: self._approve_ownership_transfer,
        }

        self.stats = {
            "evaluations": 0,
            "allowed": 0,
            "rejected": 0,
        }

    def add_rule(self, rule: GuardRule) -> None:
        self.rules = order_rules(self.rules + [rule])

    def evaluate(self, state: LifecycleState, request: ActionRequest) -> TransitionResult:
        """
        Evaluate an action without raising.

        Args:
            state: Current token and account states
            request: Decoded action request

        Returns:
            TransitionResult with either the next state or the first guard error
        """
        self.stats["evaluations"] += 1

        if request.kind not in ACTION_SCHEMAS:
            self.stats["rejected"] += 1
            return TransitionResult(False, error=NotAllowedError(f"unknown action {request.kind!r}"))

        for rule in self.rules:
            if not rule.is_applicable(request):
                continue
            error = rule.check(state, request)
            if error is not None:
                self.stats["rejected"] += 1
                self.logger.debug(f"{request.kind} on {request.symbol} rejected by {rule.name}: {error}")
                return TransitionResult(False, error=error, failed_rule=rule.name)
            rule.logger.debug(f"{request.kind} on {request.symbol} passed")

        next_state = self._transitions[request.kind](state, request)
        self.stats["allowed"] += 1
        return TransitionResult(True, state=next_state)

    def check(self, state: LifecycleState, request: ActionRequest) -> None:
        """Raise the first guard error, if any."""
        result = self.evaluate(state, request)
        if result.error is not None:
            raise result.error

    def apply(self, state: LifecycleState, request: ActionRequest) -> LifecycleState:
        """Evaluate and return the next state, raising on rejection."""
        return self.evaluate(state, request).unwrap()

    # Transitions

    @staticmethod
    def _with_account(state: LifecycleState, token: TokenState,
                      address: str, **changes) -> LifecycleState:
        accounts = dict(state.accounts)
        accounts[address] = state.account(token.symbol, address).evolve(**changes)
        return LifecycleState(token=token, accounts=accounts)

    def _create(self, state, request):
        payload = request.payload
        fixed_supply = bool(payload["fixedSupply"])
        max_supply = request.amount or 0
        token = TokenState(
            name=payload["name"],
            symbol=request.symbol,
            owner=request.actor,
            decimals=int(payload["decimals"]),
            total_supply=max_supply if fixed_supply else 0,
            max_supply=max_supply,
            fixed_supply=fixed_supply,
            metadata=payload.get("metadata", ""),
        )
        if fixed_supply:
            # the whole fixed supply is issued to the creator
            return self._with_account(state, token, request.actor, balance=max_supply)
        return LifecycleState(token=token, accounts=dict(state.accounts))

    def _mint(self, state, request):
        token = state.token.evolve(total_supply=state.token.total_supply + request.amount)
        balance = state.account(request.symbol, request.target).balance
        return self._with_account(state, token, request.target, balance=balance + request.amount)

    def _burn(self, state, request):
        token = state.token.evolve(total_supply=state.token.total_supply - request.amount)
        balance = state.account(request.symbol, request.actor).balance
        return self._with_account(state, token, request.actor, balance=balance - request.amount)

    def _transfer(self, state, request):
        sender = state.account(request.symbol, request.actor)
        moved = self._with_account(state, state.token, request.actor,
                                   balance=sender.balance - request.amount)
        receiver = moved.account(request.symbol, request.target)
        return self._with_account(moved, state.token, request.target,
                                  balance=receiver.balance + request.amount)

    def _transfer_ownership(self, state, request):
        # a new offer replaces any unaccepted one, and its approval
        token = state.token.evolve(new_owner=request.target, ownership_approved=False)
        return LifecycleState(token=token, accounts=dict(state.accounts))

    def _accept_ownership(self, state, request):
        token = state.token.evolve(owner=request.actor, new_owner=None, ownership_approved=False)
        return LifecycleState(token=token, accounts=dict(state.accounts))

    def _approve(self, state, request):
        changes = {"approved": True, "token_fees": dict(request.token_fees)}
        if request.burnable is not None:
            changes["burnable"] = request.burnable
        return LifecycleState(token=state.token.evolve(**changes), accounts=dict(state.accounts))

    def _approve_ownership_transfer(self, state, request):
        token = state.token.evolve(ownership_approved=True)
        return LifecycleState(token=token, accounts=dict(state.accounts))

    @staticmethod
    def _set_frozen(frozen: bool):
        def transition(state, request):
            return LifecycleState(token=state.token.evolve(frozen=frozen), accounts=dict(state.accounts))
        return transition

    def _set_account_frozen(self, frozen: bool):
        def transition(state, request):
            return self._with_account(state, state.token, request.target, frozen=frozen)
        return transition
