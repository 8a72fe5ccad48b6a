"""
Fungible Token Governance - Actions

Action kinds, the status-action variants, the decoded ``ActionRequest``
and the ``LifecycleState`` the lifecycle guards evaluate it against. A
request is always decoded from a canonicalized transaction payload, so
guards see exactly what will be signed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from errors import InvalidFormatError
from registry.schema import AccountState, TokenState
from transaction.builder import Transaction
from validator.checkers import parse_big_number
from validator.core import Schema
from validator.schemas import (
    ACCEPT_OWNERSHIP_SCHEMA,
    ACCOUNT_STATUS_SCHEMA,
    BURN_SCHEMA,
    CREATE_TOKEN_SCHEMA,
    MINT_SCHEMA,
    STATUS_SCHEMA,
    TRANSFER_OWNERSHIP_SCHEMA,
    TRANSFER_SCHEMA,
)


class TokenAction(str, Enum):
    """Ordinary token operations."""
    CREATE = "create"
    MINT = "mint"
    BURN = "burn"
    TRANSFER = "transfer"
    TRANSFER_OWNERSHIP = "transferOwnership"
    ACCEPT_OWNERSHIP = "acceptOwnership"


class StatusKind(str, Enum):
    """Governance status actions."""
    APPROVE = "approve"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"
    FREEZE_ACCOUNT = "freezeAccount"
    UNFREEZE_ACCOUNT = "unfreezeAccount"
    APPROVE_OWNERSHIP_TRANSFER = "approveOwnershipTransfer"

    @property
    def wire_status(self) -> str:
        return _WIRE_STATUS[self]

    @property
    def is_account_status(self) -> bool:
        return self in (StatusKind.FREEZE_ACCOUNT, StatusKind.UNFREEZE_ACCOUNT)


_WIRE_STATUS = {
    StatusKind.APPROVE: "APPROVE",
    StatusKind.FREEZE: "FREEZE",
    StatusKind.UNFREEZE: "UNFREEZE",
    StatusKind.FREEZE_ACCOUNT: "FREEZE_ACCOUNT",
    StatusKind.UNFREEZE_ACCOUNT: "UNFREEZE_ACCOUNT",
    StatusKind.APPROVE_OWNERSHIP_TRANSFER: "APPROVE_TRANSFER_OWNERSHIP",
}

STATUS_KINDS = frozenset(kind.value for kind in StatusKind)

ACTION_SCHEMAS: Dict[str, Schema] = {
    TokenAction.CREATE.value: CREATE_TOKEN_SCHEMA,
    TokenAction.MINT.value: MINT_SCHEMA,
    TokenAction.BURN.value: BURN_SCHEMA,
    TokenAction.TRANSFER.value: TRANSFER_SCHEMA,
    TokenAction.TRANSFER_OWNERSHIP.value: TRANSFER_OWNERSHIP_SCHEMA,
    TokenAction.ACCEPT_OWNERSHIP.value: ACCEPT_OWNERSHIP_SCHEMA,
    StatusKind.APPROVE.value: STATUS_SCHEMA,
    StatusKind.FREEZE.value: STATUS_SCHEMA,
    StatusKind.UNFREEZE.value: STATUS_SCHEMA,
    StatusKind.APPROVE_OWNERSHIP_TRANSFER.value: STATUS_SCHEMA,
    StatusKind.FREEZE_ACCOUNT.value: ACCOUNT_STATUS_SCHEMA,
    StatusKind.UNFREEZE_ACCOUNT.value: ACCOUNT_STATUS_SCHEMA,
}


def is_status_kind(kind: str) -> bool:
    return kind in STATUS_KINDS


def schema_for(kind: str) -> Schema:
    """Return the payload schema registered for an action kind."""
    try:
        return ACTION_SCHEMAS[kind]
    except KeyError:
        raise InvalidFormatError(
            f"invalid format object key kind: unknown action {kind!r}",
            key="kind",
            value=kind,
        )


@dataclass(frozen=True)
class StatusAction:
    """
    A governance status action on one token.

    ``token_fees`` and ``burnable`` only apply to ``approve``; ``target``
    only applies to the account-status variants.
    """
    kind: StatusKind
    symbol: str
    token_fees: Tuple[Tuple[str, str], ...] = ()
    burnable: Optional[bool] = None
    target: Optional[str] = None

    @classmethod
    def approve(cls, symbol: str, token_fees: Dict[str, str],
                burnable: Optional[bool] = None) -> "StatusAction":
        return cls(StatusKind.APPROVE, symbol, tuple(token_fees.items()), burnable)

    @classmethod
    def freeze(cls, symbol: str) -> "StatusAction":
        return cls(StatusKind.FREEZE, symbol)

    @classmethod
    def unfreeze(cls, symbol: str) -> "StatusAction":
        return cls(StatusKind.UNFREEZE, symbol)

    @classmethod
    def freeze_account(cls, symbol: str, target: str) -> "StatusAction":
        return cls(StatusKind.FREEZE_ACCOUNT, symbol, target=target)

    @classmethod
    def unfreeze_account(cls, symbol: str, target: str) -> "StatusAction":
        return cls(StatusKind.UNFREEZE_ACCOUNT, symbol, target=target)

    @classmethod
    def approve_ownership_transfer(cls, symbol: str) -> "StatusAction":
        return cls(StatusKind.APPROVE_OWNERSHIP_TRANSFER, symbol)

    def to_intent(self) -> Dict[str, Any]:
        """Raw intent for the transaction builder."""
        intent: Dict[str, Any] = {"symbol": self.symbol, "status": self.kind.wire_status}
        if self.kind.is_account_status:
            intent["target"] = self.target
            return intent
        if self.kind == StatusKind.APPROVE:
            intent["tokenFees"] = [
                {"action": action, "feeName": fee_name}
                for action, fee_name in self.token_fees
            ]
            intent["burnable"] = self.burnable
        return intent


@dataclass(frozen=True)
class ActionRequest:
    """Decoded view of a transaction, as evaluated by the lifecycle guards."""
    kind: str
    symbol: str
    actor: str
    payload: Dict[str, Any] = field(default_factory=dict)
    amount: Optional[int] = None
    target: Optional[str] = None
    token_fees: Dict[str, str] = field(default_factory=dict)
    burnable: Optional[bool] = None

    @property
    def is_status(self) -> bool:
        return is_status_kind(self.kind)

    def addresses(self) -> List[str]:
        """Accounts whose per-account state the guards need."""
        addresses = [self.actor]
        if self.target and self.target not in addresses:
            addresses.append(self.target)
        return addresses

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "ActionRequest":
        return cls.from_payload(transaction.kind, transaction.payload, transaction.proposer)

    @classmethod
    def from_payload(cls, kind: str, payload: Dict[str, Any], actor: str) -> "ActionRequest":
        schema_for(kind)

        if is_status_kind(kind):
            expected = StatusKind(kind).wire_status
            if payload.get("status") != expected:
                raise InvalidFormatError(
                    f"invalid format object key status: expected {expected}",
                    key="status",
                    value=payload.get("status"),
                    obj=payload,
                )

        amount = None
        for amount_key in ("value", "maxSupply"):
            if amount_key in payload:
                amount = int(parse_big_number(payload[amount_key]))
                break

        token_fees = {
            entry["action"]: entry["feeName"]
            for entry in payload.get("tokenFees") or []
        }

        return cls(
            kind=kind,
            symbol=payload["symbol"],
            actor=actor,
            payload=payload,
            amount=amount,
            target=payload.get("to") or payload.get("target"),
            token_fees=token_fees,
            burnable=payload.get("burnable"),
        )


@dataclass(frozen=True)
class LifecycleState:
    """
    Token snapshot plus the per-account states an action touches.

    ``token`` is None only while evaluating creation of an unknown symbol.
    """
    token: Optional[TokenState]
    accounts: Dict[str, AccountState] = field(default_factory=dict)

    def account(self, symbol: str, address: str) -> AccountState:
        existing = self.accounts.get(address)
        if existing is not None:
            return existing
        return AccountState(symbol=symbol, owner=address)
