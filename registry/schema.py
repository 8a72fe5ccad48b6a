"""
Fungible Token Governance - Registry Schema Models

This module defines the Pydantic models for token creation properties and
for the server-confirmed token and account state snapshots held in the
client cache. Every model is immutable: a snapshot is replaced wholesale on
refresh, never patched in place.
"""

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import InvalidFormatError
from validator.checkers import BigNumber
from validator.core import check_format
from validator.schemas import (
    ACCOUNT_STATE_SCHEMA,
    TOKEN_PROPERTIES_SCHEMA,
    TOKEN_STATE_SCHEMA,
)


SYMBOL_PATTERN = re.compile(r'^[A-Za-z0-9]+$')


def _from_wire(model, schema, raw):
    """Run the format validator, then the model's own field constraints."""
    sanitized = check_format(schema, raw)
    try:
        return model.model_validate(sanitized)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise InvalidFormatError(
            f"invalid format object key {key}: {first['msg']}",
            key=key,
            value=first.get("input"),
            obj=raw,
        ) from e


class FeeDescriptor(BaseModel):
    """Creation fee paid to the fee collector."""

    model_config = ConfigDict(frozen=True)

    to: str = Field(..., min_length=1, description="Fee collector address")
    value: int = Field(..., ge=0, description="Fee amount")


class FeeSetting(BaseModel):
    """Mapping of a token action onto a named fee schedule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str = Field(..., min_length=1)
    fee_name: str = Field(..., alias="feeName", min_length=1)

    def to_wire(self) -> Dict[str, str]:
        return {"action": self.action, "feeName": self.fee_name}


class TokenProperties(BaseModel):
    """Immutable creation intent for a fungible token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=40)
    decimals: int = Field(..., ge=0, le=18)
    fixed_supply: bool = Field(..., alias="fixedSupply")
    max_supply: int = Field(..., alias="maxSupply", ge=0)
    fee: FeeDescriptor
    metadata: str = Field(default="")

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        """Validate symbol format."""
        if not SYMBOL_PATTERN.match(v):
            raise ValueError('Symbol must contain only letters and numbers')
        return v

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "TokenProperties":
        """Validate raw properties through the format validator first."""
        return _from_wire(cls, TOKEN_PROPERTIES_SCHEMA, raw)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "fixedSupply": self.fixed_supply,
            "maxSupply": BigNumber(self.max_supply),
            "fee": {"to": self.fee.to, "value": BigNumber(self.fee.value)},
            "metadata": self.metadata,
        }


class TokenState(BaseModel):
    """Server-confirmed snapshot of a token resource."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(default="")
    symbol: str
    owner: str
    new_owner: Optional[str] = Field(default=None, alias="newOwner",
                                     description="Pending ownership offeree")
    decimals: int = Field(..., ge=0)
    total_supply: int = Field(..., alias="totalSupply", ge=0)
    max_supply: int = Field(default=0, alias="maxSupply", ge=0)
    fixed_supply: bool = Field(..., alias="fixedSupply")
    approved: bool = Field(default=False)
    frozen: bool = Field(default=False)
    burnable: bool = Field(default=False)
    ownership_approved: bool = Field(default=False, alias="ownershipApproved")
    token_fees: Dict[str, str] = Field(default_factory=dict, alias="tokenFees")
    metadata: str = Field(default="")

    @field_validator('token_fees', mode='before')
    @classmethod
    def normalize_token_fees(cls, v):
        """Accept the wire list of ``{action, feeName}`` entries."""
        if v is None:
            return {}
        if isinstance(v, list):
            fees = {}
            for entry in v:
                setting = entry if isinstance(entry, FeeSetting) else FeeSetting.model_validate(entry)
                fees[setting.action] = setting.fee_name
            return fees
        return v

    @property
    def has_pending_offer(self) -> bool:
        return self.new_owner is not None

    def fee_for(self, action: str) -> Optional[str]:
        return self.token_fees.get(action)

    def evolve(self, **changes: Any) -> "TokenState":
        """Return a new snapshot with ``changes`` applied."""
        return self.model_copy(update=changes)

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "TokenState":
        """Sanitize a node response and build the snapshot."""
        return _from_wire(cls, TOKEN_STATE_SCHEMA, raw)

    def to_wire(self) -> Dict[str, Any]:
        wire = {
            "name": self.name,
            "symbol": self.symbol,
            "owner": self.owner,
            "decimals": self.decimals,
            "totalSupply": BigNumber(self.total_supply),
            "maxSupply": BigNumber(self.max_supply),
            "fixedSupply": self.fixed_supply,
            "approved": self.approved,
            "frozen": self.frozen,
            "burnable": self.burnable,
            "ownershipApproved": self.ownership_approved,
            "tokenFees": [
                {"action": action, "feeName": fee_name}
                for action, fee_name in self.token_fees.items()
            ],
            "metadata": self.metadata,
        }
        if self.new_owner is not None:
            wire["newOwner"] = self.new_owner
        return wire


class AccountState(BaseModel):
    """Per-account balance and status for one token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str
    address: str = Field(..., alias="owner")
    balance: int = Field(default=0, ge=0)
    frozen: bool = Field(default=False)

    def evolve(self, **changes: Any) -> "AccountState":
        return self.model_copy(update=changes)

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "AccountState":
        return _from_wire(cls, ACCOUNT_STATE_SCHEMA, raw)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "owner": self.address,
            "balance": BigNumber(self.balance),
            "frozen": self.frozen,
        }
