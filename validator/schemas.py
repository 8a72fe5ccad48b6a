"""
Fungible Token Governance - Wire Schemas

Schemas for every payload that crosses the Provider boundary. Inbound
schemas sanitize ledger responses (token state, account state, receipts);
outbound schemas validate transaction intents before they are canonicalized
and signed. Field names follow the ledger's camelCase wire format.
"""

from .core import Nested, Schema
from .checkers import (
    allow_null,
    allow_null_or_empty,
    array_of,
    check_address,
    check_any,
    check_big_number,
    check_boolean,
    check_hash,
    check_number,
    check_string,
)


FEE_DESCRIPTOR_SCHEMA = Schema({
    "to": check_address,
    "value": check_big_number,
})

FEE_SETTING_SCHEMA = Schema({
    "action": check_string,
    "feeName": check_string,
})

TRANSACTION_FEE_SCHEMA = Schema({
    "denom": check_string,
    "amount": check_big_number,
})


# Inbound

TOKEN_PROPERTIES_SCHEMA = Schema({
    "name": check_string,
    "symbol": check_string,
    "decimals": check_number,
    "fixedSupply": check_boolean,
    "maxSupply": check_big_number,
    "fee": FEE_DESCRIPTOR_SCHEMA,
    "metadata": allow_null(check_string, ""),
})

TOKEN_STATE_SCHEMA = Schema({
    "name": allow_null(check_string, ""),
    "symbol": check_string,
    "owner": check_address,
    "newOwner": allow_null_or_empty(check_address),
    "decimals": check_number,
    "totalSupply": check_big_number,
    "maxSupply": allow_null(check_big_number, 0),
    "fixedSupply": check_boolean,
    "approved": allow_null(check_boolean, False),
    "frozen": allow_null(check_boolean, False),
    "burnable": allow_null(check_boolean, False),
    "ownershipApproved": allow_null(check_boolean, False),
    "tokenFees": allow_null(array_of(FEE_SETTING_SCHEMA.as_checker())),
    "metadata": allow_null(check_string, ""),
})

ACCOUNT_STATE_SCHEMA = Schema({
    "symbol": check_string,
    "owner": check_address,
    "balance": check_big_number,
    "frozen": allow_null(check_boolean, False),
})

RECEIPT_SCHEMA = Schema({
    "hash": check_hash,
    "status": check_number,
    "blockNumber": allow_null(check_number),
    "logs": allow_null(array_of(check_any)),
})


# Outbound

CREATE_TOKEN_SCHEMA = Schema({
    "owner": check_address,
    "name": check_string,
    "symbol": check_string,
    "decimals": check_number,
    "fixedSupply": check_boolean,
    "maxSupply": check_big_number,
    "fee": FEE_DESCRIPTOR_SCHEMA,
    "metadata": allow_null(check_string, ""),
})

TRANSFER_SCHEMA = Schema({
    "symbol": check_string,
    "from": check_address,
    "to": check_address,
    "value": check_big_number,
    "memo": allow_null_or_empty(check_string),
})

MINT_SCHEMA = Schema({
    "symbol": check_string,
    "owner": check_address,
    "to": check_address,
    "value": check_big_number,
})

BURN_SCHEMA = Schema({
    "symbol": check_string,
    "from": check_address,
    "value": check_big_number,
})

TRANSFER_OWNERSHIP_SCHEMA = Schema({
    "symbol": check_string,
    "from": check_address,
    "to": check_address,
})

ACCEPT_OWNERSHIP_SCHEMA = Schema({
    "symbol": check_string,
    "from": check_address,
})

STATUS_SCHEMA = Schema({
    "symbol": check_string,
    "status": check_string,
    "burnable": allow_null(check_boolean),
    "tokenFees": allow_null(array_of(FEE_SETTING_SCHEMA.as_checker())),
})

ACCOUNT_STATUS_SCHEMA = Schema({
    "symbol": check_string,
    "status": check_string,
    "target": check_address,
})

TRANSACTION_ENVELOPE_SCHEMA = Schema({
    "kind": check_string,
    "payload": check_any,
    "payloadHash": lambda value: check_hash(value, require_prefix=True),
    "proposer": check_address,
    "fee": Nested(TRANSACTION_FEE_SCHEMA, allow_null=True),
})
