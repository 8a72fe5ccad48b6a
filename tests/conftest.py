"""
Pytest configuration and fixtures for ftgov tests.
"""

import pytest
from typing import Dict, List, Optional, Tuple

from assets.fungible import FungibleToken
from crypto.keys import ADDRESS_PREFIX, PrivateKey
from crypto.signer import LocalSigner
from errors import ExistsError, MissingFeesError, UnexpectedResultError
from governance.actions import ActionRequest, LifecycleState, StatusKind, TokenAction
from governance.lifecycle import GovernanceLifecycle
from network.provider import Provider
from registry.schema import AccountState, TokenState
from registry.session import TokenSession
from transaction.builder import Receipt, SignedTransaction
from validator.checkers import BigNumber


class InMemoryLedger(Provider):
    """
    Provider fake holding ledger state in memory.

    Applies the same lifecycle the client uses and adds the node-side
    behaviors the client only ever sees as errors: unknown fee names,
    unresolvable addresses and duplicate symbols.
    """

    def __init__(self, fee_names=("default",), address_prefix: str = ADDRESS_PREFIX):
        self.fee_names = set(fee_names)
        self.address_prefix = address_prefix
        self.lifecycle = GovernanceLifecycle()
        self.tokens: Dict[str, TokenState] = {}
        self.accounts: Dict[Tuple[str, str], AccountState] = {}
        self.submitted: List[SignedTransaction] = []
        self.fail_next_submit = False
        self.query_count = 0
        self.block_number = 0

    async def query(self, symbol: str) -> Optional[TokenState]:
        self.query_count += 1
        return self.tokens.get(symbol)

    async def query_account(self, symbol: str, address: str) -> AccountState:
        return self.accounts.get((symbol, address), AccountState(symbol=symbol, owner=address))

    async def estimate_fee(self, action_kind, params):
        return {"denom": "cin", "amount": BigNumber(400000000000000000)}

    async def submit(self, signed: SignedTransaction) -> Receipt:
        transaction = signed.transaction
        self.submitted.append(signed)
        self.block_number += 1

        if self.fail_next_submit:
            self.fail_next_submit = False
            return Receipt(hash=transaction.payload_hash, status=0, block_number=self.block_number)

        request = ActionRequest.from_transaction(transaction)

        if request.kind == TokenAction.CREATE.value and request.symbol in self.tokens:
            raise ExistsError(f"token {request.symbol} already exists")
        if request.target is not None and not request.target.startswith(self.address_prefix):
            raise UnexpectedResultError(f"unresolvable account {request.target}")
        if request.kind == StatusKind.APPROVE.value:
            unknown = set(request.token_fees.values()) - self.fee_names
            if unknown:
                raise MissingFeesError(f"unknown fee names: {', '.join(sorted(unknown))}")

        state = LifecycleState(
            token=self.tokens.get(request.symbol),
            accounts={
                address: self.accounts[(request.symbol, address)]
                for address in request.addresses()
                if (request.symbol, address) in self.accounts
            },
        )
        next_state = self.lifecycle.apply(state, request)

        self.tokens[request.symbol] = next_state.token
        for address, account in next_state.accounts.items():
            self.accounts[(request.symbol, address)] = account

        return Receipt(
            hash=transaction.payload_hash,
            status=1,
            block_number=self.block_number,
            logs=[{"kind": transaction.kind}],
        )


def make_signer(seed: int) -> LocalSigner:
    return LocalSigner(PrivateKey(bytes([seed]) * 32))


def fee_schedule(fixed_supply: bool = True, burnable: bool = False,
                 fee_name: str = "default") -> Dict[str, str]:
    """A complete action-to-fee mapping for a token of the given kind."""
    fees = {
        "transfer": fee_name,
        "transferOwnership": fee_name,
        "acceptOwnership": fee_name,
    }
    if burnable:
        fees["burn"] = fee_name
    if not fixed_supply:
        fees["mint"] = fee_name
    return fees


@pytest.fixture
def issuer():
    return make_signer(1)


@pytest.fixture
def governor():
    """Governance proposer that builds status actions."""
    return make_signer(2)


@pytest.fixture
def middleware():
    """Relayer that submits status actions."""
    return make_signer(3)


@pytest.fixture
def wallet():
    return make_signer(4)


@pytest.fixture
def fee_collector():
    return make_signer(5)


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def session(ledger):
    return TokenSession(ledger)


@pytest.fixture
def token_properties(fee_collector):
    def build(symbol: str = "FIX1", fixed_supply: bool = True,
              max_supply: int = 10 ** 26) -> Dict:
        return {
            "name": f"{symbol} token",
            "symbol": symbol,
            "decimals": 18,
            "fixedSupply": fixed_supply,
            "maxSupply": max_supply,
            "fee": {"to": fee_collector.address, "value": 1},
            "metadata": "",
        }
    return build


@pytest.fixture
def perform_status(session, issuer, middleware):
    """Run a status action through proposer, issuer counter-signature and relayer."""
    async def perform(propose, *args, refresh: bool = True):
        signed = await propose(session, *args)
        signed = await FungibleToken.sign_status_transaction(session, signed, issuer)
        return await FungibleToken.send_status_transaction(
            session, signed, middleware.address, refresh=refresh
        )
    return perform


@pytest.fixture
def issue_token(session, issuer, governor, token_properties, perform_status):
    """Create and (optionally) approve a token owned by ``issuer``."""
    async def issue(symbol: str = "FIX1", fixed_supply: bool = True, max_supply: int = 10 ** 26,
                    burnable: bool = False, approve: bool = True,
                    token_fees: Optional[Dict[str, str]] = None) -> FungibleToken:
        token = await FungibleToken.create(
            token_properties(symbol, fixed_supply, max_supply), issuer, session
        )
        if approve:
            fees = token_fees if token_fees is not None else fee_schedule(fixed_supply, burnable)
            await perform_status(FungibleToken.approve, symbol, governor, fees, burnable)
        return token
    return issue
