"""
Fungible Token Governance - Fungible Token Client

``FungibleToken`` is the caller-facing facade over one token resource. It
turns method calls into intents and drives them through the session's
authorization relay, so every operation is validated, canonicalized,
guarded by the lifecycle, signed and confirmed before it returns.

Status actions (approve, freeze, ownership-transfer approval, ...) are
multi-party: a proposer builds and signs, further authorizers counter-sign
and a relayer submits. They are exposed as separate class-level helpers so
each principal can run its own step.
"""

import logging
from typing import Any, Callable, Dict, Optional, Union

from crypto.signer import Signer, TransactionLike
from governance.actions import StatusAction, TokenAction
from registry.schema import TokenProperties, TokenState
from registry.session import TokenSession
from transaction.builder import Receipt, SignedTransaction
from transaction.canonical import canonical_json


# Per-call options recognized by every mutating method
OVERRIDE_KEYS = frozenset({
    "fee",
    "memo",
    "refresh",
    "log_signature_payload",
    "log_signed_transaction",
})


class FungibleToken:
    """
    Client handle on one fungible token, bound to a signer and a session.

    Args:
        symbol: Token symbol
        signer: Signer acting for this handle
        session: Session owning the Provider and the state cache
        overrides: Default overrides applied to every mutating call
    """

    def __init__(self, symbol: str, signer: Signer, session: TokenSession,
                 overrides: Optional[Dict[str, Any]] = None):
        self.symbol = symbol
        self.signer = signer
        self.session = session
        self.overrides = dict(overrides or {})
        self.logger = logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"FungibleToken({self.symbol!r}, signer={self.signer.address!r})"

    @property
    def state(self) -> Optional[TokenState]:
        """Last server-confirmed snapshot held by the session."""
        return self.session.cached_state(self.symbol)

    # Construction

    @classmethod
    async def create(cls,
                     properties: Union[TokenProperties, Dict[str, Any]],
                     signer: Signer,
                     session: TokenSession,
                     overrides: Optional[Dict[str, Any]] = None) -> "FungibleToken":
        """
        Issue a new token and return a refreshed handle on it.

        Raises:
            InvalidFormatError: If the properties are malformed
            ExistsError: If the symbol is already taken
        """
        if not isinstance(properties, TokenProperties):
            properties = TokenProperties.from_wire(properties)

        intent = {"owner": signer.address, **properties.to_wire()}
        await cls._perform(session, TokenAction.CREATE.value, intent, signer, dict(overrides or {}))

        token = cls(properties.symbol, signer, session, overrides)
        if session.cached_state(properties.symbol) is None:
            await token.refresh()
        return token

    @classmethod
    async def from_symbol(cls, symbol: str, signer: Signer, session: TokenSession,
                          overrides: Optional[Dict[str, Any]] = None) -> "FungibleToken":
        token = cls(symbol, signer, session, overrides)
        await token.refresh()
        return token

    # Queries

    async def refresh(self) -> TokenState:
        return await self.session.refresh(self.symbol)

    async def get_state(self) -> TokenState:
        """Fetch the latest state from the Provider."""
        return await self.refresh()

    async def get_balance(self, address: Optional[str] = None) -> int:
        account = await self.session.query_account(self.symbol, address or self.signer.address)
        return account.balance

    async def estimate_fee(self, kind: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.session.provider.estimate_fee(kind, params)

    # Mutations

    async def mint(self, to: str, value: Any, overrides: Optional[Dict[str, Any]] = None) -> Receipt:
        intent = {"symbol": self.symbol, "owner": self.signer.address, "to": to, "value": value}
        return await self._submit(TokenAction.MINT.value, intent, overrides)

    async def burn(self, value: Any, overrides: Optional[Dict[str, Any]] = None) -> Receipt:
        intent = {"symbol": self.symbol, "from": self.signer.address, "value": value}
        return await self._submit(TokenAction.BURN.value, intent, overrides)

    async def transfer(self, to: str, value: Any, overrides: Optional[Dict[str, Any]] = None) -> Receipt:
        """
        Transfer tokens from the signer to ``to``.

        Overrides:
            fee: ``{denom, amount}`` transaction fee, e.g. from ``estimate_fee``
            memo: Free text carried in the signed payload
        """
        options = self._options(overrides)
        intent = {
            "symbol": self.symbol,
            "from": self.signer.address,
            "to": to,
            "value": value,
            "memo": options.get("memo"),
        }
        return await self._submit(TokenAction.TRANSFER.value, intent, options)

    async def transfer_ownership(self, new_owner: str,
                                 overrides: Optional[Dict[str, Any]] = None) -> Receipt:
        intent = {"symbol": self.symbol, "from": self.signer.address, "to": new_owner}
        return await self._submit(TokenAction.TRANSFER_OWNERSHIP.value, intent, overrides)

    async def accept_ownership(self, overrides: Optional[Dict[str, Any]] = None) -> Receipt:
        intent = {"symbol": self.symbol, "from": self.signer.address}
        return await self._submit(TokenAction.ACCEPT_OWNERSHIP.value, intent, overrides)

    def _options(self, overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        options = {**self.overrides, **(overrides or {})}
        unknown = set(options) - OVERRIDE_KEYS
        if unknown:
            self.logger.warning(f"Ignoring unknown overrides: {', '.join(sorted(unknown))}")
        return options

    async def _submit(self, kind: str, intent: Dict[str, Any],
                      overrides: Optional[Dict[str, Any]]) -> Receipt:
        return await self._perform(self.session, kind, intent, self.signer, self._options(overrides))

    @staticmethod
    async def _perform(session: TokenSession, kind: str, intent: Dict[str, Any],
                       signer: Signer, options: Dict[str, Any]) -> Receipt:
        return await session.relay.perform(
            kind,
            intent,
            proposer=signer,
            authorizers=[signer],
            fee=options.get("fee"),
            refresh=options.get("refresh", True),
            log_signature_payload=options.get("log_signature_payload"),
            log_signed_transaction=options.get("log_signed_transaction"),
        )

    # Status actions

    @staticmethod
    async def propose_status(session: TokenSession, action: StatusAction, proposer: Signer,
                             log_signature_payload: Optional[Callable] = None) -> SignedTransaction:
        """
        Build a status transaction and sign it as the proposer.

        Returns:
            SignedTransaction carrying the proposer's signature
        """
        relay = session.relay
        transaction = await relay.propose(action.kind.value, action.to_intent(), proposer.address)
        if log_signature_payload:
            log_signature_payload(canonical_json(transaction.signing_document()), transaction)
        return await relay.authorize(transaction, proposer)

    @classmethod
    async def approve(cls, session: TokenSession, symbol: str, proposer: Signer,
                      token_fees: Dict[str, str], burnable: Optional[bool] = None) -> SignedTransaction:
        action = StatusAction.approve(symbol, token_fees, burnable)
        return await cls.propose_status(session, action, proposer)

    @classmethod
    async def freeze(cls, session: TokenSession, symbol: str, proposer: Signer) -> SignedTransaction:
        return await cls.propose_status(session, StatusAction.freeze(symbol), proposer)

    @classmethod
    async def unfreeze(cls, session: TokenSession, symbol: str, proposer: Signer) -> SignedTransaction:
        return await cls.propose_status(session, StatusAction.unfreeze(symbol), proposer)

    @classmethod
    async def freeze_account(cls, session: TokenSession, symbol: str, target: str,
                             proposer: Signer) -> SignedTransaction:
        return await cls.propose_status(session, StatusAction.freeze_account(symbol, target), proposer)

    @classmethod
    async def unfreeze_account(cls, session: TokenSession, symbol: str, target: str,
                               proposer: Signer) -> SignedTransaction:
        return await cls.propose_status(session, StatusAction.unfreeze_account(symbol, target), proposer)

    @classmethod
    async def approve_ownership_transfer(cls, session: TokenSession, symbol: str,
                                         proposer: Signer) -> SignedTransaction:
        return await cls.propose_status(session, StatusAction.approve_ownership_transfer(symbol), proposer)

    @staticmethod
    async def sign_status_transaction(session: TokenSession, transaction: TransactionLike,
                                      signer: Signer) -> SignedTransaction:
        """Counter-sign a status transaction proposed by another principal."""
        return await session.relay.authorize(transaction, signer)

    @staticmethod
    async def send_status_transaction(session: TokenSession, signed: SignedTransaction,
                                      relayer: str, refresh: bool = True) -> Receipt:
        """Relay a fully signed status transaction."""
        return await session.relay.relay(signed, relayer, refresh=refresh)
