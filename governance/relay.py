"""
Fungible Token Governance - Authorization Relay

The relay drives a validated intent to a confirmed ledger mutation in three
steps, each performed by a distinct principal:

1. ``propose``: a proposer builds the unsigned, canonical Transaction and
   checks its legality against cached state
2. ``authorize``: an authorizer re-derives the payload hash and signs; a
   payload that changed since proposal is rejected
3. ``relay``: a relayer verifies the collected signatures, submits to the
   Provider and returns the Receipt

The steps are independent coroutines so they can run in different
processes; ``perform`` composes them for the single-principal case. The
relay never retries and never masks a rejected submission.
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence, Union

from crypto.signer import Signer, TransactionLike, as_signed, verify_signature
from errors import InvalidFormatError, NotAllowedError, PayloadMismatchError, UnexpectedResultError
from transaction.builder import Receipt, SignedTransaction, Transaction, TransactionBuilder
from transaction.canonical import canonical_json
from validator.core import check_format
from validator.schemas import TRANSACTION_FEE_SCHEMA

from .actions import ActionRequest, TokenAction, is_status_kind, schema_for


SignaturePayloadHook = Callable[[str, Transaction], None]
SignedTransactionHook = Callable[[SignedTransaction], None]


def unwrap(transaction: TransactionLike) -> Transaction:
    if isinstance(transaction, SignedTransaction):
        return transaction.transaction
    return transaction


def verify_integrity(transaction: Transaction, expected_hash: Optional[str] = None) -> None:
    """
    Recompute the canonical hash and compare it with the proposed one.

    Raises:
        PayloadMismatchError: If the payload no longer matches its hash
    """
    actual = transaction.compute_hash()
    if actual != transaction.payload_hash:
        raise PayloadMismatchError(transaction.payload_hash, actual)
    if expected_hash is not None and expected_hash.lower() != actual:
        raise PayloadMismatchError(expected_hash, actual)


def verify_payload_format(transaction: Transaction) -> None:
    """
    Re-validate a transaction received from another principal.

    The payload must satisfy the schema of its kind and already be in its
    sanitized form: a field outside the schema, or a value the checkers
    would rewrite, means the proposer did not build it through the
    validator.

    Raises:
        InvalidFormatError: If the payload or fee is malformed
    """
    checks = [("payload", schema_for(transaction.kind), transaction.payload)]
    if transaction.fee is not None:
        checks.append(("fee", TRANSACTION_FEE_SCHEMA, transaction.fee))

    for name, schema, received in checks:
        sanitized = check_format(schema, received)
        if canonical_json(sanitized) != canonical_json(received):
            raise InvalidFormatError(
                f"{transaction.kind} {name} is not in sanitized form",
                key=name,
                value=received,
                obj=transaction.to_dict(),
            )


class AuthorizationRelay:
    """
    Three-role transaction pipeline bound to one session.

    The session supplies the Provider, the per-symbol state cache, the
    governance lifecycle and the role sets.
    """

    def __init__(self, session, builder: Optional[TransactionBuilder] = None):
        self.session = session
        self.builder = builder or TransactionBuilder()
        self.logger = logging.getLogger("governance.relay")

        self.stats = {
            "proposed": 0,
            "authorized": 0,
            "relayed": 0,
            "failed_receipts": 0,
            "failed_refreshes": 0,
        }

    @property
    def roles(self):
        return self.session.roles

    async def propose(self,
                      kind: str,
                      intent: Dict[str, Any],
                      proposer: str,
                      fee: Optional[Dict[str, Any]] = None) -> Transaction:
        """
        Build an unsigned transaction and check it against cached state.

        Args:
            kind: Action kind
            intent: Raw intent fields
            proposer: Address of the proposing principal
            fee: Optional ``{denom, amount}`` fee descriptor

        Returns:
            Canonical unsigned Transaction

        Raises:
            InvalidFormatError: If the intent is malformed
            TokenError: The first failing lifecycle guard
        """
        transaction = self.builder.build(kind, intent, schema_for(kind), proposer, fee)
        request = ActionRequest.from_transaction(transaction)

        state = await self.session.lifecycle_state(
            request.symbol,
            request.addresses(),
            creating=kind == TokenAction.CREATE.value,
        )
        self.session.lifecycle.check(state, request)

        self.stats["proposed"] += 1
        self.logger.info(f"Proposed {kind} on {request.symbol}: {transaction.payload_hash}")
        return transaction

    async def authorize(self,
                        transaction: TransactionLike,
                        signer: Signer,
                        expected_hash: Optional[str] = None) -> SignedTransaction:
        """
        Verify the payload is unchanged and add ``signer``'s signature.

        Args:
            transaction: Proposed transaction, possibly already carrying signatures
            signer: Authorizing signer
            expected_hash: Hash the authorizer was shown at proposal time

        Returns:
            SignedTransaction including the new signature

        Raises:
            PayloadMismatchError: If the canonical payload hash changed
            InvalidFormatError: If the payload does not satisfy its kind's schema
            NotAllowedError: If the signer may not authorize status actions
        """
        unsigned = unwrap(transaction)
        verify_integrity(unsigned, expected_hash)
        verify_payload_format(unsigned)

        if is_status_kind(unsigned.kind) and not self.roles.is_authorizer(signer.address):
            raise NotAllowedError(f"{signer.address} may not authorize {unsigned.kind}")

        signed = await signer.sign(as_signed(transaction))
        self.stats["authorized"] += 1
        self.logger.info(f"Authorized {unsigned.kind} {unsigned.payload_hash} by {signer.address}")
        return signed

    async def relay(self,
                    signed: SignedTransaction,
                    relayer: str,
                    refresh: bool = True) -> Receipt:
        """
        Submit a signed transaction and return its receipt.

        Mutations on one symbol are serialized. After a successful receipt
        the cached state is refreshed; with ``refresh`` False, or when the
        refresh itself fails, the cached entry is dropped so the next action
        re-queries the ledger. On a failure receipt the cache is left
        untouched.

        Raises:
            NotAllowedError: If the relayer is not permitted or a signature is invalid
            UnexpectedResultError: If the receipt carries a failure status
        """
        transaction = signed.transaction
        verify_integrity(transaction)

        if is_status_kind(transaction.kind) and not self.roles.is_relayer(relayer):
            raise NotAllowedError(f"{relayer} may not relay {transaction.kind}")

        if not signed.signatures:
            raise NotAllowedError(f"{transaction.kind} {transaction.payload_hash} carries no signatures")
        for signature in signed.signatures:
            if not verify_signature(transaction, signature):
                raise NotAllowedError(
                    f"invalid signature from {signature.signer} on {transaction.payload_hash}",
                    signer=signature.signer,
                )

        symbol = transaction.symbol
        tracker = self.session.tracker
        async with tracker.mutation(symbol):
            receipt = await self.session.provider.submit(signed)
            self.logger.info(f"Receipt for {transaction.kind} on {symbol}: {receipt.hash} status {receipt.status}")

            if not receipt.is_success:
                self.stats["failed_receipts"] += 1
                raise UnexpectedResultError(
                    f"{transaction.kind} on {symbol} failed with status {receipt.status}",
                    receipt=receipt,
                )

            tracker.mark_committed(symbol)
            self.stats["relayed"] += 1

            if not refresh:
                tracker.invalidate(symbol)
                return receipt

            try:
                await self.session.refresh(symbol)
            except Exception as e:
                # The mutation is committed; the receipt must reach the caller.
                self.stats["failed_refreshes"] += 1
                self.logger.error(f"Refresh of {symbol} after {receipt.hash} failed: {e}")
                tracker.invalidate(symbol)

        return receipt

    async def perform(self,
                      kind: str,
                      intent: Dict[str, Any],
                      proposer: Union[Signer, str],
                      authorizers: Sequence[Signer],
                      relayer: Optional[str] = None,
                      fee: Optional[Dict[str, Any]] = None,
                      refresh: bool = True,
                      log_signature_payload: Optional[SignaturePayloadHook] = None,
                      log_signed_transaction: Optional[SignedTransactionHook] = None) -> Receipt:
        """
        Run propose, authorize and relay in order.

        Args:
            kind: Action kind
            intent: Raw intent fields
            proposer: Proposing signer or address
            authorizers: Signers that sign, in order
            relayer: Relaying address (defaults to the proposer)
            fee: Optional fee descriptor
            refresh: Refresh cached state after a successful receipt
            log_signature_payload: Called with the canonical signing document
            log_signed_transaction: Called with the fully signed transaction

        Returns:
            Receipt of the confirmed transaction
        """
        proposer_address = proposer if isinstance(proposer, str) else proposer.address
        transaction = await self.propose(kind, intent, proposer_address, fee)

        if log_signature_payload:
            log_signature_payload(canonical_json(transaction.signing_document()), transaction)

        signed: TransactionLike = transaction
        for signer in authorizers:
            signed = await self.authorize(signed, signer, expected_hash=transaction.payload_hash)
        signed = as_signed(signed)

        if log_signed_transaction:
            log_signed_transaction(signed)

        return await self.relay(signed, relayer or proposer_address, refresh=refresh)
