"""
End-to-end token scenarios against the in-memory ledger.
"""

import asyncio

import pytest

from assets.fungible import FungibleToken
from errors import (
    ExistsError,
    InsufficientFundsError,
    InvalidFormatError,
    MissingFeesError,
    NotAllowedError,
    UnexpectedResultError,
)
from governance.roles import GovernanceRoles
from network.rpc import RPCConnectionError
from registry.session import TokenSession

from tests.conftest import fee_schedule


class TestTokenCreation:
    """Test token issuance and queries."""

    def test_create_fixed_supply_token(self, issue_token, issuer, session):
        """Test fixed-supply creation issues the whole supply to the creator."""
        async def scenario():
            token = await issue_token(approve=False)
            balance = await token.get_balance()
            return token, balance

        token, balance = asyncio.run(scenario())

        assert token.state.symbol == "FIX1"
        assert token.state.owner == issuer.address
        assert token.state.fixed_supply is True
        assert token.state.approved is False
        assert token.state.total_supply == 10 ** 26
        assert balance == 10 ** 26

    def test_create_existing_symbol_fails_exists(self, issue_token, issuer, session, token_properties):
        """Test a duplicate symbol is rejected before anything is signed."""
        async def scenario():
            await issue_token(approve=False)
            await FungibleToken.create(token_properties("FIX1"), issuer, session)

        with pytest.raises(ExistsError):
            asyncio.run(scenario())

    def test_create_existing_symbol_in_other_session(self, issue_token, ledger, wallet, token_properties):
        """Test the symbol check uses the ledger, not only this session's cache."""
        async def scenario():
            await issue_token(approve=False)
            other = TokenSession(ledger)
            await FungibleToken.create(token_properties("FIX1"), wallet, other)

        with pytest.raises(ExistsError):
            asyncio.run(scenario())

    def test_create_with_invalid_properties(self, issuer, session, token_properties):
        """Test malformed properties fail InvalidFormat with the field key."""
        properties = token_properties()
        properties["decimals"] = "eighteen"

        with pytest.raises(InvalidFormatError) as exc_info:
            asyncio.run(FungibleToken.create(properties, issuer, session))

        assert exc_info.value.key == "decimals"

    def test_create_with_invalid_symbol(self, issuer, session, token_properties):
        """Test symbol syntax is enforced by the properties model."""
        with pytest.raises(InvalidFormatError) as exc_info:
            asyncio.run(FungibleToken.create(token_properties("BAD SYMBOL"), issuer, session))

        assert exc_info.value.key == "symbol"

    def test_from_symbol_refreshes_state(self, issue_token, ledger, wallet):
        """Test a new handle reads state from the ledger."""
        async def scenario():
            await issue_token()
            other = TokenSession(ledger)
            return await FungibleToken.from_symbol("FIX1", wallet, other)

        token = asyncio.run(scenario())

        assert token.state.approved is True
        assert token.state.token_fees["transfer"] == "default"

    def test_from_unknown_symbol(self, session, wallet):
        """Test querying an unknown token surfaces UnexpectedResult."""
        with pytest.raises(UnexpectedResultError):
            asyncio.run(FungibleToken.from_symbol("NOPE", wallet, session))


class TestApprove:
    """Test approval with fee schedules."""

    def test_approve_sets_fee_schedule(self, issue_token):
        """Test approval installs the fee schedule and burnable flag."""
        token = asyncio.run(issue_token(burnable=True))

        assert token.state.approved is True
        assert token.state.burnable is True
        assert token.state.fee_for("burn") == "default"

    def test_approve_twice_fails_not_allowed(self, issue_token, perform_status, governor):
        """Test re-approving an approved token is rejected."""
        async def scenario():
            await issue_token()
            await perform_status(FungibleToken.approve, "FIX1", governor, fee_schedule())

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_transfer_only_schedule_then_mint_fails_not_allowed(self, issue_token, issuer):
        """Test a fixed-supply token approved with a transfer fee only rejects mint."""
        async def scenario():
            token = await issue_token("FIX1", fixed_supply=True, max_supply=10 ** 26,
                                      token_fees={"transfer": "default"})
            assert token.state.approved is True
            await token.mint(issuer.address, 2000)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_approve_without_transfer_fee_fails_missing_fees(self, issue_token):
        """Test a schedule without a transfer mapping fails MissingFees."""
        with pytest.raises(MissingFeesError) as exc_info:
            asyncio.run(issue_token(token_fees={"transferOwnership": "default"}))

        assert exc_info.value.details["missing"] == ["transfer"]

    def test_approve_burnable_requires_burn_fee(self, issue_token):
        """Test a burnable token needs a burn fee mapping."""
        with pytest.raises(MissingFeesError):
            asyncio.run(issue_token(burnable=True, token_fees=fee_schedule(burnable=False)))

    def test_approve_unknown_fee_name_passes_through(self, issue_token):
        """Test the node's MissingFees rejection reaches the caller unchanged."""
        with pytest.raises(MissingFeesError):
            asyncio.run(issue_token(token_fees=fee_schedule(fee_name="premium")))

    def test_approve_without_refresh(self, issue_token, perform_status, governor, session, ledger):
        """Test refresh=False drops the cached snapshot instead of keeping a stale one."""
        async def scenario():
            await issue_token(approve=False)
            queries = ledger.query_count
            await perform_status(FungibleToken.approve, "FIX1", governor, fee_schedule(), False,
                                 refresh=False)
            skipped = ledger.query_count == queries
            dropped = session.cached_state("FIX1") is None
            return skipped, dropped, await session.get_state("FIX1")

        skipped, dropped, state = asyncio.run(scenario())

        assert skipped
        assert dropped
        assert state.approved is True
        assert ledger.tokens["FIX1"].approved is True


class TestMintAndBurn:
    """Test supply policy."""

    def test_mint_fixed_supply_fails_not_allowed(self, issue_token, issuer):
        """Test minting a fixed-supply token is rejected."""
        async def scenario():
            token = await issue_token("FIX1", fixed_supply=True, max_supply=10 ** 26)
            await token.mint(issuer.address, 2000)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_mint_fixed_supply_zero_amount(self, issue_token, issuer):
        """Test a zero mint is still rejected on a fixed-supply token."""
        async def scenario():
            token = await issue_token()
            await token.mint(issuer.address, 0)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_mint_dynamic_supply(self, issue_token, wallet):
        """Test minting a dynamic-supply token credits the receiver."""
        async def scenario():
            token = await issue_token("DYN1", fixed_supply=False, max_supply=0)
            receipt = await token.mint(wallet.address, 500)
            return token, receipt, await token.get_balance(wallet.address)

        token, receipt, balance = asyncio.run(scenario())

        assert receipt.status == 1
        assert balance == 500
        assert token.state.total_supply == 500

    def test_mint_beyond_max_supply(self, issue_token, wallet):
        """Test a capped dynamic supply cannot be exceeded."""
        async def scenario():
            token = await issue_token("CAP1", fixed_supply=False, max_supply=1000)
            await token.mint(wallet.address, 1001)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_mint_by_non_owner(self, issue_token, wallet, session):
        """Test only the owner may mint."""
        async def scenario():
            await issue_token("DYN1", fixed_supply=False, max_supply=0)
            stranger = FungibleToken("DYN1", wallet, session)
            await stranger.mint(wallet.address, 1)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_burn_non_burnable_fails_not_allowed(self, issue_token):
        """Test burning a non-burnable token is rejected."""
        async def scenario():
            token = await issue_token(burnable=False)
            await token.burn(10)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_burn_more_than_balance(self, issue_token):
        """Test burning above the balance fails InsufficientFunds."""
        async def scenario():
            token = await issue_token(burnable=True)
            balance = await token.get_balance()
            await token.burn(balance + 1)

        with pytest.raises(InsufficientFundsError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.required == 10 ** 26 + 1

    def test_burn_whole_balance(self, issue_token):
        """Test burning reduces both balance and total supply."""
        async def scenario():
            token = await issue_token(burnable=True)
            balance = await token.get_balance()
            await token.burn(balance)
            return token, await token.get_balance()

        token, balance = asyncio.run(scenario())

        assert balance == 0
        assert token.state.total_supply == 0

    def test_burn_negative_amount(self, issue_token):
        """Test a negative burn is a policy rejection."""
        async def scenario():
            token = await issue_token(burnable=True)
            await token.burn(-10)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_burn_non_numeric_amount(self, issue_token):
        """Test a non-numeric burn is a format error."""
        async def scenario():
            token = await issue_token(burnable=True)
            await token.burn("abc123")

        with pytest.raises(InvalidFormatError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.key == "value"


class TestTransfer:
    """Test transfers."""

    def test_transfer_half_balance(self, issue_token, session, wallet):
        """Test balances move by exactly the transferred amount."""
        async def scenario():
            token = await issue_token()
            balance = await token.get_balance()
            half = balance // 2
            fee = await token.estimate_fee("transfer", {"symbol": "FIX1", "value": half})
            receipt = await token.transfer(wallet.address, half, {"fee": fee, "memo": "Hello blockchain"})
            receiver = FungibleToken("FIX1", wallet, session)
            return half, receipt, await token.get_balance(), await receiver.get_balance()

        half, receipt, sender_balance, receiver_balance = asyncio.run(scenario())

        assert receipt.status == 1
        assert sender_balance == half
        assert receiver_balance == half

    def test_receipt_returned_when_refresh_fails(self, issue_token, session, ledger, issuer, wallet):
        """Test a committed transfer returns its receipt even if the follow-up query fails."""
        async def unreachable(symbol):
            raise RPCConnectionError(-1, "Connection error: node unreachable")

        async def scenario():
            token = await issue_token()
            ledger.query = unreachable
            return await token.transfer(wallet.address, 10)

        receipt = asyncio.run(scenario())

        assert receipt.is_success
        assert ledger.accounts[("FIX1", wallet.address)].balance == 10
        assert session.cached_state("FIX1") is None
        assert session.relay.stats["failed_refreshes"] == 1

    def test_transfer_carries_memo_and_fee(self, issue_token, ledger, wallet):
        """Test memo and fee are part of the signed transaction."""
        async def scenario():
            token = await issue_token()
            await token.transfer(wallet.address, 10, {"memo": "Hello blockchain",
                                                      "fee": {"denom": "cin", "amount": 5}})

        asyncio.run(scenario())

        transaction = ledger.submitted[-1].transaction
        assert transaction.payload["memo"] == "Hello blockchain"
        assert transaction.fee == {"amount": "5", "denom": "cin"}

    def test_transfer_negative_amount(self, issue_token, wallet):
        """Test negative transfers fail NotAllowed."""
        async def scenario():
            token = await issue_token()
            await token.transfer(wallet.address, -10)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    @pytest.mark.parametrize("value", ["#!@#!@#$%^^", "abc123123123"])
    def test_transfer_non_numeric_amount(self, issue_token, wallet, value):
        """Test garbage amounts fail InvalidFormat."""
        async def scenario():
            token = await issue_token()
            await token.transfer(wallet.address, value)

        with pytest.raises(InvalidFormatError):
            asyncio.run(scenario())

    @pytest.mark.parametrize("address", [
        "wxmjaksjfkasjfksjdfkjskdfjsas111dasd",
        "0xf25351F2a8Ea21ba1833E5587bb7815Ba1bd0900",
    ])
    def test_transfer_to_unresolvable_address(self, issue_token, session, address):
        """Test the node's UnexpectedResult passes through and the cache is untouched."""
        async def scenario():
            token = await issue_token()
            before = session.cached_state("FIX1")
            try:
                await token.transfer(address, 10)
            finally:
                assert session.cached_state("FIX1") is before

        with pytest.raises(UnexpectedResultError):
            asyncio.run(scenario())

    def test_transfer_more_than_balance(self, issue_token, wallet):
        """Test overdrawn transfers fail InsufficientFunds."""
        async def scenario():
            token = await issue_token()
            await token.transfer(wallet.address, 10 ** 26 + 1)

        with pytest.raises(InsufficientFundsError):
            asyncio.run(scenario())

    def test_transfer_on_frozen_token(self, issue_token, perform_status, governor, wallet):
        """Test a frozen token blocks transfers; unfreezing restores them."""
        async def scenario():
            token = await issue_token()
            await perform_status(FungibleToken.freeze, "FIX1", governor)
            with pytest.raises(NotAllowedError):
                await token.transfer(wallet.address, 10)
            await perform_status(FungibleToken.unfreeze, "FIX1", governor)
            return await token.transfer(wallet.address, 10)

        receipt = asyncio.run(scenario())

        assert receipt.status == 1

    def test_transfer_from_frozen_account(self, issue_token, perform_status, governor, issuer, wallet):
        """Test a frozen sender account blocks transfers."""
        async def scenario():
            token = await issue_token()
            await perform_status(FungibleToken.freeze_account, "FIX1", issuer.address, governor)
            await token.transfer(wallet.address, 10)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_transfer_to_frozen_account(self, issue_token, perform_status, governor, wallet):
        """Test a frozen receiver account blocks transfers."""
        async def scenario():
            token = await issue_token()
            await perform_status(FungibleToken.freeze_account, "FIX1", wallet.address, governor)
            await token.transfer(wallet.address, 10)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_signature_hooks_are_called(self, issue_token, wallet):
        """Test the signature payload and signed transaction hooks."""
        seen = {}

        async def scenario():
            token = await issue_token()
            await token.transfer(wallet.address, 10, {
                "log_signature_payload": lambda payload, transaction: seen.setdefault("payload", payload),
                "log_signed_transaction": lambda signed: seen.setdefault("signed", signed),
            })

        asyncio.run(scenario())

        assert seen["payload"].startswith('{"kind":"transfer"')
        assert len(seen["signed"].signatures) == 1


class TestFreeze:
    """Test status idempotency."""

    def test_freeze_twice_fails_not_allowed(self, issue_token, perform_status, governor):
        """Test freezing a frozen token is rejected."""
        async def scenario():
            await issue_token()
            await perform_status(FungibleToken.freeze, "FIX1", governor)
            await perform_status(FungibleToken.freeze, "FIX1", governor)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_unfreeze_active_token_fails_not_allowed(self, issue_token, perform_status, governor):
        """Test unfreezing an active token is rejected."""
        async def scenario():
            await issue_token()
            await perform_status(FungibleToken.unfreeze, "FIX1", governor)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_unfreeze_active_account_fails_not_allowed(self, issue_token, perform_status, governor, wallet):
        """Test unfreezing an active account is rejected."""
        async def scenario():
            await issue_token()
            await perform_status(FungibleToken.unfreeze_account, "FIX1", wallet.address, governor)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_unfreeze_after_freeze_without_refresh(self, issue_token, perform_status, governor, session, ledger):
        """Test an action after refresh=False is checked against the ledger, not a stale snapshot."""
        async def scenario():
            await issue_token()
            await perform_status(FungibleToken.freeze, "FIX1", governor, refresh=False)
            return await perform_status(FungibleToken.unfreeze, "FIX1", governor)

        receipt = asyncio.run(scenario())

        assert receipt.is_success
        assert ledger.tokens["FIX1"].frozen is False
        assert session.cached_state("FIX1").frozen is False


class TestOwnershipTransfer:
    """Test the two-phase ownership handshake."""

    def test_offer_then_accept(self, issue_token, session, issuer, wallet):
        """Test the offeree installs itself as owner and clears the offer."""
        async def scenario():
            token = await issue_token()
            await token.transfer_ownership(wallet.address)
            pending = token.state

            with pytest.raises(NotAllowedError):
                await token.accept_ownership()

            offeree = FungibleToken("FIX1", wallet, session)
            receipt = await offeree.accept_ownership()
            return pending, receipt, offeree.state

        pending, receipt, state = asyncio.run(scenario())

        assert pending.new_owner == wallet.address
        assert pending.owner == issuer.address
        assert receipt.status == 1
        assert state.owner == wallet.address
        assert state.new_owner is None

    def test_accept_without_offer(self, issue_token, session, wallet):
        """Test accepting with no pending offer is rejected."""
        async def scenario():
            await issue_token()
            await FungibleToken("FIX1", wallet, session).accept_ownership()

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_offer_by_non_owner(self, issue_token, session, wallet, governor):
        """Test only the owner may offer ownership."""
        async def scenario():
            await issue_token()
            await FungibleToken("FIX1", wallet, session).transfer_ownership(governor.address)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_new_offer_replaces_pending_one(self, issue_token, wallet, governor):
        """Test a second offer overwrites the first."""
        async def scenario():
            token = await issue_token()
            await token.transfer_ownership(wallet.address)
            await token.transfer_ownership(governor.address)
            return token.state

        state = asyncio.run(scenario())

        assert state.new_owner == governor.address

    def test_approve_ownership_transfer_twice_fails_exists(self, issue_token, perform_status, governor, wallet):
        """Test a duplicate ownership approval fails Exists."""
        async def scenario():
            token = await issue_token()
            await token.transfer_ownership(wallet.address)
            await perform_status(FungibleToken.approve_ownership_transfer, "FIX1", governor)
            await perform_status(FungibleToken.approve_ownership_transfer, "FIX1", governor)

        with pytest.raises(ExistsError):
            asyncio.run(scenario())

    def test_approve_ownership_transfer_without_offer(self, issue_token, perform_status, governor):
        """Test approval needs a pending offer."""
        async def scenario():
            await issue_token()
            await perform_status(FungibleToken.approve_ownership_transfer, "FIX1", governor)

        with pytest.raises(NotAllowedError):
            asyncio.run(scenario())

    def test_accept_requires_approval_when_configured(self, ledger, issuer, governor, middleware,
                                                      wallet, token_properties):
        """Test governance approval gates acceptance when required."""
        session = TokenSession(ledger, GovernanceRoles(require_ownership_approval=True))

        async def perform(propose, *args):
            signed = await propose(session, *args)
            signed = await FungibleToken.sign_status_transaction(session, signed, issuer)
            return await FungibleToken.send_status_transaction(session, signed, middleware.address)

        async def scenario():
            token = await FungibleToken.create(token_properties(), issuer, session)
            await perform(FungibleToken.approve, "FIX1", governor, fee_schedule())
            await token.transfer_ownership(wallet.address)

            offeree = FungibleToken("FIX1", wallet, session)
            with pytest.raises(NotAllowedError):
                await offeree.accept_ownership()

            await perform(FungibleToken.approve_ownership_transfer, "FIX1", governor)
            await offeree.accept_ownership()
            return offeree.state

        state = asyncio.run(scenario())

        assert state.owner == wallet.address
