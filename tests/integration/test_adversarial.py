"""
Adversarial Tests - Robustness of the auction protocol.

Tests verify:
1. Replay and tampering of signed proposals
2. Identity spoofing through arguments
3. Private data isolation between organizations
4. Concurrent submissions without lost updates
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from sealbid.client import AuctionClient, Wallet
from sealbid.core.auction import AuctionContract, AuctionStatus, commit
from sealbid.core.errors import (
    CommitmentMismatch,
    EndorsementPolicyFailure,
    InvalidArgument,
    InvalidSignature,
    LedgerError,
    NotAuthorized,
    NotSeller,
    SealbidError,
)
from sealbid.core.ledger import LocalLedger, TransactionContext
from sealbid.core.storage import StorageManager


# =============================================================================
# Fixtures
# =============================================================================


def enroll(ledger, name, org):
    wallet = Wallet.create(name, org)
    wallet.enroll(ledger)
    return AuctionClient.connect(ledger, wallet)


@pytest.fixture
def ledger():
    ledger = LocalLedger()
    ledger.install(AuctionContract())
    return ledger


@pytest.fixture
def seller(ledger):
    client = enroll(ledger, "seller", "SellerOrg")
    client.create_auction("A1", "vase")
    return client


@pytest.fixture
def x(ledger):
    return enroll(ledger, "x", "OrgX")


def place(client, price):
    bid_key = client.create_bid("A1", price)
    client.submit_bid("A1", bid_key)
    return bid_key


def place_with_retry(client, price):
    """Re-submit while the failure is retryable (stale endorser set)."""
    bid_key = client.create_bid("A1", price)
    while True:
        try:
            client.submit_bid("A1", bid_key)
            return bid_key
        except SealbidError as e:
            if not e.retryable:
                raise


# =============================================================================
# Proposal tampering
# =============================================================================


class TestProposalTampering:
    """Signed proposals cannot be replayed or altered."""

    def test_replayed_reveal(self, ledger, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        stored = x.query_bid("A1", bid_key)

        proposal = x.gateway.wallet.sign_proposal("reveal_bid", ["A1", bid_key, stored.model_dump()])
        orgs = ["SellerOrg", "OrgX"]
        ledger.submit(proposal, endorsing_orgs=orgs)
        with pytest.raises(LedgerError):
            ledger.submit(proposal, endorsing_orgs=orgs)

    def test_price_swapped_after_signing(self, ledger, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        stored = x.query_bid("A1", bid_key)

        proposal = x.gateway.wallet.sign_proposal("reveal_bid", ["A1", bid_key, stored.model_dump()])
        proposal.args[2]["price"] = 1
        with pytest.raises(InvalidSignature):
            ledger.submit(proposal, endorsing_orgs=["SellerOrg", "OrgX"])

    def test_seller_impersonation_through_arguments(self, ledger, seller, x):
        """Identity comes from the signature; extra arguments are rejected."""
        proposal = x.gateway.wallet.sign_proposal("close_auction", ["A1"])
        with pytest.raises(NotSeller):
            ledger.submit(proposal, endorsing_orgs=["SellerOrg", "OrgX"])
        with pytest.raises(TypeError):
            x.gateway.submit("close_auction", "A1", seller.identity.id)

    def test_skipping_seller_endorsement(self, seller, x):
        """A bidder cannot commit without the seller org's peer."""
        bid_key = x.create_bid("A1", 100)
        value = x.query_bid("A1", bid_key)
        with pytest.raises(EndorsementPolicyFailure):
            x.gateway.submit("submit_commitment", "A1", bid_key, commit(value), endorsing_orgs=["OrgX"])
        assert seller.query_auction("A1").commitments == {}

    def test_skipping_bidder_endorsement_at_finalization(self, ledger, seller, x):
        """The seller cannot finalize without the bidder org's audit."""
        bid_key = place(x, 100)
        place(x, 500)
        seller.close_auction("A1")
        x.reveal_bid("A1", bid_key)

        with pytest.raises(EndorsementPolicyFailure):
            seller.gateway.submit("end_auction", "A1", endorsing_orgs=["SellerOrg"])
        assert seller.query_auction("A1").status == AuctionStatus.CLOSED


# =============================================================================
# Private data
# =============================================================================


class TestPrivateDataIsolation:
    """Bid values never cross organization boundaries."""

    def test_foreign_peer_cannot_read_bid(self, ledger, seller, x):
        bid_key = x.create_bid("A1", 100)
        ctx = TransactionContext(ledger, seller.identity, "SellerOrg", "t" * 64)
        with pytest.raises(NotAuthorized):
            ctx.private_get("OrgX", bid_key)

    def test_bid_stored_for_another_org_rejected(self, ledger, seller, x):
        """Endorsing create_bid on another org's peer fails."""
        with pytest.raises(NotAuthorized):
            x.gateway.submit("create_bid", "A1", 100, "ab" * 32, endorsing_orgs=["SellerOrg"])

    def test_public_record_hides_prices(self, seller, x):
        place(x, 123456789)
        assert "123456789" not in seller.query_auction("A1").model_dump_json()

    def test_commitment_for_different_price(self, seller, x):
        """A bidder cannot anchor a commitment to a price it did not store."""
        bid_key = x.create_bid("A1", 100)
        lie = x.query_bid("A1", bid_key).model_copy(update={"price": 1000})
        with pytest.raises(CommitmentMismatch):
            x.gateway.submit(
                "submit_commitment", "A1", bid_key, commit(lie),
                endorsing_orgs=["SellerOrg", "OrgX"],
            )


# =============================================================================
# Oversized input
# =============================================================================


class TestInputLimits:
    """Malformed or oversized input is rejected before any write."""

    def test_oversized_item(self, ledger, x):
        with pytest.raises(InvalidArgument):
            x.create_auction("A2", "x" * 5000)
        assert ledger.height == 0

    def test_malformed_reveal_value(self, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        with pytest.raises(InvalidArgument):
            x.gateway.submit(
                "reveal_bid", "A1", bid_key, {"price": 100},
                endorsing_orgs=["SellerOrg", "OrgX"],
            )


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentSubmissions:
    """The ledger serializes read-modify-write of the auction record."""

    def test_concurrent_commitments_same_org(self, ledger, seller):
        bidders = [enroll(ledger, f"bidder{i}", "OrgX") for i in range(8)]
        # OrgX joins first so the approver set is stable
        place(bidders[0], 1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            keys = list(pool.map(lambda pair: place(pair[1], 10 + pair[0]), enumerate(bidders)))

        auction = seller.query_auction("A1")
        assert len(auction.commitments) == 9
        assert set(keys) <= set(auction.commitments)
        assert auction.parties == ["SellerOrg", "OrgX"]

    def test_concurrent_org_joins(self, ledger, seller):
        bidders = [enroll(ledger, f"bidder{i}", f"Org{i}") for i in range(6)]

        with ThreadPoolExecutor(max_workers=6) as pool:
            keys = list(pool.map(lambda client: place_with_retry(client, 50), bidders))

        auction = seller.query_auction("A1")
        assert set(auction.commitments) == set(keys)
        assert auction.parties[0] == "SellerOrg"
        assert sorted(auction.parties[1:]) == sorted(f"Org{i}" for i in range(6))
        assert len(auction.parties) == len(set(auction.parties))

        ctx = TransactionContext(ledger, seller.identity, "SellerOrg", "t" * 64)
        assert ctx.get_approvers("auction:A1") == auction.parties

    def test_concurrent_commitments_persisted(self, tmp_path):
        ledger = LocalLedger(storage_manager=StorageManager(data_dir=tmp_path))
        ledger.install(AuctionContract())
        seller = enroll(ledger, "seller", "SellerOrg")
        seller.create_auction("A1", "vase")
        bidders = [enroll(ledger, f"bidder{i}", "OrgX") for i in range(4)]
        place(bidders[0], 1)

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda client: place(client, 5), bidders))
        height = ledger.height
        ledger.close()

        reloaded = LocalLedger(storage_manager=StorageManager(data_dir=tmp_path))
        assert reloaded.height == height
        reloaded.install(AuctionContract())
        assert len(AuctionClient.connect(reloaded, seller.gateway.wallet).query_auction("A1").commitments) == 5
        reloaded.close()
