"""
Unit tests for the auction state machine.

Tests cover:
1. Auction creation and queries
2. Bid creation and commitment
3. Closing
4. Reveal checks
5. Finalization and the highest-bid audit
6. Frozen state after the auction ends
"""

import pytest

from sealbid.client import AuctionClient, Wallet
from sealbid.core.auction import AuctionContract, AuctionStatus, auction_key, commit
from sealbid.core.errors import (
    AlreadyExists,
    AuctionAlreadyExists,
    AuctionNotClosed,
    AuctionNotFound,
    AuctionNotOpen,
    BidAlreadyExists,
    BidAlreadyRevealed,
    BidNotFound,
    CommitmentMismatch,
    CommitmentMissing,
    EndorsementPolicyFailure,
    InvalidArgument,
    NoRevealedBids,
    NotBidOwner,
    NotFound,
    NotSeller,
    UnrevealedHigherBidExists,
)
from sealbid.core.ledger import LocalLedger, TransactionContext


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


@pytest.fixture
def y(ledger):
    return enroll(ledger, "y", "OrgY")


def place(client, price, auction_id="A1"):
    bid_key = client.create_bid(auction_id, price)
    client.submit_bid(auction_id, bid_key)
    return bid_key


def endorsers(client, auction_id="A1"):
    return client.query_auction(auction_id).parties + [client.identity.org]


# =============================================================================
# Creation and queries
# =============================================================================


class TestCreateAuction:
    """Tests for create_auction / query_auction."""

    def test_new_auction_is_open(self, seller):
        auction = seller.query_auction("A1")
        assert auction.status == AuctionStatus.OPEN
        assert auction.item == "vase"
        assert auction.seller == seller.identity.id
        assert auction.parties == ["SellerOrg"]
        assert auction.commitments == {}
        assert auction.best_price == 0
        assert auction.winner == ""

    def test_seller_org_is_approver(self, ledger, seller):
        ctx = TransactionContext(ledger, seller.identity, "SellerOrg", "t" * 64)
        assert ctx.get_approvers(auction_key("A1")) == ["SellerOrg"]

    def test_duplicate_id_rejected(self, seller, x):
        with pytest.raises(AuctionAlreadyExists):
            x.create_auction("A1", "another vase")
        assert issubclass(AuctionAlreadyExists, AlreadyExists)

    @pytest.mark.parametrize("auction_id", ["", "a:b", "has space", "x" * 200])
    def test_invalid_id_rejected(self, x, auction_id):
        with pytest.raises(InvalidArgument):
            x.create_auction(auction_id, "vase")

    def test_empty_item_rejected(self, x):
        with pytest.raises(InvalidArgument):
            x.create_auction("A2", "")

    def test_unknown_auction(self, x):
        with pytest.raises(AuctionNotFound):
            x.query_auction("nope")
        assert issubclass(AuctionNotFound, NotFound)

    def test_query_does_not_mutate(self, ledger, seller, x):
        place(x, 100)
        height = ledger.height
        first = seller.query_auction("A1")
        second = x.query_auction("A1")
        assert first == second
        assert ledger.height == height

    def test_submitting_identity(self, x):
        assert x.whoami() == x.identity.id


# =============================================================================
# Bids and commitments
# =============================================================================


class TestCommitments:
    """Tests for create_bid / submit_commitment."""

    def test_bid_is_private_until_revealed(self, seller, x):
        bid_key = x.create_bid("A1", 100)
        stored = x.query_bid("A1", bid_key)
        assert stored.price == 100
        assert stored.org == "OrgX"
        assert stored.bidder == x.identity.id

        auction = seller.query_auction("A1")
        assert bid_key not in auction.commitments
        assert auction.parties == ["SellerOrg"]

    def test_commitment_appends_org(self, ledger, seller, x):
        bid_key = place(x, 100)
        auction = seller.query_auction("A1")
        assert auction.parties == ["SellerOrg", "OrgX"]
        assert auction.commitments[bid_key].org == "OrgX"
        assert auction.commitments[bid_key].commitment == commit(x.query_bid("A1", bid_key))

        ctx = TransactionContext(ledger, seller.identity, "SellerOrg", "t" * 64)
        assert ctx.get_approvers(auction_key("A1")) == ["SellerOrg", "OrgX"]

    def test_second_commitment_from_same_org(self, seller, x):
        place(x, 100)
        place(x, 200)
        auction = seller.query_auction("A1")
        assert auction.parties == ["SellerOrg", "OrgX"]
        assert len(auction.commitments) == 2

    def test_commitments_keep_insertion_order(self, seller, x, y):
        keys = [place(x, 1), place(y, 2), place(x, 3)]
        assert list(seller.query_auction("A1").commitments) == keys

    def test_duplicate_bid_key_rejected(self, ledger, seller, x):
        bid_key = place(x, 100)
        height = ledger.height
        with pytest.raises(BidAlreadyExists):
            x.submit_bid("A1", bid_key)
        assert ledger.height == height

    def test_missing_stored_bid(self, seller, x):
        with pytest.raises(CommitmentMissing):
            x.gateway.submit(
                "submit_commitment", "A1", "bid:A1:" + "0" * 64, "00" * 32,
                endorsing_orgs=endorsers(x),
            )

    def test_wrong_commitment_rejected_by_own_peer(self, seller, x):
        bid_key = x.create_bid("A1", 100)
        with pytest.raises(CommitmentMismatch):
            x.gateway.submit(
                "submit_commitment", "A1", bid_key, "00" * 32,
                endorsing_orgs=endorsers(x),
            )
        assert seller.query_auction("A1").commitments == {}

    def test_colleague_cannot_commit_anothers_bid(self, ledger, seller, x):
        colleague = enroll(ledger, "x2", "OrgX")
        bid_key = x.create_bid("A1", 100)
        with pytest.raises(NotBidOwner):
            colleague.gateway.submit(
                "submit_commitment", "A1", bid_key, commit(x.query_bid("A1", bid_key)),
                endorsing_orgs=endorsers(colleague),
            )

    def test_joining_org_cannot_skip_own_peer(self, ledger, seller, x, y):
        """Without OrgX's peer nobody checks the commitment against the stored bid."""
        y_key = place(y, 100)
        bid_key = x.create_bid("A1", 1)
        height = ledger.height
        with pytest.raises(EndorsementPolicyFailure):
            x.gateway.submit(
                "submit_commitment", "A1", bid_key, "00" * 32,
                endorsing_orgs=["SellerOrg", "OrgY"],
            )
        assert ledger.height == height
        assert seller.query_auction("A1").parties == ["SellerOrg", "OrgY"]

        # The honest commitment, endorsed by OrgX as well, still goes through
        x.submit_bid("A1", bid_key)
        seller.close_auction("A1")
        x.reveal_bid("A1", bid_key)
        y.reveal_bid("A1", y_key)
        assert seller.end_auction("A1") == y.identity.id

    def test_colleague_cannot_take_bid_key_without_own_peer(self, ledger, seller, x):
        colleague = enroll(ledger, "x2", "OrgX")
        bid_key = x.create_bid("A1", 100)
        with pytest.raises(EndorsementPolicyFailure):
            colleague.gateway.submit(
                "submit_commitment", "A1", bid_key, "ab" * 32,
                endorsing_orgs=["SellerOrg"],
            )

        x.submit_bid("A1", bid_key)
        seller.close_auction("A1")
        x.reveal_bid("A1", bid_key)
        assert seller.end_auction("A1") == x.identity.id

    def test_member_org_cannot_skip_own_peer(self, seller, x):
        place(x, 100)
        bid_key = x.create_bid("A1", 200)
        with pytest.raises(EndorsementPolicyFailure):
            x.gateway.submit(
                "submit_commitment", "A1", bid_key, "00" * 32,
                endorsing_orgs=["SellerOrg"],
            )

    def test_bid_key_of_other_auction_rejected(self, seller, x):
        seller.create_auction("A2", "lamp")
        bid_key = x.create_bid("A2", 100)
        with pytest.raises(InvalidArgument):
            x.submit_bid("A1", bid_key)

    @pytest.mark.parametrize("price", [-1, True, "100", 2**63])
    def test_invalid_price_rejected(self, seller, x, price):
        with pytest.raises(InvalidArgument):
            x.create_bid("A1", price)

    def test_bid_on_unknown_auction(self, x):
        with pytest.raises(AuctionNotFound):
            x.create_bid("nope", 100)

    def test_other_identity_cannot_query_bid(self, ledger, seller, x):
        bid_key = x.create_bid("A1", 100)
        colleague = enroll(ledger, "x2", "OrgX")
        with pytest.raises(NotBidOwner):
            colleague.query_bid("A1", bid_key)

    def test_other_org_cannot_see_bid(self, seller, x, y):
        bid_key = x.create_bid("A1", 100)
        with pytest.raises(BidNotFound):
            y.query_bid("A1", bid_key)

    def test_no_bids_after_close(self, seller, x):
        bid_key = x.create_bid("A1", 100)
        seller.close_auction("A1")
        with pytest.raises(AuctionNotOpen):
            x.submit_bid("A1", bid_key)
        with pytest.raises(AuctionNotOpen):
            x.create_bid("A1", 100)


# =============================================================================
# Closing
# =============================================================================


class TestClose:
    """Tests for close_auction."""

    def test_seller_closes(self, seller, x):
        place(x, 100)
        seller.close_auction("A1")
        assert seller.query_auction("A1").status == AuctionStatus.CLOSED

    def test_non_seller_rejected(self, seller, x):
        place(x, 100)
        with pytest.raises(NotSeller):
            x.close_auction("A1")
        assert seller.query_auction("A1").status == AuctionStatus.OPEN

    def test_close_twice_rejected(self, seller):
        seller.close_auction("A1")
        with pytest.raises(AuctionNotOpen):
            seller.close_auction("A1")


# =============================================================================
# Reveals
# =============================================================================


class TestReveal:
    """Tests for reveal_bid."""

    def test_reveal_records_bid(self, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        x.reveal_bid("A1", bid_key)

        auction = seller.query_auction("A1")
        revealed = auction.revealed[bid_key]
        assert (revealed.price, revealed.org, revealed.bidder) == (100, "OrgX", x.identity.id)
        assert auction.best_price == 100

    def test_reveal_before_close(self, seller, x):
        bid_key = place(x, 100)
        with pytest.raises(AuctionNotClosed):
            x.reveal_bid("A1", bid_key)

    def test_reveal_uncommitted_bid(self, seller, x):
        bid_key = x.create_bid("A1", 100)
        seller.close_auction("A1")
        with pytest.raises(BidNotFound):
            x.reveal_bid("A1", bid_key)

    @pytest.mark.parametrize("field,value", [
        ("price", 999),
        ("price", 99),
        ("salt", "ab" * 32),
    ])
    def test_mutated_value_rejected(self, seller, x, field, value):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        stored = x.query_bid("A1", bid_key)
        before = seller.query_auction("A1")

        with pytest.raises(CommitmentMismatch):
            x.reveal_bid("A1", bid_key, stored.model_copy(update={field: value}))
        assert seller.query_auction("A1") == before

    def test_other_identity_rejected(self, ledger, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        colleague = enroll(ledger, "x2", "OrgX")
        with pytest.raises(NotBidOwner):
            colleague.reveal_bid("A1", bid_key, x.query_bid("A1", bid_key))

    def test_reveal_twice_rejected(self, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        x.reveal_bid("A1", bid_key)
        with pytest.raises(BidAlreadyRevealed):
            x.reveal_bid("A1", bid_key)

    def test_best_price_tracks_maximum(self, seller, x, y):
        k1 = place(x, 100)
        k2 = place(y, 150)
        k3 = place(x, 120)
        seller.close_auction("A1")
        for client, key in ((y, k2), (x, k1), (x, k3)):
            client.reveal_bid("A1", key)
        assert seller.query_auction("A1").best_price == 150


# =============================================================================
# Finalization
# =============================================================================


class TestEndAuction:
    """Tests for end_auction."""

    def test_winner_selected(self, seller, x, y):
        k1 = place(x, 100)
        k2 = place(y, 150)
        seller.close_auction("A1")
        x.reveal_bid("A1", k1)
        y.reveal_bid("A1", k2)

        assert seller.end_auction("A1") == y.identity.id
        auction = seller.query_auction("A1")
        assert auction.status == AuctionStatus.ENDED
        assert auction.winner == y.identity.id
        assert auction.best_price == 150

    def test_non_seller_rejected(self, seller, x):
        bid_key = place(x, 100)
        seller.close_auction("A1")
        x.reveal_bid("A1", bid_key)
        with pytest.raises(NotSeller):
            x.end_auction("A1")

    def test_open_auction_rejected(self, seller, x):
        place(x, 100)
        with pytest.raises(AuctionNotClosed):
            seller.end_auction("A1")

    def test_no_reveals(self, seller, x):
        place(x, 100)
        seller.close_auction("A1")
        with pytest.raises(NoRevealedBids) as exc_info:
            seller.end_auction("A1")
        assert exc_info.value.retryable

    def test_blocked_by_higher_unrevealed_bid(self, seller, x, y):
        k1 = place(x, 100)
        k2 = place(y, 150)
        seller.close_auction("A1")
        x.reveal_bid("A1", k1)

        with pytest.raises(UnrevealedHigherBidExists) as exc_info:
            seller.end_auction("A1")
        assert exc_info.value.retryable
        assert exc_info.value.bid_key == k2

        auction = seller.query_auction("A1")
        assert auction.status == AuctionStatus.CLOSED
        assert auction.winner == ""

    def test_blocked_by_own_org_bid_after_partial_reveal(self, seller, x, y):
        """OrgY revealed a low bid but still holds a higher one."""
        k1 = place(x, 100)
        k2 = place(y, 50)
        place(y, 150)
        seller.close_auction("A1")
        x.reveal_bid("A1", k1)
        y.reveal_bid("A1", k2)

        with pytest.raises(UnrevealedHigherBidExists):
            seller.end_auction("A1")

    def test_lower_unrevealed_bids_do_not_block(self, seller, x, y):
        k1 = place(x, 100)
        k2 = place(y, 50)
        place(y, 20)
        seller.close_auction("A1")
        x.reveal_bid("A1", k1)
        y.reveal_bid("A1", k2)

        assert seller.end_auction("A1") == x.identity.id

    def test_tie_goes_to_first_commitment(self, seller, x, y):
        k1 = place(y, 100)
        k2 = place(x, 100)
        seller.close_auction("A1")
        x.reveal_bid("A1", k2)
        y.reveal_bid("A1", k1)

        assert seller.end_auction("A1") == y.identity.id


class TestEndedAuctionIsFrozen:
    """Nothing changes once an auction has ended."""

    @pytest.fixture
    def ended(self, seller, x):
        k1 = place(x, 100)
        k2 = place(x, 50)
        seller.close_auction("A1")
        x.reveal_bid("A1", k1)
        seller.end_auction("A1")
        return k2

    def test_status_is_terminal(self, seller, ended):
        with pytest.raises(AuctionNotOpen):
            seller.close_auction("A1")
        with pytest.raises(AuctionNotClosed):
            seller.end_auction("A1")

    def test_no_late_reveals(self, seller, x, ended):
        with pytest.raises(AuctionNotClosed):
            x.reveal_bid("A1", ended)

    def test_no_late_bids(self, seller, y, ended):
        with pytest.raises(AuctionNotOpen):
            y.create_bid("A1", 1000)

    def test_record_unchanged(self, ledger, seller, x, ended):
        before = seller.query_auction("A1")
        height = ledger.height
        with pytest.raises(AuctionNotClosed):
            x.reveal_bid("A1", ended)
        assert seller.query_auction("A1") == before
        assert ledger.height == height
