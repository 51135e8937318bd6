"""
Sealbid - Sealed-bid auctions over a shared ledger.

A commit-reveal auction protocol for mutually distrusting organizations:
- Bids are stored in each organization's private storage
- Only commitments are anchored on the shared auction record
- Reveals are verified against the anchored commitments
- Finalization is blocked while a higher secret bid may exist
"""

__version__ = "0.1.0"
