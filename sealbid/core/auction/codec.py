"""
Commitment Codec - binding, hiding commitments over bid values.

    C = SHA256("sealbid.bid.v1|" || canonical_json(price, org, bidder, salt))

The canonical encoding sorts keys and uses compact separators, so equal
bids always encode to identical bytes. The random salt makes the digest
hiding even for small price ranges; SHA-256 makes it binding.
"""

import json
import secrets
from typing import Any, Mapping, Union

from pydantic import ValidationError

from sealbid.core.auction.model import PrivateBid
from sealbid.core.errors import InvalidArgument
from sealbid.crypto import sha256

DOMAIN_BID_COMMIT = b"sealbid.bid.v1|"

SALT_SIZE = 32

BidLike = Union[PrivateBid, Mapping[str, Any]]


def new_salt() -> str:
    """Random blinding factor for a bid (hex)."""
    return secrets.token_hex(SALT_SIZE)


def as_bid(value: BidLike) -> PrivateBid:
    """
    Coerce a mapping into a PrivateBid.

    Raises:
        InvalidArgument: If a field is missing, mistyped or unexpected
    """
    if isinstance(value, PrivateBid):
        return value
    try:
        return PrivateBid.model_validate(value)
    except ValidationError as e:
        raise InvalidArgument(f"Malformed bid: {e.errors(include_url=False)}") from e


def encode_bid(value: BidLike) -> bytes:
    """Canonical byte encoding of a bid."""
    bid = as_bid(value)
    return json.dumps(bid.model_dump(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_bid(data: bytes) -> PrivateBid:
    """Parse a stored bid."""
    try:
        return PrivateBid.model_validate_json(data)
    except ValidationError as e:
        raise InvalidArgument(f"Malformed bid record: {e.errors(include_url=False)}") from e


def commit(value: BidLike) -> str:
    """
    Compute the commitment for a bid.

    Returns:
        Hex SHA-256 digest
    """
    return sha256(DOMAIN_BID_COMMIT + encode_bid(value)).hex()


def verify(value: BidLike, commitment: str) -> bool:
    """Check that ``value`` opens ``commitment`` (exact match only)."""
    return commit(value) == commitment


__all__ = [
    "DOMAIN_BID_COMMIT",
    "new_salt",
    "as_bid",
    "encode_bid",
    "decode_bid",
    "commit",
    "verify",
]
