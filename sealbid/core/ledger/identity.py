"""
Identities and signed proposals.

An identity is an enrolled public key bound to a name and an organization.
Callers never state who they are: they sign a proposal, and the ledger looks
the signer key up in its membership registry.

Transaction ids follow the usual ledger convention:
    tx_id = SHA256(nonce || creator_public_key)
so they are unique per proposal and cannot be chosen by the submitter.
"""

import json
import secrets
from dataclasses import dataclass, field
from typing import Any, List

from sealbid.crypto import (
    address_from_public_key,
    sha256,
    sign,
    verify,
)

# Bytes of randomness mixed into every transaction id
NONCE_SIZE = 24


@dataclass(frozen=True)
class Identity:
    """
    An enrolled caller.

    Attributes:
        name: Human-readable enrollment name (not unique across orgs)
        org: Organization the identity belongs to
        public_key: 64-byte secp256k1 public key
    """
    name: str
    org: str
    public_key: bytes

    @property
    def id(self) -> str:
        """Stable identity id used as seller/bidder in auction records."""
        return address_from_public_key(self.public_key)

    def __str__(self) -> str:
        return f"{self.name}@{self.org}"


@dataclass
class Proposal:
    """
    A request to invoke a contract function.

    The signature covers the function name, the JSON-encoded arguments,
    the creator key and the nonce.
    """
    function: str
    args: List[Any]
    creator_key: bytes
    nonce: bytes = field(default_factory=lambda: secrets.token_bytes(NONCE_SIZE))
    signature: bytes = b""

    @property
    def tx_id(self) -> str:
        return sha256(self.nonce + self.creator_key).hex()

    def to_bytes(self) -> bytes:
        """Serialize for signing."""
        payload = {
            "function": self.function,
            "args": self.args,
            "creator": self.creator_key.hex(),
            "nonce": self.nonce.hex(),
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def sign(self, private_key: bytes) -> None:
        """Sign the proposal."""
        self.signature = sign(sha256(self.to_bytes()), private_key)

    def verify_signature(self) -> bool:
        """Verify the proposal was signed by its creator key."""
        return verify(sha256(self.to_bytes()), self.signature, self.creator_key)


def create_proposal(function: str, args: List[Any], private_key: bytes, public_key: bytes) -> Proposal:
    """Build and sign a proposal."""
    proposal = Proposal(function=function, args=list(args), creator_key=public_key)
    proposal.sign(private_key)
    return proposal
