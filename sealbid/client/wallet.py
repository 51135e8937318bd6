"""
Wallet - a caller's signing key and organization.

Wallet files keep the private key encrypted with Fernet under a key derived
from the user's password (PBKDF2-HMAC-SHA256).
"""

import base64
import hashlib
import json
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from cryptography.fernet import Fernet, InvalidToken

from sealbid.core.errors import SealbidError
from sealbid.core.ledger.identity import Identity, Proposal, create_proposal
from sealbid.crypto import KeyPair, generate_keypair, hex_to_bytes, private_key_to_public_key

KDF_ITERATIONS = 100_000
KDF_SALT_SIZE = 16


class WalletError(SealbidError):
    """Raised when a wallet file cannot be read or decrypted."""
    pass


def _fernet(password: str, salt: bytes) -> Fernet:
    key = base64.urlsafe_b64encode(
        hashlib.pbkdf2_hmac("sha256", password.encode(), salt, KDF_ITERATIONS)
    )
    return Fernet(key)


@dataclass
class Wallet:
    """
    A named signing identity.

    Attributes:
        name: Enrollment name
        org: Organization the identity is enrolled in
        keypair: secp256k1 keypair used to sign proposals
    """
    name: str
    org: str
    keypair: KeyPair

    @classmethod
    def create(cls, name: str, org: str) -> "Wallet":
        return cls(name=name, org=org, keypair=generate_keypair())

    @property
    def public_key(self) -> bytes:
        return self.keypair.public_key

    @property
    def identity(self) -> Identity:
        return Identity(name=self.name, org=self.org, public_key=self.public_key)

    def enroll(self, ledger) -> Identity:
        """Register this wallet's key with the ledger's membership registry."""
        return ledger.register_identity(self.name, self.org, self.public_key)

    def sign_proposal(self, function: str, args: List[Any]) -> Proposal:
        return create_proposal(function, args, self.keypair.private_key, self.public_key)

    # =========================================================================
    # Files
    # =========================================================================

    def save(self, path: Path, password: str) -> None:
        """Write the wallet with its private key encrypted."""
        salt = secrets.token_bytes(KDF_SALT_SIZE)
        encrypted = _fernet(password, salt).encrypt(self.keypair.private_key).decode("utf-8")

        wallet_data = {
            "name": self.name,
            "org": self.org,
            "address": self.identity.id,
            "public_key": self.keypair.public_key_hex,
            "kdf_salt": salt.hex(),
            "encrypted_private_key": encrypted,
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(wallet_data, indent=2))

    @classmethod
    def load(cls, path: Path, password: str) -> "Wallet":
        """
        Read and decrypt a wallet file.

        Raises:
            WalletError: If the file is missing, malformed or the password is wrong
        """
        try:
            data = json.loads(path.read_text())
            salt = bytes.fromhex(data["kdf_salt"])
            token = data["encrypted_private_key"].encode()
        except FileNotFoundError as e:
            raise WalletError(f"No wallet at {path}") from e
        except (KeyError, ValueError) as e:
            raise WalletError(f"Malformed wallet file {path}") from e

        try:
            private_key = _fernet(password, salt).decrypt(token)
        except InvalidToken as e:
            raise WalletError("Wrong password") from e

        public_key = private_key_to_public_key(private_key)
        if public_key != hex_to_bytes(data["public_key"]):
            raise WalletError(f"Wallet {path} key pair is inconsistent")

        return cls(
            name=data["name"],
            org=data["org"],
            keypair=KeyPair(private_key=private_key, public_key=public_key),
        )

    @staticmethod
    def read_summary(path: Path) -> dict:
        """Public fields of a wallet file, no password needed."""
        data = json.loads(path.read_text())
        return {k: data[k] for k in ("name", "org", "address")}
