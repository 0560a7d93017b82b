from __future__ import annotations

import base64
import hashlib
import json
import os
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey


def derive_fernet_key(raw_key: str) -> bytes:
    digest = hashlib.sha256(raw_key.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_secret(plaintext: str, raw_key: str) -> bytes:
    from cryptography.fernet import Fernet

    fernet = Fernet(derive_fernet_key(raw_key))
    return fernet.encrypt(plaintext.encode("utf-8"))


def decrypt_secret(ciphertext: bytes, raw_key: str) -> str:
    from cryptography.fernet import Fernet

    fernet = Fernet(derive_fernet_key(raw_key))
    return fernet.decrypt(ciphertext).decode("utf-8")


def generate_nonce() -> str:
    return base64.urlsafe_b64encode(os.urandom(18)).decode("utf-8")


def sign_message(private_key: Ed25519PrivateKey, message: str) -> str:
    return private_key.sign(message.encode("utf-8")).hex()


def verify_ed25519(public_key_hex: str, message: str, signature_hex: str) -> bool:
    try:
        public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
        public_key.verify(bytes.fromhex(signature_hex), message.encode("utf-8"))
    except (ValueError, InvalidSignature):
        return False
    return True


def canonical_body(body: dict[str, Any]) -> str:
    return json.dumps(body, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class SignedRequest:
    action: str
    escrow: str
    caller: str
    timestamp: int
    nonce: str
    signature: str
    body: dict[str, Any] = field(default_factory=dict)

    def message(self) -> str:
        return (
            f"{self.action}|{self.escrow}|{self.caller}|"
            f"{canonical_body(self.body)}|{self.timestamp}|{self.nonce}"
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "caller": self.caller,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
            "signature": self.signature,
            **self.body,
        }
