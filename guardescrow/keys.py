from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from guardescrow.security import SignedRequest, decrypt_secret, encrypt_secret, generate_nonce, sign_message


@dataclass(frozen=True)
class Keypair:
    private_key: Ed25519PrivateKey

    @property
    def public_key(self) -> str:
        raw = self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return raw.hex()

    def secret_hex(self) -> str:
        raw = self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return raw.hex()

    def sign_request(
        self,
        action: str,
        escrow: str = "",
        body: dict[str, Any] | None = None,
        timestamp: int | None = None,
        nonce: str | None = None,
    ) -> SignedRequest:
        unsigned = SignedRequest(
            action=action,
            escrow=escrow,
            caller=self.public_key,
            timestamp=int(time.time()) if timestamp is None else timestamp,
            nonce=nonce or generate_nonce(),
            signature="",
            body=body or {},
        )
        return replace(unsigned, signature=sign_message(self.private_key, unsigned.message()))


def generate_keypair() -> Keypair:
    return Keypair(Ed25519PrivateKey.generate())


def keypair_from_secret(secret_hex: str) -> Keypair:
    return Keypair(Ed25519PrivateKey.from_private_bytes(bytes.fromhex(secret_hex)))


def save_keypair(keypair: Keypair, path: str, encryption_key: str | None = None) -> None:
    document = json.dumps({"public_key": keypair.public_key, "secret_key": keypair.secret_hex()})
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    if encryption_key:
        target.write_bytes(encrypt_secret(document, encryption_key))
    else:
        target.write_text(document, encoding="utf-8")


def load_keypair_from_file(path: str, encryption_key: str | None = None) -> Keypair:
    data = Path(path).read_bytes()
    document = decrypt_secret(data, encryption_key) if encryption_key else data.decode("utf-8")
    return keypair_from_secret(json.loads(document)["secret_key"])


def create_and_save_keypair(path: str, encryption_key: str | None = None) -> Keypair:
    keypair = generate_keypair()
    save_keypair(keypair, path, encryption_key)
    return keypair
