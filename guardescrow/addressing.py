from __future__ import annotations

import hashlib

ESCROW_SEED = b"escrow"
DERIVATION_MARKER = b"ProgramDerivedAddress"


def _candidate(buyer: str, seller: str, bump: int, namespace: str) -> str:
    digest = hashlib.sha256()
    digest.update(ESCROW_SEED)
    digest.update(buyer.encode("utf-8"))
    digest.update(seller.encode("utf-8"))
    digest.update(bytes([bump]))
    digest.update(namespace.encode("utf-8"))
    digest.update(DERIVATION_MARKER)
    return digest.hexdigest()


def derive_custody_address(buyer: str, seller: str, namespace: str) -> tuple[str, int]:
    """Canonical custody address for a buyer/seller pair and the bump that produced it.

    Bumps are tried from 255 downwards; a candidate equal to either party identity
    is skipped so the custody account can never alias a wallet.
    """
    for bump in range(255, -1, -1):
        address = _candidate(buyer, seller, bump, namespace)
        if address not in (buyer, seller):
            return address, bump
    raise ValueError("Unable to find a viable custody address")


def verify_custody_address(address: str, buyer: str, seller: str, bump: int, namespace: str) -> bool:
    return 0 <= bump <= 255 and _candidate(buyer, seller, bump, namespace) == address
