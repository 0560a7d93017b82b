"""Who may move an escrow, as pure predicates over (record, caller, time).

Nothing here touches the ledger or the database; the controller asks for a
decision and raises on a refusal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class EscrowLike(Protocol):
    buyer: str
    seller: str
    arbiter: str | None
    created_at: int
    timeout_period: int


@dataclass(frozen=True)
class Authorization:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def normalize_arbiter(buyer: str, arbiter: str | None) -> str | None:
    if arbiter is None or arbiter == "" or arbiter == buyer:
        return None
    return arbiter


def is_arbiter(escrow: EscrowLike, caller: str) -> bool:
    return escrow.arbiter is not None and caller == escrow.arbiter


def timeout_reached(escrow: EscrowLike, now: int) -> bool:
    return now - escrow.created_at >= escrow.timeout_period


def authorize_release(escrow: EscrowLike, caller: str, now: int) -> Authorization:
    if caller == escrow.buyer:
        return Authorization(True, "buyer")
    if is_arbiter(escrow, caller):
        return Authorization(True, "arbiter")
    if caller == escrow.seller:
        if timeout_reached(escrow, now):
            return Authorization(True, "seller after timeout")
        remaining = escrow.timeout_period - (now - escrow.created_at)
        return Authorization(False, f"timeout period has not been reached ({remaining}s remaining)")
    return Authorization(False, "caller is not a party to this escrow")


def authorize_refund(escrow: EscrowLike, caller: str) -> Authorization:
    if caller == escrow.seller:
        return Authorization(True, "seller")
    if is_arbiter(escrow, caller):
        return Authorization(True, "arbiter")
    # Buyer-initiated refunds are granted unilaterally; seller consent is not checked here.
    if caller == escrow.buyer:
        return Authorization(True, "buyer")
    return Authorization(False, "caller is not a party to this escrow")


def authorize_cancel(escrow: EscrowLike, caller: str) -> Authorization:
    if caller == escrow.buyer:
        return Authorization(True, "buyer")
    if caller == escrow.seller:
        return Authorization(True, "seller")
    return Authorization(False, "only the buyer or seller may cancel")


def authorize_fund(escrow: EscrowLike, caller: str) -> Authorization:
    if caller == escrow.buyer:
        return Authorization(True, "buyer")
    return Authorization(False, "only the buyer may fund")
