"""Escrow controller: create, fund, release, refund and cancel.

Every function runs inside the caller's transaction. Guards raise before any
write is flushed that the caller would want to keep; on any raise the caller's
``session.begin()`` block rolls back ledger and record changes together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guardescrow import ledger
from guardescrow.addressing import derive_custody_address, verify_custody_address
from guardescrow.amounts import ESCROW_ACCOUNT_SPACE, movable_balance
from guardescrow.authorization import (
    authorize_cancel,
    authorize_fund,
    authorize_refund,
    authorize_release,
    normalize_arbiter,
)
from guardescrow.clock import Clock, SystemClock
from guardescrow.enums import EscrowState
from guardescrow.errors import (
    AddressMismatch,
    EscrowAlreadyFunded,
    EscrowNotFound,
    EscrowNotFunded,
    InvalidAmount,
    InvalidState,
    InvalidTimeout,
    UnauthorizedOperation,
)
from guardescrow.ledger import ReservePolicy
from guardescrow.models import AuditLog, Escrow
from guardescrow.state_machine import is_terminal, validate_transition

logger = logging.getLogger(__name__)


@dataclass
class EscrowRuntime:
    namespace: str
    policy: ReservePolicy
    clock: Clock

    @classmethod
    def from_settings(cls, settings, clock: Clock | None = None) -> "EscrowRuntime":
        return cls(
            namespace=settings.program_namespace,
            policy=ReservePolicy.from_settings(settings),
            clock=clock or SystemClock(),
        )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


async def _fetch_escrow(session: AsyncSession, address: str, for_update: bool) -> Escrow:
    query = select(Escrow).where(Escrow.address == address)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    escrow = result.scalar_one_or_none()
    if escrow is None:
        raise EscrowNotFound(address)
    return escrow


async def get_escrow(session: AsyncSession, runtime: EscrowRuntime, address: str) -> Escrow:
    escrow = await _fetch_escrow(session, address, for_update=False)
    _check_address(runtime, escrow)
    return escrow


async def get_escrow_for_update(session: AsyncSession, runtime: EscrowRuntime, address: str) -> Escrow:
    escrow = await _fetch_escrow(session, address, for_update=True)
    _check_address(runtime, escrow)
    return escrow


def _check_address(runtime: EscrowRuntime, escrow: Escrow) -> None:
    if not verify_custody_address(
        escrow.address, escrow.buyer, escrow.seller, escrow.addressing_proof, runtime.namespace
    ):
        raise AddressMismatch(escrow.address)


async def transition_escrow(
    session: AsyncSession,
    escrow: Escrow,
    new_state: EscrowState,
    now: int,
) -> Escrow:
    validate_transition(escrow.state, new_state)
    escrow.state = new_state
    escrow.updated_at = now
    session.add(escrow)
    return escrow


def _audit(session: AsyncSession, escrow_address: str, actor: str, action: str, now: int, **metadata) -> None:
    session.add(
        AuditLog(
            escrow_address=escrow_address,
            actor=actor,
            action=action,
            metadata_json=metadata,
            created_at=now,
        )
    )


async def create_escrow(
    session: AsyncSession,
    runtime: EscrowRuntime,
    amount: int,
    timeout_period: int,
    buyer: str,
    seller: str,
    arbiter: str | None = None,
) -> Escrow:
    if not _is_positive_int(amount):
        raise InvalidAmount(repr(amount))
    if not _is_positive_int(timeout_period):
        raise InvalidTimeout(repr(timeout_period))

    now = runtime.clock.now()
    address, bump = derive_custody_address(buyer, seller, runtime.namespace)
    await ledger.allocate_account(session, address, buyer, ESCROW_ACCOUNT_SPACE, runtime.policy)

    escrow = Escrow(
        address=address,
        buyer=buyer,
        seller=seller,
        arbiter=normalize_arbiter(buyer, arbiter),
        amount=amount,
        created_at=now,
        timeout_period=timeout_period,
        state=EscrowState.CREATED,
        addressing_proof=bump,
        updated_at=now,
    )
    session.add(escrow)
    _audit(
        session,
        address,
        buyer,
        "escrow.create",
        now,
        amount=amount,
        timeout_period=timeout_period,
        arbiter=escrow.arbiter,
    )
    await session.flush()
    logger.info("Escrow initialized: %s lamports, timeout: %s seconds", amount, timeout_period)
    return escrow


async def fund_escrow(session: AsyncSession, runtime: EscrowRuntime, address: str, caller: str) -> None:
    escrow = await get_escrow_for_update(session, runtime, address)
    decision = authorize_fund(escrow, caller)
    if not decision:
        raise UnauthorizedOperation(decision.reason)
    if escrow.state != EscrowState.CREATED:
        raise InvalidState(f"cannot fund an escrow in state {escrow.state.value}")

    now = runtime.clock.now()
    await ledger.transfer(session, escrow.buyer, escrow.address, escrow.amount, runtime.policy)
    await transition_escrow(session, escrow, EscrowState.FUNDED, now)
    _audit(session, address, caller, "escrow.fund", now, amount=escrow.amount)
    await session.flush()
    logger.info("Escrow funded with %s lamports", escrow.amount)


async def _sweep_movable(session: AsyncSession, runtime: EscrowRuntime, escrow: Escrow, destination: str) -> int:
    custody = await ledger.require_account(session, escrow.address, for_update=True)
    reserve = runtime.policy.reserve_for(custody.data_len)
    amount = movable_balance(custody.balance, reserve)
    await ledger.transfer(session, escrow.address, destination, amount, runtime.policy)
    return amount


async def release_to_seller(session: AsyncSession, runtime: EscrowRuntime, address: str, caller: str) -> int:
    escrow = await get_escrow_for_update(session, runtime, address)
    if escrow.state != EscrowState.FUNDED:
        raise EscrowNotFunded(f"escrow is {escrow.state.value}")

    now = runtime.clock.now()
    decision = authorize_release(escrow, caller, now)
    if not decision:
        raise UnauthorizedOperation(decision.reason)

    transferred = await _sweep_movable(session, runtime, escrow, escrow.seller)
    await transition_escrow(session, escrow, EscrowState.RELEASED, now)
    _audit(session, address, caller, "escrow.release", now, amount=transferred, authorized_as=decision.reason)
    await session.flush()
    logger.info("Escrow released: %s lamports to seller", transferred)
    return transferred


async def refund_to_buyer(session: AsyncSession, runtime: EscrowRuntime, address: str, caller: str) -> int:
    escrow = await get_escrow_for_update(session, runtime, address)
    if escrow.state != EscrowState.FUNDED:
        raise EscrowNotFunded(f"escrow is {escrow.state.value}")

    decision = authorize_refund(escrow, caller)
    if not decision:
        raise UnauthorizedOperation(decision.reason)

    now = runtime.clock.now()
    transferred = await _sweep_movable(session, runtime, escrow, escrow.buyer)
    await transition_escrow(session, escrow, EscrowState.REFUNDED, now)
    _audit(session, address, caller, "escrow.refund", now, amount=transferred, authorized_as=decision.reason)
    await session.flush()
    logger.info("Escrow refunded: %s lamports to buyer", transferred)
    return transferred


async def cancel_escrow(session: AsyncSession, runtime: EscrowRuntime, address: str, caller: str) -> None:
    escrow = await get_escrow_for_update(session, runtime, address)
    if escrow.state != EscrowState.CREATED:
        raise EscrowAlreadyFunded(f"escrow is {escrow.state.value}")

    decision = authorize_cancel(escrow, caller)
    if not decision:
        raise UnauthorizedOperation(decision.reason)

    now = runtime.clock.now()
    await transition_escrow(session, escrow, EscrowState.CANCELLED, now)
    returned = await ledger.close_account(session, escrow.address, escrow.buyer)
    _audit(session, address, caller, "escrow.cancel", now, returned_to_buyer=returned)
    await session.delete(escrow)
    await session.flush()
    logger.info("Escrow cancelled")


async def escrow_summary(session: AsyncSession, runtime: EscrowRuntime, escrow: Escrow) -> dict[str, Any]:
    custody = await ledger.get_account(session, escrow.address)
    custody_balance = 0 if custody is None else custody.balance
    reserve = 0 if custody is None else runtime.policy.reserve_for(custody.data_len)
    return {
        "address": escrow.address,
        "buyer": escrow.buyer,
        "seller": escrow.seller,
        "arbiter": escrow.arbiter,
        "amount": escrow.amount,
        "created_at": escrow.created_at,
        "timeout_period": escrow.timeout_period,
        "timeout_at": escrow.created_at + escrow.timeout_period,
        "state": escrow.state.value,
        "terminal": is_terminal(escrow.state),
        "addressing_proof": escrow.addressing_proof,
        "custody_balance": custody_balance,
        "minimum_reserve": reserve,
        "movable_balance": movable_balance(custody_balance, reserve),
    }
