"""Account substrate: balances, transfers, and custody account lifecycle.

All functions mutate through the given session and never commit; the caller's
transaction makes a whole escrow operation atomic.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guardescrow.amounts import minimum_reserve
from guardescrow.errors import AccountAlreadyInUse, AccountNotFound, InsufficientFunds, InvalidAmount
from guardescrow.models import Account


class ReservePolicy:
    def __init__(self, lamports_per_byte_year: int, exemption_threshold: int) -> None:
        self.lamports_per_byte_year = lamports_per_byte_year
        self.exemption_threshold = exemption_threshold

    @classmethod
    def from_settings(cls, settings) -> "ReservePolicy":
        return cls(settings.lamports_per_byte_year, settings.rent_exemption_threshold)

    def reserve_for(self, data_len: int) -> int:
        if data_len <= 0:
            return 0
        return minimum_reserve(data_len, self.lamports_per_byte_year, self.exemption_threshold)


async def get_account(session: AsyncSession, address: str, for_update: bool = False) -> Account | None:
    query = select(Account).where(Account.address == address)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def require_account(session: AsyncSession, address: str, for_update: bool = False) -> Account:
    account = await get_account(session, address, for_update=for_update)
    if account is None:
        raise AccountNotFound(address)
    return account


async def get_balance(session: AsyncSession, address: str) -> int:
    account = await get_account(session, address)
    return 0 if account is None else account.balance


INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


async def _receiving_account(session: AsyncSession, address: str) -> Account:
    """Lock the wallet at ``address``, creating it empty if it does not exist yet.

    The row is created with an insert-or-ignore so two transactions paying the
    same new wallet both end up locking one row instead of racing on the insert.
    """
    dialect = session.get_bind().dialect.name
    if dialect not in INSERTS:
        raise ValueError(f"Unsupported database dialect {dialect}")
    statement = (
        INSERTS[dialect](Account)
        .values(address=address, balance=0, data_len=0, is_custody=False)
        .on_conflict_do_nothing(index_elements=[Account.address])
    )
    await session.execute(statement)
    return await require_account(session, address, for_update=True)


async def transfer(
    session: AsyncSession,
    source: str,
    destination: str,
    amount: int,
    policy: ReservePolicy,
) -> None:
    if amount < 0:
        raise InvalidAmount(str(amount))
    if amount == 0 or source == destination:
        return
    sender = await require_account(session, source, for_update=True)
    floor = policy.reserve_for(sender.data_len) if sender.is_custody else 0
    if sender.balance - amount < floor:
        raise InsufficientFunds(f"{source} has {sender.balance}, needs {amount + floor}")
    receiver = await _receiving_account(session, destination)
    sender.balance -= amount
    receiver.balance += amount
    await session.flush()


async def allocate_account(
    session: AsyncSession,
    address: str,
    payer: str,
    data_len: int,
    policy: ReservePolicy,
) -> Account:
    """Create a custody account funded with exactly its minimum reserve, paid by ``payer``."""
    if await get_account(session, address, for_update=True) is not None:
        raise AccountAlreadyInUse(address)
    reserve = policy.reserve_for(data_len)
    funder = await require_account(session, payer, for_update=True)
    if funder.balance < reserve:
        raise InsufficientFunds(f"{payer} has {funder.balance}, needs {reserve}")
    funder.balance -= reserve
    account = Account(address=address, balance=reserve, data_len=data_len, is_custody=True)
    session.add(account)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise AccountAlreadyInUse(address) from exc
    return account


async def close_account(session: AsyncSession, address: str, destination: str) -> int:
    """Delete an account, sweeping its whole balance (reserve included) to ``destination``."""
    account = await require_account(session, address, for_update=True)
    receiver = await _receiving_account(session, destination)
    swept = account.balance
    receiver.balance += swept
    await session.delete(account)
    await session.flush()
    return swept


async def airdrop(session: AsyncSession, address: str, amount: int) -> int:
    if amount <= 0:
        raise InvalidAmount(str(amount))
    account = await _receiving_account(session, address)
    account.balance += amount
    await session.flush()
    return account.balance
