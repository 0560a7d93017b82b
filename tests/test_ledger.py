import asyncio

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from guardescrow import ledger
from guardescrow.addressing import derive_custody_address
from guardescrow.db import create_session_factory
from guardescrow.errors import AccountAlreadyInUse
from guardescrow.escrow import create_escrow

from conftest import create_schema


async def open_file_database(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema(engine)
    return engine, create_session_factory(engine)


async def fund_wallets(factory, **balances):
    async with factory() as session:
        async with session.begin():
            for address, amount in balances.items():
                await ledger.airdrop(session, address, amount)


def test_concurrent_payments_to_new_wallet(tmp_path, runtime):
    async def scenario():
        engine, factory = await open_file_database(tmp_path)
        try:
            await fund_wallets(factory, buyer_one=1000, buyer_two=1000)
            async with factory() as second:
                assert await ledger.get_account(second, "seller") is None

                async with factory() as first:
                    async with first.begin():
                        await ledger.transfer(first, "buyer_one", "seller", 300, runtime.policy)

                await ledger.transfer(second, "buyer_two", "seller", 500, runtime.policy)
                await second.commit()

            async with factory() as session:
                assert await ledger.get_balance(session, "seller") == 800
                assert await ledger.get_balance(session, "buyer_one") == 700
                assert await ledger.get_balance(session, "buyer_two") == 500
        finally:
            await engine.dispose()

    asyncio.run(scenario())


def test_concurrent_create_for_same_pair(tmp_path, runtime, monkeypatch):
    custody_address, _ = derive_custody_address("buyer", "seller", runtime.namespace)
    lookup = ledger.get_account

    async def lookup_before_other_commit(session, address, for_update=False):
        if address == custody_address:
            return None
        return await lookup(session, address, for_update=for_update)

    async def create(factory):
        async with factory() as session:
            async with session.begin():
                return await create_escrow(
                    session, runtime, amount=1000, timeout_period=60, buyer="buyer", seller="seller"
                )

    async def scenario():
        engine, factory = await open_file_database(tmp_path)
        try:
            await fund_wallets(factory, buyer=10_000_000)
            await create(factory)
            async with factory() as session:
                reserve = await ledger.get_balance(session, custody_address)

            monkeypatch.setattr(ledger, "get_account", lookup_before_other_commit)
            with pytest.raises(AccountAlreadyInUse):
                await create(factory)
            monkeypatch.setattr(ledger, "get_account", lookup)

            async with factory() as session:
                assert await ledger.get_balance(session, "buyer") == 10_000_000 - reserve
        finally:
            await engine.dispose()

    asyncio.run(scenario())
