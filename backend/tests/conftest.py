from __future__ import annotations

import itertools
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from herbanet.api.deps.gateways import get_notifier, get_transfer_gateway
from herbanet.core.enums import CommissionKind, PackageTier
from herbanet.core.network import register_agent
from herbanet.core.notifications import Notifier
from herbanet.core.schedule import upsert_schedule_entry
from herbanet.core.users import create_user
from herbanet.db.session import enable_sqlite_foreign_keys, get_db
from herbanet.integrations.messaging import SendResult
from herbanet.integrations.transfer import TransferResult, TransferStatus

# Ensure Base + models are registered before create_all
from herbanet.db.base import Base
import herbanet.models  # noqa: F401


# ---------------------------------------------------------
# Engine + schema lifecycle (one SQLite file per test)
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    # A file, not :memory:, so concurrent sessions share one database.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'herbanet_test.db'}",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


# ---------------------------------------------------------
# DB session for setup, operations and assertions
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# Gateway fakes
# ---------------------------------------------------------
class FakeTransferGateway:
    """Records every order; outcome / failure are set per test."""

    def __init__(self):
        self.orders = []
        self.outcome = TransferStatus.PENDING
        self.fail_with = None
        self.fee = None
        self.statuses = {}
        self._ids = itertools.count(1)

    async def transfer(self, order):
        self.orders.append(order)
        if self.fail_with is not None:
            raise self.fail_with
        return TransferResult(transfer_id=f"TRF-{next(self._ids)}", status=self.outcome, fee=self.fee)

    async def check_status(self, transfer_id):
        return self.statuses.get(transfer_id, TransferStatus.PENDING)


class FakeMessagingGateway:
    def __init__(self):
        self.sent = []

    async def send_message(self, phone, text):
        self.sent.append((phone, text))
        return SendResult(success=True, message_id=f"msg-{len(self.sent)}")


@pytest.fixture()
def transfer_gateway():
    return FakeTransferGateway()


@pytest.fixture()
def messaging_gateway():
    return FakeMessagingGateway()


@pytest.fixture()
def notifier(messaging_gateway):
    return Notifier(messaging_gateway)


# ---------------------------------------------------------
# Builders
# ---------------------------------------------------------
@pytest.fixture()
def make_agent(db):
    counter = itertools.count(1)

    async def _make(sponsor=None, province="Jawa Barat", package_tier=PackageTier.SILVER, **profile):
        n = next(counter)
        user = await create_user(db, username=f"agent{n}")
        return await register_agent(
            db,
            user_id=user.id,
            full_name=f"Agent {n}",
            province=province,
            sponsor_id=sponsor.id if sponsor is not None else None,
            package_tier=package_tier,
            **profile,
        )

    return _make


@pytest_asyncio.fixture()
async def sponsor_schedule(db):
    """SPONSOR / SILVER: level 1 = 40000, level 2 = 15000."""
    await upsert_schedule_entry(
        db, kind=CommissionKind.SPONSOR, package_tier=PackageTier.SILVER, level=1, nominal=Decimal("40000")
    )
    await upsert_schedule_entry(
        db, kind=CommissionKind.SPONSOR, package_tier=PackageTier.SILVER, level=2, nominal=Decimal("15000")
    )


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker, transfer_gateway, notifier):
    from herbanet.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_transfer_gateway] = lambda: transfer_gateway
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac
