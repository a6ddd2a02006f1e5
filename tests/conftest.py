import uuid
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

from prequel.core.database import Base, build_engine, build_sessionmaker
from prequel.core.engine import Transaction
from prequel.core.prequelize import prequelize
from prequel.main import create_app
from tests import models

# In-memory database shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Create the tables for each test and drop the db after the test is done
@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = build_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


# Create session (workers) factory
@pytest.fixture(scope="function")
def session_factory(test_engine):
    return build_sessionmaker(test_engine)


@pytest.fixture(scope="function")
def prequel(session_factory):
    return prequelize(
        {
            "User": models.User,
            "Account": models.Account,
            "Payment": models.Payment,
        },
        sessionmaker=session_factory,
    )


# Client
@pytest_asyncio.fixture(scope="function")
async def client(prequel):
    app = create_app(prequel)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


# Every commit/rollback of a prequel Transaction, in order
@pytest.fixture(scope="function")
def transaction_log(monkeypatch):
    log = []
    commit, rollback = Transaction.commit, Transaction.rollback

    async def logged_commit(self):
        log.append("commit")
        await commit(self)

    async def logged_rollback(self):
        log.append("rollback")
        await rollback(self)

    monkeypatch.setattr(Transaction, "commit", logged_commit)
    monkeypatch.setattr(Transaction, "rollback", logged_rollback)
    return log


async def add_all(session_factory, *instances):
    async with session_factory() as session:
        session.add_all(instances)
        await session.commit()
        for instance in instances:
            await session.refresh(instance)
    return instances


# Users
@pytest_asyncio.fixture(scope="function")
async def test_users(session_factory):
    # Unique emails for each test to avoid duplicates
    return await add_all(
        session_factory,
        models.User(email=f"test_{uuid.uuid4().hex[:8]}@gmail.com", role="user"),
        models.User(email=f"test_{uuid.uuid4().hex[:8]}@gmail.com", role="user"),
        models.User(email=f"admin_{uuid.uuid4().hex[:8]}@gmail.com", role="admin"),
    )


@pytest_asyncio.fixture(scope="function")
async def test_user(test_users):
    return test_users[0]


# Accounts owned by the first user
@pytest_asyncio.fixture(scope="function")
async def test_accounts(session_factory, test_user):
    return await add_all(
        session_factory,
        models.Account(name="Uzum Wallet", provider="Uzum", owner_id=test_user.id),
        models.Account(name="My Bank", provider="manual", owner_id=test_user.id),
    )
