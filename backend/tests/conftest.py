"""Test fixtures for the booking engine."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator, Callable, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from booking_engine.api import deps
from booking_engine.core.config import get_settings
from booking_engine.core.security import Actor, ActorRole, create_access_token
from booking_engine.db.base import Base
from booking_engine.db.session import dispose_engine, get_sessionmaker
from booking_engine.main import app
from booking_engine.models import RentalShop, Vehicle


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings so per-test environment overrides never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def fleet(reset_database: None, db_url: str) -> dict[str, object]:
    """Seed two shops and their vehicles.

    ``shop`` rents without a deposit; ``deposit_shop`` requires one.
    """
    sessionmaker = get_sessionmaker(db_url)
    owner_id = uuid.uuid4()
    deposit_owner_id = uuid.uuid4()

    async with sessionmaker() as session:
        shop = RentalShop(owner_id=owner_id, name="Cebu Scooters")
        deposit_shop = RentalShop(
            owner_id=deposit_owner_id, name="Makati Car Hire", requires_deposit=True
        )
        session.add_all([shop, deposit_shop])
        await session.flush()

        vehicles = [
            Vehicle(shop_id=shop.id, name=f"Scooter {index}") for index in range(1, 4)
        ]
        unlisted = Vehicle(shop_id=shop.id, name="Scooter in repair", is_available=False)
        sedan = Vehicle(shop_id=deposit_shop.id, name="Sedan")
        session.add_all([*vehicles, unlisted, sedan])
        await session.commit()

        return {
            "sessionmaker": sessionmaker,
            "owner_id": owner_id,
            "deposit_owner_id": deposit_owner_id,
            "shop_id": shop.id,
            "vehicle_id": vehicles[0].id,
            "vehicle_ids": [vehicle.id for vehicle in vehicles],
            "unlisted_vehicle_id": unlisted.id,
            "deposit_vehicle_id": sedan.id,
        }


@pytest.fixture()
def owner(fleet: dict[str, object]) -> Actor:
    return Actor(user_id=fleet["owner_id"], role=ActorRole.SHOP_OWNER)  # type: ignore[arg-type]


@pytest.fixture()
def customer() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ActorRole.CUSTOMER)


@pytest.fixture()
def token_headers() -> Callable[[Actor], dict[str, str]]:
    def _headers(actor: Actor) -> dict[str, str]:
        token = create_access_token(str(actor.user_id), actor.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture()
async def client(fleet: dict[str, object]) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture()
def set_api_clock() -> Callable[[Callable], None]:
    """Pin the clock the API hands to the engine."""

    def _set(clock) -> None:
        app.dependency_overrides[deps.get_clock] = lambda: clock

    return _set

