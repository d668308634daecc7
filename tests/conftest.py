import os

# must be set before anything imports budgetflow.config
os.environ["BUDGETFLOW_ENV"] = "test"

from datetime import date
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from budgetflow.core.security import create_user_token
from budgetflow.database import Base, create_engine_from_config, get_db, init_db
from budgetflow.models.user import UserRole
from budgetflow.schemas.budget import BudgetCreate, BudgetItemCreate
from budgetflow.schemas.user import RegisterRequest
from budgetflow.services.user_service import UserService


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, foreign keys enforced"""
    test_engine = create_engine_from_config({"url": "sqlite+aiosqlite://"})
    await init_db(test_engine)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def make_user(db, email, roles=(UserRole.EMPLOYEE,), hourly_rate=Decimal("50"), department="Engineering"):
    return await UserService.register(
        db,
        RegisterRequest(email=email, password="secret123", first_name=email.split("@")[0].title(),
                        last_name="Tester", department=department, hourly_rate=hourly_rate),
        roles=roles,
    )


def current_user_of(user) -> dict:
    """The dict get_current_user would produce for this user's token"""
    return {"user_id": user.id, "email": user.email, "roles": user.role_list}


def budget_payload(**overrides) -> BudgetCreate:
    data = {
        "title": "Cloud infrastructure",
        "description": "Hosting for Q1",
        "department": "Engineering",
        "total_amount": Decimal("1000.00"),
        "period": "Quarterly",
        "start_date": date(2026, 1, 1),
        "end_date": date(2026, 3, 31),
        "items": [BudgetItemCreate(category="Compute", amount=Decimal("600")),
                  BudgetItemCreate(category="Storage", amount=Decimal("400"))],
    }
    data.update(overrides)
    return BudgetCreate(**data)


@pytest.fixture
async def employee(db):
    return await make_user(db, "alice@example.com")


@pytest.fixture
async def manager(db):
    return await make_user(db, "bob@example.com", roles=(UserRole.EMPLOYEE, UserRole.MANAGER))


@pytest.fixture
async def finance(db):
    return await make_user(db, "carol@example.com", roles=(UserRole.FINANCE,), department="Finance")


@pytest.fixture
async def admin(db):
    return await make_user(db, "root@example.com", roles=(UserRole.ADMIN,))


@pytest.fixture
async def client(session_factory):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}
