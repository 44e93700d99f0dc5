import os

# Settings are read at import time; these must exist before `app` is imported.
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("DATABASE_NAME", "shopops_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.core.database import init_db
from app.core.security import create_access_token, get_password_hash
from app.models.user import User
from app.schemas.business import BusinessCreate
from app.schemas.product import ProductCreate
from app.services import business_service, inventory_service

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
async def db():
    """A fresh in-memory database for every test."""
    client = AsyncMongoMockClient()
    await init_db(client=client)
    yield client


async def make_user(email: str) -> User:
    user = User(
        email=email,
        first_name="Test",
        last_name="Owner",
        hashed_password=get_password_hash(TEST_PASSWORD),
    )
    await user.insert()
    return user


@pytest.fixture
async def owner():
    return await make_user("owner@example.com")


@pytest.fixture
async def stranger():
    return await make_user("stranger@example.com")


@pytest.fixture
async def business(owner):
    return await business_service.create_business(
        owner.id, BusinessCreate(name="Corner Shop", business_type="retail")
    )


@pytest.fixture
def make_product(business, owner):
    async def _make(name="Rice", stock=10, min_stock=0, max_stock=0, cost_price=5.0, selling_price=8.0):
        return await inventory_service.create_product(
            business.id,
            owner.id,
            ProductCreate(
                name=name,
                cost_price=cost_price,
                selling_price=selling_price,
                stock=stock,
                min_stock=min_stock,
                max_stock=max_stock,
            ),
        )
    return _make


@pytest.fixture
async def product(make_product):
    return await make_product()


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client():
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


@pytest.fixture
def stranger_headers(stranger):
    return auth_headers(stranger)
