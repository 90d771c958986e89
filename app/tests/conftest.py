"""Pytest configuration and fixtures"""

import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["GEMINI_API_KEY"] = ""

import asyncio
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base, get_db
from app.core.dependencies import get_classifier
from app.main import app
from app.models.user import User
from app.core.security import get_password_hash, create_access_token
from app.schemas.product import ProductCreate
from app.services.classifier import ClassifierError, PriceRuleClassifier
from app.services.list_service import ListService

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClassifier(PriceRuleClassifier):
    """Deterministic classifier that records calls and fails on demand"""

    def __init__(self):
        self.category = "Condiments"
        self.fail_categorize = False
        self.fail_for = set()
        self.error = ClassifierError
        self.delay = 0.0
        self.calls = []

    async def categorize(self, brand, description):
        self.calls.append(("categorize", brand, description))
        if self.fail_categorize:
            raise self.error("categorize unavailable")
        return self.category

    async def group_similar(self, descriptors):
        self.calls.append(("group_similar", [d["list_item_id"] for d in descriptors]))
        return [[d["list_item_id"] for d in descriptors]]

    async def recommend(self, descriptors):
        ids = [d["list_item_id"] for d in descriptors]
        self.calls.append(("recommend", ids))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_for.intersection(ids):
            raise self.error("recommend unavailable")
        return await super().recommend(descriptors)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture(scope="function")
def client(db, classifier):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classifier] = lambda: classifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db):
    user = User(
        email="buyer@example.com",
        name="Test Buyer",
        password_hash=get_password_hash("testpass123"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user2(db):
    user = User(
        email="other@example.com",
        name="Other Buyer",
        password_hash=get_password_hash("testpass123"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user):
    token = create_access_token({"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_user2(test_user2):
    token = create_access_token({"sub": str(test_user2.id)})
    return {"Authorization": f"Bearer {token}"}


def make_product(
    product_number="1001",
    vendor="Sysco",
    brand="Heinz",
    description="Ketchup Fancy Tomato",
    prices=None,
    **kwargs,
):
    if prices is None:
        prices = [{"unit": "CS", "price": 10.0}, {"unit": "EA", "price": 2.5}]
    return ProductCreate(
        vendor=vendor,
        brand=brand,
        description=description,
        product_number=product_number,
        pack_size=kwargs.pop("pack_size", "6/114 OZ"),
        prices=prices,
        **kwargs,
    )


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def test_list(db, test_user):
    return ListService(db).create_list(test_user, "Weekly order")


@pytest.fixture
def add_item(db, test_user, test_list, classifier):
    """Adds a product to ``test_list`` (or another list) through the service"""

    def _add(product_data=None, shopping_list=None, user=None, **product_kwargs):
        product_data = product_data or make_product(**product_kwargs)
        return asyncio.run(
            ListService(db).add_line_item(
                user or test_user,
                (shopping_list or test_list).id,
                product_data,
                classifier,
            )
        )

    return _add


@pytest.fixture
def priced_item(db, test_user, add_item):
    """
    Adds a product with a single CS sale unit and sets its quantity so that
    the item totals ``price * quantity``.
    """
    from app.services.list_item_service import ListItemService

    def _priced(product_number, price, quantity=1, vendor="Sysco", **kwargs):
        item = add_item(
            product_number=product_number,
            vendor=vendor,
            prices=[{"unit": "CS", "price": price}],
            **kwargs,
        )
        sale_unit_id = item.sale_unit_quantities[0].sale_unit_id
        return ListItemService(db).set_quantity(test_user, item.id, sale_unit_id, quantity)

    return _priced
