import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import config
import main
from database import Store, get_store, init_db, make_engine
from models import ROLE_CUSTOMER, Address, Product, User

PASSWORD = "secret1"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
    session = session_factory()
    yield Store(session)
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_store():
        session = session_factory()
        try:
            yield Store(session)
        finally:
            session.close()

    main.app.dependency_overrides[get_store] = override_get_store
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(email, admin=False, **overrides):
        body = {
            "email": email,
            "first_name": "Ada",
            "last_name": "Lovelace",
            "password": PASSWORD,
            "password_confirm": PASSWORD,
        }
        path = "/v1/register"
        if admin:
            body["secret_key"] = config.ADMIN_SECRET_KEY
            path = "/v1/register/admin"
        body.update(overrides)
        return client.post(path, json=body)

    return _register


@pytest.fixture
def customer(register):
    return register("customer@example.com").json()


@pytest.fixture
def customer_headers(customer):
    return bearer(customer["access_token"])


@pytest.fixture
def other_customer(register):
    return register("other@example.com").json()


@pytest.fixture
def other_headers(other_customer):
    return bearer(other_customer["access_token"])


@pytest.fixture
def admin_headers(register):
    return bearer(register("admin@example.com", admin=True).json()["access_token"])


@pytest.fixture
def create_product(client, admin_headers):
    def _create(price=10.0, stock=5, name="Widget", category="tools"):
        response = client.post(
            "/v1/products",
            json={
                "name": name,
                "description": f"A {name.lower()}",
                "price": price,
                "stock": stock,
                "category": category,
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_address(client):
    def _create(headers, city="Lagos"):
        response = client.post(
            "/v1/addresses",
            json={
                "first_name": "Ada",
                "last_name": "Lovelace",
                "city": city,
                "country": "Nigeria",
                "zip_code": "100001",
                "street_address": "12 Marina Road",
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def place_order(client):
    def _place(headers, address_id, items):
        return client.post(
            "/v1/orders",
            json={
                "address_id": address_id,
                "order_items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
            },
            headers=headers,
        )

    return _place


@pytest.fixture
def seeded(store):
    """A customer, one of their addresses and a product, written straight to the store."""
    with store.transaction():
        user = store.add(
            User(
                email="seed@example.com",
                first_name="Seed",
                last_name="User",
                password_hash="not-a-bcrypt-hash",
                role=ROLE_CUSTOMER,
            )
        )
        address = store.add(
            Address(
                first_name="Seed",
                last_name="User",
                city="Abuja",
                country="Nigeria",
                zip_code="900001",
                street_address="1 Unity Close",
                user_id=user.id,
            )
        )
        product = store.add(
            Product(name="Lamp", category="home", description="Desk lamp", price=12.5, stock=3)
        )
    return user, address, product
