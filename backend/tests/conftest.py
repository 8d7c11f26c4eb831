# Overview: Pytest fixtures for the jewelstore backend tests.

"""
Pytest fixtures for jewelstore backend tests.

Provides an in-memory SQLite app, per-test table cleanup, two shops (tenant
isolation), one user per role, and a small catalog: a rate, a supplier and
a product in shop A.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from jewelstore import create_app
from jewelstore.extensions import db
from jewelstore.models import RateMaster, Shop, Supplier, User
from jewelstore.permissions import Role
from jewelstore.services import products_service
from jewelstore.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, *, username, role, shop=None, is_active=True) -> User:
    user = User(
        shop_id=shop.id if shop is not None else None,
        username=username,
        name=username.replace("_", " ").title(),
        password_hash=hash_password(PASSWORD, rounds=4),
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def shop_a(db_session):
    """Create Shop A (first tenant)."""
    shop = Shop(name="Shop A - Lakshmi Jewellers", code="LAKSHMI", is_active=True)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def shop_b(db_session):
    """Create Shop B (second tenant)."""
    shop = Shop(name="Shop B - Tanvi Gold", code="TANVI", is_active=True)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def super_admin(db_session):
    return make_user(db_session, username="platform_admin", role=Role.SUPER_ADMIN)


@pytest.fixture(scope='function')
def owner_a(db_session, shop_a):
    return make_user(db_session, username="owner_a", role=Role.OWNER, shop=shop_a)


@pytest.fixture(scope='function')
def sales_a(db_session, shop_a):
    return make_user(db_session, username="sales_a", role=Role.SALES, shop=shop_a)


@pytest.fixture(scope='function')
def accounts_a(db_session, shop_a):
    return make_user(db_session, username="accounts_a", role=Role.ACCOUNTS, shop=shop_a)


@pytest.fixture(scope='function')
def owner_b(db_session, shop_b):
    return make_user(db_session, username="owner_b", role=Role.OWNER, shop=shop_b)


@pytest.fixture(scope='function')
def gold_rate_a(db_session, shop_a):
    """GOLD 22K at 6000/g in Shop A, effective from the start of 2024."""
    rate = RateMaster(
        shop_id=shop_a.id,
        metal_type="GOLD",
        purity="22K",
        rate_per_gram=Decimal("6000.00"),
        effective_date=datetime(2024, 1, 1),
        rate_source="MANUAL",
        is_active=True,
    )
    db_session.add(rate)
    db_session.commit()
    return rate


@pytest.fixture(scope='function')
def supplier_a(db_session, shop_a):
    supplier = Supplier(shop_id=shop_a.id, name="Kalyan Bullion", phone="9800000001")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def supplier_b(db_session, shop_b):
    supplier = Supplier(shop_id=shop_b.id, name="Mehta Traders", phone="9800000002")
    db_session.add(supplier)
    db_session.commit()
    return supplier


def make_product(shop, **overrides):
    patch = {
        "name": "Temple Necklace",
        "metal_type": "GOLD",
        "purity": "22K",
        "gross_weight": Decimal("12.500"),
        "net_weight": Decimal("10.000"),
        "wastage_percent": Decimal("8"),
        "making_charges": Decimal("2500"),
        "stone_value": Decimal("0"),
    }
    patch.update(overrides)
    return products_service.create_product(shop_id=shop.id, patch=patch)


@pytest.fixture(scope='function')
def product_a(db_session, shop_a, gold_rate_a):
    """Priced from gold_rate_a: 10g * 1.08 * 6000 + 2500 = 67300.00"""
    return make_product(shop_a, barcode="NK-001", collection_name="Bridal")


@pytest.fixture(scope='function')
def product_b(db_session, shop_b):
    return make_product(shop_b, name="Silver Anklet", metal_type="SILVER", purity="925",
                        gross_weight=Decimal("40"), net_weight=Decimal("38"), barcode="AN-001")


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def login(client):
    """Log a fixture user in and return request headers."""
    def _login(user: User) -> dict:
        token = get_auth_token(client, user.username)
        assert token, f"login failed for {user.username}"
        return auth_headers(token)
    return _login
