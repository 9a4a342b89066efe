"""
Pytest fixtures for FarmConnect backend tests.

Provides the in-memory app, a clean database per test, one user per role
with bearer headers, and a small catalog (category, product, address).
"""

import pytest

from farmconnect import create_app
from farmconnect.extensions import db
from farmconnect.models import Product, ProductCategory, UserAddress, WarehouseLocation
from farmconnect.services import token_service
from farmconnect.services.auth_service import create_user


PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'PAYMENT_WEBHOOK_SECRET': None,
        'STRICT_ORDER_TRANSITIONS': False,
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
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


def make_user(user_type: str, email: str, **kwargs):
    user = create_user(
        email=email,
        password=PASSWORD,
        first_name=kwargs.pop("first_name", "Ama"),
        last_name=kwargs.pop("last_name", "Mensah"),
        user_type=user_type,
        **kwargs,
    )
    db.session.commit()
    return user


def auth_headers(user) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token_service.issue_access_token(user)}'}


@pytest.fixture(scope='function')
def buyer(db_session):
    return make_user("buyer", "buyer@example.com", first_name="Kofi", last_name="Boateng")


@pytest.fixture(scope='function')
def farmer(db_session):
    return make_user("farmer", "farmer@example.com", first_name="Ama", last_name="Owusu")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user("admin", "admin@example.com", first_name="Admin", last_name="User")


@pytest.fixture(scope='function')
def warehouse_user(db_session):
    return make_user("warehouse", "stores@example.com", first_name="Yaw", last_name="Asante")


@pytest.fixture(scope='function')
def buyer_headers(buyer):
    return auth_headers(buyer)


@pytest.fixture(scope='function')
def farmer_headers(farmer):
    return auth_headers(farmer)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture(scope='function')
def warehouse_headers(warehouse_user):
    return auth_headers(warehouse_user)


@pytest.fixture(scope='function')
def category(db_session):
    category = ProductCategory(name="Vegetables", slug="vegetables", display_order=0)
    db_session.add(category)
    db_session.commit()
    return category


def make_product(farmer_user, category, *, name="Tomatoes", price_cents=850, quantity=10):
    product = Product(
        farmer_id=farmer_user.farmer.id,
        category_id=category.id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        price_cents=price_cents,
        unit="kg",
        quantity_available=quantity,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def product(farmer, category):
    """GHS 8.50 per kg, 10 in stock."""
    return make_product(farmer, category)


@pytest.fixture(scope='function')
def address(buyer):
    address = UserAddress(
        user_id=buyer.id,
        street_address="12 Oxford Street",
        city="Accra",
        region="Greater Accra",
        recipient_name="Kofi Boateng",
        recipient_phone="0241234567",
        is_default=True,
    )
    db.session.add(address)
    db.session.commit()
    return address


@pytest.fixture(scope='function')
def warehouse(db_session):
    warehouse = WarehouseLocation(name="Kumasi Central", location="Adum", region="Ashanti")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


def place_order(client, headers, product_id, quantity, address_id):
    """Add a product to the cart and check out. Returns the response."""
    resp = client.post(
        "/api/v1/cart/items", json={"product_id": product_id, "quantity": quantity}, headers=headers
    )
    assert resp.status_code == 201, resp.json
    return client.post(
        "/api/v1/orders",
        json={"delivery_address_id": address_id, "payment_method": "mtn"},
        headers=headers,
    )
