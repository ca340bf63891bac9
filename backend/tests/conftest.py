"""
Pytest fixtures for stockroom backend tests.

Provides an in-memory database, two isolated tenants with owner users, a
vendor and a stocked product per tenant, plus helpers for bearer auth.
"""

import pytest

from stockroom import create_app
from stockroom.extensions import db
from stockroom.services import catalog_service, tenant_service, vendor_service
from stockroom.services.auth_service import create_user

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
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
    """Empty every table before each test."""
    with app.app_context():
        # Core deletes bypass the ledger's immutability guard
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """First tenant."""
    return tenant_service.create_tenant(name="Acme Outfitters", email="ops@acme.test", plan="Pro")


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Second tenant."""
    return tenant_service.create_tenant(name="Beta Supplies", email="ops@beta.test")


@pytest.fixture(scope='function')
def owner_a(tenant_a):
    return create_user(
        tenant_id=tenant_a.id, name="Alice Owner", email="owner@acme.test", password=PASSWORD, role="OWNER"
    )


@pytest.fixture(scope='function')
def staff_a(tenant_a):
    return create_user(
        tenant_id=tenant_a.id, name="Sam Staff", email="staff@acme.test", password=PASSWORD, role="STAFF"
    )


@pytest.fixture(scope='function')
def owner_b(tenant_b):
    return create_user(
        tenant_id=tenant_b.id, name="Bob Owner", email="owner@beta.test", password=PASSWORD, role="OWNER"
    )


@pytest.fixture(scope='function')
def vendor_a(tenant_a):
    return vendor_service.create_vendor(tenant_a.id, {"name": "Northwind Wholesale", "email": "sales@northwind.test"})


@pytest.fixture(scope='function')
def vendor_b(tenant_b):
    return vendor_service.create_vendor(tenant_b.id, {"name": "Southwind Traders"})


@pytest.fixture(scope='function')
def product_a(tenant_a):
    """T-shirt with two variants in tenant A."""
    return catalog_service.create_product(tenant_a.id, {
        "name": "Basic Tee",
        "category": "Apparel",
        "brand": "Acme",
        "variants": [
            {
                "sku": "TEE-M",
                "name": "Basic Tee M",
                "attributes": {"size": "M"},
                "buying_price_cents": 400,
                "selling_price_cents": 1500,
                "stock": 10,
                "reorder_level": 3,
            },
            {
                "sku": "TEE-L",
                "name": "Basic Tee L",
                "attributes": {"size": "L"},
                "buying_price_cents": 400,
                "selling_price_cents": 1600,
                "stock": 5,
                "reorder_level": 2,
            },
        ],
    })


@pytest.fixture(scope='function')
def product_b(tenant_b):
    """Tenant B reuses the TEE-M SKU for an unrelated product."""
    return catalog_service.create_product(tenant_b.id, {
        "name": "Beta Mug",
        "variants": [{"sku": "TEE-M", "selling_price_cents": 900, "stock": 7, "reorder_level": 1}],
    })


def get_auth_token(client, email: str, password: str = PASSWORD, tenant_id: int | None = None) -> str:
    """Helper to get auth token for a user."""
    body = {'email': email, 'password': password}
    if tenant_id is not None:
        body['tenant_id'] = tenant_id
    response = client.post('/api/auth/login', json=body)
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_a_headers(client, owner_a):
    return auth_headers(get_auth_token(client, owner_a.email))


@pytest.fixture(scope='function')
def staff_a_headers(client, staff_a):
    return auth_headers(get_auth_token(client, staff_a.email))


@pytest.fixture(scope='function')
def owner_b_headers(client, owner_b):
    return auth_headers(get_auth_token(client, owner_b.email))
