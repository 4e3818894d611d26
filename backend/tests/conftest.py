"""
Pytest fixtures for salesdesk backend tests.

Provides a fresh in-memory database per test, an admin and two journalists,
their Actors, and helpers for building clients and sales.
"""

from datetime import date
from decimal import Decimal

import pytest

from salesdesk import create_app
from salesdesk.extensions import db
from salesdesk.models import Client, Sale, SaleStatus, User
from salesdesk.money import compute_commission
from salesdesk.roles import Actor, Role
from salesdesk.services.auth_service import hash_password
from salesdesk.services.token_service import issue_token

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def password_hash():
    """Hash once; bcrypt at cost 12 is too slow to repeat for every user."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'LOG_DIR': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def _make_user(password_hash, email, first_name, last_name, role, is_active=True):
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        is_active=is_active,
        password_hash=password_hash,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(app, password_hash):
    return _make_user(password_hash, "admin@salesdesk.test", "Ada", "Admin", Role.ADMIN)


@pytest.fixture(scope='function')
def journalist(app, password_hash):
    return _make_user(password_hash, "jane@salesdesk.test", "Jane", "Moyo", Role.JOURNALIST)


@pytest.fixture(scope='function')
def journalist_b(app, password_hash):
    return _make_user(password_hash, "tom@salesdesk.test", "Tom", "Banda", Role.JOURNALIST)


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, email=user.email, role=user.role, name=user.full_name)


@pytest.fixture(scope='function')
def admin(admin_user):
    return actor_for(admin_user)


@pytest.fixture(scope='function')
def jane(journalist):
    return actor_for(journalist)


@pytest.fixture(scope='function')
def tom(journalist_b):
    return actor_for(journalist_b)


@pytest.fixture(scope='function')
def ad_client(admin_user):
    """An advertiser added by the admin."""
    client = Client(client_name="Acme Motors", phone_number="+263 77 123 4567", added_by_user_id=admin_user.id)
    db.session.add(client)
    db.session.commit()
    return client


@pytest.fixture(scope='function')
def make_sale(ad_client):
    """Insert a sale row directly, bypassing the service layer."""

    def _make(journalist_id, amount="100.00", status=SaleStatus.PENDING, rate="10.00", client_id=None,
              ad_type="Print", payment_method="Cash", payment_date=None):
        amount = Decimal(amount)
        rate = Decimal(rate)
        sale = Sale(
            client_id=client_id or ad_client.id,
            journalist_id=journalist_id,
            amount=amount,
            payment_method=payment_method,
            payment_date=payment_date or date.today(),
            ad_type=ad_type,
            commission_rate=rate,
            commission_amount=compute_commission(amount, rate),
            status=status,
        )
        db.session.add(sale)
        db.session.commit()
        return sale

    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(issue_token(admin_user))


@pytest.fixture(scope='function')
def jane_headers(journalist):
    return auth_headers(issue_token(journalist))


@pytest.fixture(scope='function')
def tom_headers(journalist_b):
    return auth_headers(issue_token(journalist_b))
