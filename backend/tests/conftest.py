"""
Pytest fixtures for KickLedger backend tests.

Provides test database setup, tenant fixtures, inventory/ledger factories and
the test client.
"""

from datetime import datetime, timedelta

import pytest
from kickledger import create_app
from kickledger.extensions import db
from kickledger.models import Avatar, Consignor, ConsignmentSale, Organization, User, Variant
from kickledger.models.inventory import OWNER_CONSIGNOR, OWNER_STORE
from kickledger.services.auth_service import hash_password
from kickledger.services.session_service import create_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Sole Swap", code="SOLE", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Kick Vault", code="VAULT", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash shared by every fixture user."""
    return hash_password("Password123")


@pytest.fixture(scope='function')
def user_a(db_session, org_a, password_hash):
    user = User(org_id=org_a.id, username="user_a", email="user_a@sole.test", password_hash=password_hash)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user_b(db_session, org_b, password_hash):
    user = User(org_id=org_b.id, username="user_b", email="user_b@vault.test", password_hash=password_hash)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def headers_a(user_a):
    _, token = create_session(user_a.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def headers_b(user_b):
    _, token = create_session(user_b.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def consignor_a(db_session, org_a):
    """20% percentage_split consignor in Organization A."""
    consignor = Consignor(org_id=org_a.id, name="Jordan Collector", commission_rate_bps=2000)
    db_session.add(consignor)
    db_session.commit()
    return consignor


@pytest.fixture(scope='function')
def main_avatar_a(db_session, org_a):
    avatar = Avatar(org_id=org_a.id, name="Store", avatar_type="Main")
    db_session.add(avatar)
    db_session.commit()
    return avatar


def _make_variant(org_id, *, sale_price_cents, cost_price_cents=0, consignor=None, product_name="Air Jordan 1 High"):
    variant = Variant(
        org_id=org_id,
        product_name=product_name,
        size="10",
        owner_type=OWNER_CONSIGNOR if consignor else OWNER_STORE,
        consignor_id=consignor.id if consignor else None,
        cost_price_cents=cost_price_cents,
        sale_price_cents=sale_price_cents,
    )
    db.session.add(variant)
    db.session.commit()
    return variant


def _make_pending_sales(consignor, payouts_cents, *, start=None):
    """
    Ledger rows for `consignor` with the given consignor payouts, oldest first.

    Each row is a 20% split of a sale price chosen so the consignor's share
    is exactly the requested amount.
    """
    start = start or datetime(2025, 1, 1, 12, 0, 0)
    rows = []
    for index, payout in enumerate(payouts_cents):
        sale_price = payout * 5 // 4 if payout % 4 == 0 else payout
        store = sale_price - payout
        row = ConsignmentSale(
            org_id=consignor.org_id,
            consignor_id=consignor.id,
            sale_price_cents=sale_price,
            cost_price_cents=0,
            commission_rate_bps=2000 if store else 0,
            store_commission_cents=store,
            consignor_payout_cents=payout,
            payout_status="pending",
            created_at=start + timedelta(days=index),
        )
        db.session.add(row)
        rows.append(row)
    db.session.commit()
    return rows


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def make_variant(db_session):
    """Factory: make_variant(org_id, sale_price_cents=..., cost_price_cents=..., consignor=...)."""
    return _make_variant


@pytest.fixture(scope='function')
def make_pending_sales(db_session):
    """Factory: make_pending_sales(consignor, [payout_cents, ...]) -> ledger rows, oldest first."""
    return _make_pending_sales
