"""
Shared fixtures for the Puzzle Craft test suite.

Tests run against the testing config: in-memory SQLite, dev-mode auth via
the X-Shop-Domain header and a NullCache. Shopify is never called; tests
that need it patch get_shopify_client with the mock_shopify fixture.
"""
import pytest
from unittest.mock import MagicMock

from puzzlecraft import create_app
from puzzlecraft.extensions import db
from puzzlecraft.models import Shop

SHOP_DOMAIN = 'puzzle-test.myshopify.com'
INSTALLED_SHOP_DOMAIN = 'installed-puzzle.myshopify.com'


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def shop_domain(app):
    """A shop record without an access token (dev-mode admin only)."""
    with app.app_context():
        db.session.add(Shop(shop=SHOP_DOMAIN))
        db.session.commit()
    return SHOP_DOMAIN


@pytest.fixture
def installed_shop(app):
    """A shop with a stored access token and an active subscription."""
    with app.app_context():
        db.session.add(Shop(
            shop=INSTALLED_SHOP_DOMAIN,
            access_token='shpat_test_token',
            subscription_active=True,
            plan='Puzzle Craft Pro',
        ))
        db.session.commit()
    return INSTALLED_SHOP_DOMAIN


@pytest.fixture
def auth_headers(shop_domain):
    """Dev-mode admin headers for the token-less shop."""
    return {
        'X-Shop-Domain': shop_domain,
        'Content-Type': 'application/json'
    }


@pytest.fixture
def installed_headers(installed_shop):
    """Dev-mode admin headers for the installed shop."""
    return {
        'X-Shop-Domain': installed_shop,
        'Content-Type': 'application/json'
    }


def _created_discount(code, title, percentage, valid_days=365):
    return {
        'success': True,
        'discount_id': f'gid://shopify/DiscountCodeNode/{code}',
        'title': title,
        'code': code,
        'percentage': percentage,
        'starts_at': '2026-01-01T00:00:00Z',
        'ends_at': '2027-01-01T00:00:00Z',
    }


@pytest.fixture
def mock_shopify():
    """ShopifyClient double where every call succeeds."""
    client = MagicMock()
    client.shop_domain = INSTALLED_SHOP_DOMAIN
    client.get_app_installation_id.return_value = 'gid://shopify/AppInstallation/1'
    client.get_shop_id.return_value = 'gid://shopify/Shop/1'
    client.get_shop_metafield.return_value = None
    client.set_metafields.return_value = {'success': True, 'metafields': []}
    client.delete_metafields.return_value = {'success': True, 'deleted': []}
    client.get_discount_node.side_effect = lambda discount_id: {'id': discount_id}
    client.create_discount_code.side_effect = _created_discount
    client.get_active_subscriptions.return_value = [
        {'id': 'gid://shopify/AppSubscription/1', 'name': 'Puzzle Craft Pro', 'status': 'ACTIVE', 'test': True}
    ]
    return client
