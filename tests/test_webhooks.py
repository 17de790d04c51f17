"""
Tests for app lifecycle webhooks with realistic Shopify payloads.

Tests cover:
- HMAC signature validation
- app/uninstalled (token cleared, data kept)
- app_subscriptions/update (plan stored, metafield mirrored)
- Mandatory privacy webhooks
"""
import json
import hmac
import hashlib
import base64
import pytest
from unittest.mock import patch

from puzzlecraft.models import Campaign, Shop
from puzzlecraft.services.campaign_store import CampaignStore

WEBHOOK_SECRET = 'test-api-secret'

SAMPLE_SUBSCRIPTION_UPDATE = {
    "app_subscription": {
        "admin_graphql_api_id": "gid://shopify/AppSubscription/1029266947",
        "name": "Puzzle Craft Pro",
        "status": "ACTIVE",
        "admin_graphql_api_shop_id": "gid://shopify/Shop/548380009",
        "created_at": "2026-01-20T12:00:00-05:00",
        "updated_at": "2026-01-20T12:00:00-05:00",
        "currency": "USD",
        "capped_amount": None,
    }
}


def generate_hmac_signature(payload: bytes, secret: str) -> str:
    """Generate Shopify-compatible HMAC signature."""
    return base64.b64encode(
        hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).digest()
    ).decode('utf-8')


def post_webhook(client, path, shop, payload=None, secret=WEBHOOK_SECRET):
    body = json.dumps(payload or {}).encode('utf-8')
    return client.post(path, data=body, headers={
        'Content-Type': 'application/json',
        'X-Shopify-Shop-Domain': shop,
        'X-Shopify-Hmac-SHA256': generate_hmac_signature(body, secret),
    })


class TestSignature:
    """Tests for HMAC verification."""

    def test_bad_signature_rejected(self, client, installed_shop):
        response = post_webhook(client, '/webhooks/app/uninstalled', installed_shop, secret='wrong-secret')

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Invalid signature'}

    def test_missing_signature_rejected(self, client, installed_shop):
        response = client.post('/webhooks/app/uninstalled', data=b'{}', headers={
            'X-Shopify-Shop-Domain': installed_shop,
        })
        assert response.status_code == 401


class TestAppUninstalled:
    """Tests for app/uninstalled."""

    def test_clears_token_and_keeps_data(self, client, app, installed_shop):
        with app.app_context():
            CampaignStore().create(installed_shop, {
                'name': 'Kept', 'imageUrl': 'https://cdn.example.com/kept.png',
            })

        response = post_webhook(client, '/webhooks/app/uninstalled', installed_shop, {'id': 548380009})

        assert response.status_code == 200
        assert response.get_json()['action'] == 'marked_uninstalled'

        with app.app_context():
            shop = Shop.query.filter_by(shop=installed_shop).first()
            assert shop.access_token is None
            assert shop.subscription_active is False
            assert shop.uninstalled_at is not None
            assert Campaign.query.filter_by(shop=installed_shop).count() == 1

    def test_unknown_shop(self, client):
        response = post_webhook(client, '/webhooks/app/uninstalled', 'ghost.myshopify.com')

        assert response.status_code == 200
        assert response.get_json()['message'] == 'Shop not found'


class TestSubscriptionUpdate:
    """Tests for app_subscriptions/update."""

    def test_active_subscription(self, client, app, installed_shop, mock_shopify):
        with patch('puzzlecraft.webhooks.app_lifecycle.get_shopify_client', return_value=mock_shopify):
            response = post_webhook(
                client, '/webhooks/app_subscriptions/update', installed_shop, SAMPLE_SUBSCRIPTION_UPDATE
            )

        data = response.get_json()
        assert data['subscriptionActive'] is True
        assert data['metafieldSynced'] is True
        payload = mock_shopify.set_metafields.call_args[0][0][0]
        assert payload['key'] == 'subscription_active'
        assert payload['value'] == 'true'

        with app.app_context():
            shop = Shop.query.filter_by(shop=installed_shop).first()
            assert shop.charge_id == 'gid://shopify/AppSubscription/1029266947'
            assert shop.activated_at is not None

    def test_cancelled_subscription(self, client, app, installed_shop, mock_shopify):
        payload = {'app_subscription': dict(SAMPLE_SUBSCRIPTION_UPDATE['app_subscription'], status='CANCELLED')}

        with patch('puzzlecraft.webhooks.app_lifecycle.get_shopify_client', return_value=mock_shopify):
            data = post_webhook(client, '/webhooks/app_subscriptions/update', installed_shop, payload).get_json()

        assert data['subscriptionActive'] is False
        assert mock_shopify.set_metafields.call_args[0][0][0]['value'] == 'false'
        with app.app_context():
            assert Shop.query.filter_by(shop=installed_shop).first().subscription_active is False

    def test_no_token_skips_metafield(self, client, shop_domain):
        data = post_webhook(
            client, '/webhooks/app_subscriptions/update', shop_domain, SAMPLE_SUBSCRIPTION_UPDATE
        ).get_json()

        assert data['subscriptionActive'] is True
        assert data['metafieldSynced'] is False


class TestPrivacyWebhooks:
    """Tests for the mandatory privacy webhooks."""

    @pytest.mark.parametrize('path', [
        '/webhooks/gdpr/customers_data_request',
        '/webhooks/gdpr/customers_redact',
        '/webhooks/gdpr/shop_redact',
    ])
    def test_acknowledged(self, client, path):
        response = post_webhook(client, path, 'any-shop.myshopify.com', {'shop_domain': 'any-shop.myshopify.com'})
        assert response.status_code == 200
        assert response.get_json() == {'success': True}

    @pytest.mark.parametrize('path', [
        '/webhooks/gdpr/customers_data_request',
        '/webhooks/gdpr/shop_redact',
    ])
    def test_signature_required(self, client, path):
        response = post_webhook(client, path, 'any-shop.myshopify.com', secret='nope')
        assert response.status_code == 401
