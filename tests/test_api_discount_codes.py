"""
Tests for the discount code admin API.

Tests cover:
- Setup with default and custom codes, idempotent re-run
- Single create, update, delete
- Validity check endpoint
"""
import pytest
from unittest.mock import patch


@pytest.fixture
def shopify_patch(mock_shopify):
    """Route every get_shopify_client in the discount API to the mock."""
    with patch('puzzlecraft.api.discount_codes.get_shopify_client', return_value=mock_shopify):
        yield mock_shopify


class TestSetup:
    """Tests for POST /api/discount-codes/setup."""

    def test_default_codes(self, client, installed_headers, shopify_patch):
        response = client.post('/api/discount-codes/setup', headers=installed_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['alreadyExists'] is False
        assert data['created'] == 4
        assert data['message'] == 'Created 4 of 4 discount codes'
        assert data['sync']['discountCodes']['success'] is True
        assert shopify_patch.create_discount_code.call_count == 4

    def test_second_setup_reports_existing(self, client, installed_headers, shopify_patch):
        client.post('/api/discount-codes/setup', headers=installed_headers)
        shopify_patch.create_discount_code.reset_mock()

        data = client.post('/api/discount-codes/setup', headers=installed_headers).get_json()

        assert data['alreadyExists'] is True
        assert data['total'] == 4
        assert 'message' not in data
        shopify_patch.create_discount_code.assert_not_called()

    def test_custom_codes(self, client, installed_headers, shopify_patch):
        body = {'discountCodes': [
            {'code': 'JIGSAW15', 'title': 'Jigsaw 15', 'tier': 'bronze', 'minScore': 0, 'percentage': 15},
            {'code': 'JIGSAW35', 'title': 'Jigsaw 35', 'tier': 'platinum', 'minScore': 90, 'percentage': 35},
        ]}

        data = client.post('/api/discount-codes/setup', json=body, headers=installed_headers).get_json()

        assert data['created'] == 2
        assert [d['code'] for d in data['discounts']] == ['JIGSAW15', 'JIGSAW35']

    def test_invalid_custom_codes(self, client, installed_headers, shopify_patch):
        body = {'discountCodes': [{'code': 'BAD', 'title': 'Bad', 'tier': 'diamond', 'minScore': 0, 'percentage': 15}]}

        response = client.post('/api/discount-codes/setup', json=body, headers=installed_headers)

        assert response.status_code == 400
        shopify_patch.create_discount_code.assert_not_called()

    def test_array_body_rejected(self, client, installed_headers, shopify_patch):
        response = client.post('/api/discount-codes/setup', json=[{'code': 'X'}], headers=installed_headers)

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'VALIDATION_ERROR'
        shopify_patch.create_discount_code.assert_not_called()

    def test_all_failed_is_502(self, client, installed_headers, shopify_patch):
        shopify_patch.create_discount_code.side_effect = None
        shopify_patch.create_discount_code.return_value = {'success': False, 'error': 'Shopify down'}

        response = client.post('/api/discount-codes/setup', headers=installed_headers)

        assert response.status_code == 502
        data = response.get_json()
        assert data['created'] == 0
        assert len(data['failures']) == 4

    def test_setup_requires_token(self, client, auth_headers):
        """A shop that never finished install cannot issue codes."""
        response = client.post('/api/discount-codes/setup', headers=auth_headers)
        assert response.status_code == 500
        assert response.get_json()['error']['code'] == 'CONFIGURATION_ERROR'


class TestDiscountCodeCrud:
    """Tests for list, create, update and delete."""

    def test_create_and_list(self, client, installed_headers, shopify_patch):
        body = {'code': 'PUZZLE40', 'title': 'Puzzle 40', 'tier': 'platinum', 'minScore': 95, 'percentage': 40}

        response = client.post('/api/discount-codes', json=body, headers=installed_headers)

        assert response.status_code == 201
        created = response.get_json()['discountCode']
        assert created['shopifyId'] == 'gid://shopify/DiscountCodeNode/PUZZLE40'

        listing = client.get('/api/discount-codes', headers=installed_headers).get_json()
        assert [c['code'] for c in listing['discountCodes']] == ['PUZZLE40']

    def test_create_duplicate(self, client, installed_headers, shopify_patch):
        body = {'code': 'PUZZLE40', 'title': 'Puzzle 40', 'tier': 'platinum', 'minScore': 95, 'percentage': 40}
        client.post('/api/discount-codes', json=body, headers=installed_headers)

        response = client.post('/api/discount-codes', json=body, headers=installed_headers)

        assert response.status_code == 409

    def test_update(self, client, installed_headers, shopify_patch):
        client.post('/api/discount-codes/setup', headers=installed_headers)
        code = client.get('/api/discount-codes', headers=installed_headers).get_json()['discountCodes'][0]

        response = client.put(
            f"/api/discount-codes/{code['id']}",
            json={'percentage': 12, 'isActive': False},
            headers=installed_headers,
        )

        assert response.status_code == 200
        updated = response.get_json()['discountCode']
        assert updated['percentage'] == 12
        assert updated['isActive'] is False

    def test_update_rejects_bad_percentage(self, client, installed_headers, shopify_patch):
        client.post('/api/discount-codes/setup', headers=installed_headers)
        code = client.get('/api/discount-codes', headers=installed_headers).get_json()['discountCodes'][0]

        response = client.put(f"/api/discount-codes/{code['id']}", json={'percentage': 0}, headers=installed_headers)
        assert response.status_code == 400

    def test_delete(self, client, installed_headers, shopify_patch):
        client.post('/api/discount-codes/setup', headers=installed_headers)
        code = client.get('/api/discount-codes', headers=installed_headers).get_json()['discountCodes'][0]

        response = client.delete(f"/api/discount-codes/{code['id']}", headers=installed_headers)

        assert response.status_code == 200
        listing = client.get('/api/discount-codes', headers=installed_headers).get_json()
        assert len(listing['discountCodes']) == 3

    def test_delete_missing(self, client, installed_headers):
        response = client.delete('/api/discount-codes/999', headers=installed_headers)
        assert response.status_code == 404


class TestValidCodes:
    """Tests for GET /api/discount-codes/valid."""

    def test_all_live(self, client, installed_headers, shopify_patch):
        client.post('/api/discount-codes/setup', headers=installed_headers)

        data = client.get('/api/discount-codes/valid', headers=installed_headers).get_json()

        assert data['needsUpdate'] is False
        assert data['checked'] == 4
        assert len(data['discountCodes']) == 4

    def test_mostly_deleted_rewrites_cache(self, client, installed_headers, shopify_patch):
        client.post('/api/discount-codes/setup', headers=installed_headers)
        live = {'gid://shopify/DiscountCodeNode/PUZZLE10'}
        shopify_patch.get_discount_node.side_effect = lambda gid: {'id': gid} if gid in live else None

        data = client.get('/api/discount-codes/valid', headers=installed_headers).get_json()

        assert data['needsUpdate'] is True
        assert [c['code'] for c in data['discountCodes']] == ['PUZZLE10']
        listing = client.get('/api/discount-codes', headers=installed_headers).get_json()
        assert [c['code'] for c in listing['discountCodes']] == ['PUZZLE10']
