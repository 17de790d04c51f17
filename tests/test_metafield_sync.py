"""
Tests for metafield sync.

Tests cover:
- Campaign metafield building (types, empty values, no active campaign)
- Campaign publish owned by the app installation
- Discount code list replace (delete then set) owned by the shop
- Subscription flag and full sync report
"""
import json

from puzzlecraft.models import Campaign
from puzzlecraft.services.campaign_store import CampaignStore
from puzzlecraft.services.discount_registry import DiscountCodeRegistry
from puzzlecraft.services.metafield_sync import MetafieldSync, build_campaign_metafields
from puzzlecraft.utils.exceptions import ShopifyError

SHOP = 'sync-shop.myshopify.com'
INSTALLATION_ID = 'gid://shopify/AppInstallation/1'
SHOP_ID = 'gid://shopify/Shop/1'


def make_campaign(**overrides):
    fields = {
        'name': 'Spring Puzzle',
        'imageUrl': 'https://cdn.example.com/spring.png',
        'puzzlePieces': 8,
        'timer': 45,
        'widgetPosition': 'right-top',
    }
    fields.update(overrides)
    return CampaignStore().create(SHOP, fields)


class TestBuildCampaignMetafields:
    """Tests for build_campaign_metafields()."""

    def test_all_fields(self):
        """Every campaign field is published with its Shopify type."""
        campaign = Campaign(
            shop=SHOP, name='Spring', image_url='https://x/y.png',
            puzzle_pieces=8, widget_position='right-top', timer=45, is_active=True,
        )
        metafields = build_campaign_metafields(campaign, INSTALLATION_ID, 'puzzle_craft')
        by_key = {m['key']: m for m in metafields}

        assert set(by_key) == {'name', 'imageUrl', 'puzzlePieces', 'widgetPosition', 'timer', 'isActive'}
        assert by_key['puzzlePieces'] == {
            'ownerId': INSTALLATION_ID,
            'namespace': 'puzzle_craft',
            'key': 'puzzlePieces',
            'value': '8',
            'type': 'number_integer',
        }
        assert by_key['timer']['type'] == 'number_integer'
        assert by_key['name']['type'] == 'single_line_text_field'
        assert by_key['isActive']['value'] == 'true'

    def test_empty_values_skipped(self):
        """Empty values are left out of the payload."""
        campaign = Campaign(
            shop=SHOP, name='Spring', image_url='',
            puzzle_pieces=4, widget_position='right-bottom', timer=30, is_active=True,
        )
        keys = [m['key'] for m in build_campaign_metafields(campaign, INSTALLATION_ID, 'puzzle_craft')]
        assert 'imageUrl' not in keys

    def test_no_campaign_hides_widget(self):
        """Without an active campaign only isActive=false is published."""
        metafields = build_campaign_metafields(None, INSTALLATION_ID, 'puzzle_craft')
        assert [(m['key'], m['value']) for m in metafields] == [('isActive', 'false')]


class TestPublishCampaign:
    """Tests for MetafieldSync.publish_campaign()."""

    def test_publishes_active_campaign(self, app, mock_shopify):
        """One metafieldsSet call owned by the installation."""
        with app.app_context():
            make_campaign()

            result = MetafieldSync(mock_shopify).publish_campaign(SHOP)

            assert result['success'] is True
            assert result['campaign']['name'] == 'Spring Puzzle'
            mock_shopify.set_metafields.assert_called_once()
            metafields = mock_shopify.set_metafields.call_args[0][0]
            assert {m['ownerId'] for m in metafields} == {INSTALLATION_ID}
            assert {m['namespace'] for m in metafields} == {'puzzle_craft'}

    def test_installation_lookup_failure(self, app, mock_shopify):
        """A failed installation lookup is reported, nothing is written."""
        mock_shopify.get_app_installation_id.side_effect = ShopifyError('boom')
        with app.app_context():
            result = MetafieldSync(mock_shopify).publish_campaign(SHOP)

            assert result['success'] is False
            mock_shopify.set_metafields.assert_not_called()

    def test_user_errors_returned(self, app, mock_shopify):
        """metafieldsSet userErrors are passed back to the caller."""
        mock_shopify.set_metafields.return_value = {
            'success': False, 'errors': [{'field': ['value'], 'message': 'too long'}]
        }
        with app.app_context():
            make_campaign()
            result = MetafieldSync(mock_shopify).publish_campaign(SHOP)

            assert result['success'] is False
            assert result['errors'][0]['message'] == 'too long'


class TestPublishDiscountCodes:
    """Tests for MetafieldSync.publish_discount_codes()."""

    def test_sets_json_list_on_shop(self, app, mock_shopify):
        """Valid codes are published as one JSON metafield owned by the shop."""
        with app.app_context():
            DiscountCodeRegistry(mock_shopify).seed_defaults(SHOP)

            result = MetafieldSync(mock_shopify).publish_discount_codes(SHOP)

            assert result['success'] is True
            mock_shopify.delete_metafields.assert_not_called()
            payload = mock_shopify.set_metafields.call_args[0][0][0]
            assert payload['ownerId'] == SHOP_ID
            assert payload['namespace'] == 'codes'
            assert payload['key'] == 'puzzle_craft_discount_codes'
            assert payload['type'] == 'json'
            codes = json.loads(payload['value'])
            assert [c['code'] for c in codes] == ['PUZZLE10', 'PUZZLE20', 'PUZZLE25', 'PUZZLE30']
            assert codes[0]['id'] == 'gid://shopify/DiscountCodeNode/PUZZLE10'

    def test_existing_value_deleted_first(self, app, mock_shopify):
        """An existing list is deleted before the new one is set."""
        mock_shopify.get_shop_metafield.return_value = {'id': 'gid://shopify/Metafield/9', 'value': '[]'}
        with app.app_context():
            DiscountCodeRegistry(mock_shopify).seed_defaults(SHOP)

            MetafieldSync(mock_shopify).publish_discount_codes(SHOP)

            mock_shopify.delete_metafields.assert_called_once_with([{
                'ownerId': SHOP_ID, 'namespace': 'codes', 'key': 'puzzle_craft_discount_codes',
            }])
            mock_shopify.set_metafields.assert_called_once()

    def test_empty_list_only_deletes(self, app, mock_shopify):
        """With no valid codes the old value is removed and nothing set."""
        mock_shopify.get_shop_metafield.return_value = {'id': 'gid://shopify/Metafield/9', 'value': '[]'}
        with app.app_context():
            result = MetafieldSync(mock_shopify).publish_discount_codes(SHOP)

            assert result == {'success': True, 'codes': [], 'deleted': True}
            mock_shopify.set_metafields.assert_not_called()

    def test_failed_delete_stops_publish(self, app, mock_shopify):
        """If the old value cannot be removed the new one is not written."""
        mock_shopify.get_shop_metafield.return_value = {'id': 'gid://shopify/Metafield/9'}
        mock_shopify.delete_metafields.return_value = {'success': False, 'errors': [{'message': 'denied'}]}
        with app.app_context():
            DiscountCodeRegistry(mock_shopify).seed_defaults(SHOP)
            result = MetafieldSync(mock_shopify).publish_discount_codes(SHOP)

            assert result['success'] is False
            mock_shopify.set_metafields.assert_not_called()


class TestSubscriptionAndSyncAll:
    """Tests for the subscription flag and sync_all()."""

    def test_subscription_flag(self, app, mock_shopify):
        with app.app_context():
            MetafieldSync(mock_shopify).publish_subscription_status(False)

            payload = mock_shopify.set_metafields.call_args[0][0][0]
            assert payload['key'] == 'subscription_active'
            assert payload['value'] == 'false'
            assert payload['ownerId'] == SHOP_ID

    def test_check_subscription_unknown_on_error(self, app, mock_shopify):
        mock_shopify.get_active_subscriptions.side_effect = ShopifyError('down')
        with app.app_context():
            assert MetafieldSync(mock_shopify).check_subscription() is None

    def test_sync_all_report(self, app, mock_shopify):
        """sync_all publishes everything and reports each step."""
        with app.app_context():
            make_campaign()
            DiscountCodeRegistry(mock_shopify).seed_defaults(SHOP)

            report = MetafieldSync(mock_shopify).sync_all(SHOP)

            assert report['success'] is True
            assert report['subscriptionActive'] is True
            assert report['campaign']['success'] is True
            assert report['discountCodes']['success'] is True
            assert report['subscription']['success'] is True

    def test_sync_all_skips_unknown_subscription(self, app, mock_shopify):
        """An unknown subscription state is not published."""
        mock_shopify.get_active_subscriptions.side_effect = ShopifyError('down')
        with app.app_context():
            report = MetafieldSync(mock_shopify).sync_all(SHOP)

            assert report['subscriptionActive'] is None
            assert 'subscription' not in report
