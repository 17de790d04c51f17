"""
Metafield Sync for Puzzle Craft.

Projects the active campaign and the valid discount codes into Shopify
metafields, which is how the storefront widget and theme extension read
their configuration without app authentication.

- Campaign fields are owned by the app installation, so the installation id
  is resolved on every publish.
- The discount code list and the subscription flag are owned by the shop.
- The code list is replaced wholesale (delete, then set) so no stale entry
  survives a change.

Failures come back as {'success': False, 'errors' | 'error': ...}. Nothing is
retried here; POST /api/dashboard/sync and `flask campaigns sync` republish
everything.
"""
import json
import logging
from typing import Dict, Any, List, Optional

from flask import current_app

from ..models.campaign import Campaign
from ..utils.exceptions import ShopifyError
from .campaign_store import CampaignStore
from .discount_registry import DiscountCodeRegistry

logger = logging.getLogger(__name__)

# (metafield key, Campaign attribute, Shopify type)
CAMPAIGN_FIELDS = (
    ('name', 'name', 'single_line_text_field'),
    ('imageUrl', 'image_url', 'single_line_text_field'),
    ('puzzlePieces', 'puzzle_pieces', 'number_integer'),
    ('widgetPosition', 'widget_position', 'single_line_text_field'),
    ('timer', 'timer', 'number_integer'),
)

SUBSCRIPTION_KEY = 'subscription_active'


def build_campaign_metafields(campaign: Optional[Campaign], owner_id: str, namespace: str) -> List[Dict[str, Any]]:
    """
    Metafield inputs for the active campaign.

    Empty values are left out. Without an active campaign only
    isActive = "false" is published so the widget hides itself.
    """
    def field(key, value, type_):
        return {
            'ownerId': owner_id,
            'namespace': namespace,
            'key': key,
            'value': str(value),
            'type': type_,
        }

    if campaign is None:
        return [field('isActive', 'false', 'single_line_text_field')]

    metafields = []
    for key, attr, type_ in CAMPAIGN_FIELDS:
        value = getattr(campaign, attr)
        if value is None or value == '':
            continue
        metafields.append(field(key, value, type_))

    metafields.append(field('isActive', 'true' if campaign.is_active else 'false', 'single_line_text_field'))
    return metafields


class MetafieldSync:
    """
    Publishes Puzzle Craft state to Shopify metafields for one shop.

    Usage:
        sync = MetafieldSync(get_shopify_client(shop))
        report = sync.sync_all(shop)
    """

    def __init__(self, shopify_client, campaign_store: CampaignStore = None,
                 registry: DiscountCodeRegistry = None, namespace: str = None):
        self.client = shopify_client
        self.campaign_store = campaign_store or CampaignStore()
        self.registry = registry or DiscountCodeRegistry(shopify_client)
        self.namespace = namespace or current_app.config.get('METAFIELD_NAMESPACE', 'puzzle_craft')
        self.codes_namespace = current_app.config.get('DISCOUNT_CODES_NAMESPACE', 'codes')
        self.codes_key = current_app.config.get('DISCOUNT_CODES_KEY', 'puzzle_craft_discount_codes')

    def publish_campaign(self, shop: str) -> Dict[str, Any]:
        """Publish the shop's active campaign in one metafieldsSet call."""
        try:
            owner_id = self.client.get_app_installation_id()
        except ShopifyError as e:
            logger.error(f'Could not resolve app installation for {shop}: {e}')
            return {'success': False, 'error': str(e)}

        campaign = self.campaign_store.get_active(shop)
        metafields = build_campaign_metafields(campaign, owner_id, self.namespace)

        result = dict(self.client.set_metafields(metafields))
        if not result.get('success'):
            logger.warning(f'Campaign metafield sync failed for {shop}: {result.get("errors") or result.get("error")}')
        else:
            logger.info(f'Published campaign metafields for {shop} ({len(metafields)} fields)')

        result['campaign'] = campaign.to_dict() if campaign else None
        return result

    def publish_discount_codes(self, shop: str) -> Dict[str, Any]:
        """
        Replace the published discount code list with the registry's valid codes.

        An empty list only removes the existing value.
        """
        try:
            owner_id = self.client.get_shop_id()
            valid_codes = self.registry.list_valid(shop)['valid_codes']
            existing = self.client.get_shop_metafield(self.codes_namespace, self.codes_key)
        except ShopifyError as e:
            logger.error(f'Discount code sync failed for {shop}: {e}')
            return {'success': False, 'error': str(e)}

        entries = [code.to_metafield_entry() for code in valid_codes]
        identifier = {'ownerId': owner_id, 'namespace': self.codes_namespace, 'key': self.codes_key}

        if existing:
            deleted = self.client.delete_metafields([identifier])
            if not deleted.get('success'):
                logger.warning(f'Could not clear discount code metafield for {shop}: '
                               f'{deleted.get("errors") or deleted.get("error")}')
                return deleted

        if not entries:
            return {'success': True, 'codes': [], 'deleted': bool(existing)}

        result = dict(self.client.set_metafields([dict(identifier, value=json.dumps(entries), type='json')]))
        if not result.get('success'):
            logger.warning(f'Discount code metafield sync failed for {shop}: {result.get("errors") or result.get("error")}')
        result['codes'] = entries
        return result

    def publish_subscription_status(self, active: bool) -> Dict[str, Any]:
        """Set the subscription_active flag the theme extension checks."""
        try:
            owner_id = self.client.get_shop_id()
        except ShopifyError as e:
            return {'success': False, 'error': str(e)}

        return self.client.set_metafields([{
            'ownerId': owner_id,
            'namespace': self.namespace,
            'key': SUBSCRIPTION_KEY,
            'value': 'true' if active else 'false',
            'type': 'single_line_text_field',
        }])

    def check_subscription(self) -> Optional[bool]:
        """True if the installation has an active subscription, None if unknown."""
        try:
            return len(self.client.get_active_subscriptions()) > 0
        except ShopifyError as e:
            logger.warning(f'Could not check app subscription: {e}')
            return None

    def sync_all(self, shop: str, subscription_active: bool = None) -> Dict[str, Any]:
        """Run every publish step and report each result."""
        if subscription_active is None:
            subscription_active = self.check_subscription()

        report = {
            'subscriptionActive': subscription_active,
            'campaign': self.publish_campaign(shop),
            'discountCodes': self.publish_discount_codes(shop),
        }
        if subscription_active is not None:
            report['subscription'] = self.publish_subscription_status(subscription_active)

        report['success'] = all(
            report[key].get('success') for key in ('campaign', 'discountCodes', 'subscription') if key in report
        )
        return report
