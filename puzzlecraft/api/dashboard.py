"""
Dashboard API endpoints for Puzzle Craft.

The overview shown on the admin home page and the manual "sync to store"
action that republishes every storefront metafield.
"""
import logging
from flask import Blueprint, jsonify, g

from ..extensions import database
from ..middleware.shopify_auth import require_shopify_auth
from ..services.analytics_service import AnalyticsService
from ..services.campaign_store import CampaignStore
from ..services.discount_registry import DiscountCodeRegistry
from ..services.metafield_sync import MetafieldSync
from ..services.shopify_client import get_shopify_client

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('', methods=['GET'])
@require_shopify_auth
def get_overview():
    """Active campaign, campaign counts, discount codes and play totals."""
    store = CampaignStore()
    active = store.get_active(g.shop)
    codes = DiscountCodeRegistry().list(g.shop)

    return jsonify({
        'success': True,
        'shop': g.shop_record.to_dict(),
        'activeCampaign': active.to_dict() if active else None,
        'campaignStats': store.stats(g.shop),
        'discountCodes': [c.to_dict() for c in codes],
        'analytics': AnalyticsService(g.shop).summary(),
    })


@dashboard_bp.route('/sync', methods=['POST'])
@require_shopify_auth
def sync_store():
    """
    Republish campaign, discount code and subscription metafields.

    Response:
        {
            "success": true,
            "subscriptionActive": true,
            "campaign": {...},
            "discountCodes": {...},
            "subscription": {...}
        }
    """
    sync = MetafieldSync(get_shopify_client(g.shop_record))
    report = sync.sync_all(g.shop)

    active = report.get('subscriptionActive')
    if active is not None and g.shop_record.subscription_active != active:
        g.shop_record.subscription_active = active
        database.commit()
        logger.info(f'Subscription for {g.shop} is now {"active" if active else "inactive"}')

    status = 200 if report['success'] else 502
    return jsonify(report), status
