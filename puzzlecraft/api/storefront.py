"""
Public storefront endpoints used by the puzzle widget.

These are called cross-origin from the merchant's theme, carry no session
token, and answer in the flat {"success": false, "error": ...} shape the
widget expects. CORS is configured per route in create_app().
"""
import logging
from datetime import datetime
from flask import Blueprint, request, jsonify, current_app

from ..models import Shop
from ..services.campaign_store import CampaignStore
from ..services.discount_registry import DiscountCodeRegistry
from ..services.game_intake import GameSubmissionIntake, decode_submission, normalize_shop
from ..services.shopify_client import get_shopify_client
from ..utils.cache import cache, storefront_codes_key
from ..utils.errors import storefront_error
from ..utils.exceptions import PuzzleCraftError

logger = logging.getLogger(__name__)

storefront_bp = Blueprint('storefront', __name__)

NOT_INSTALLED_MESSAGE = 'Shop has not completed app installation'


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + 'Z'


def client_ip() -> str:
    """First X-Forwarded-For hop, then X-Real-IP."""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or 'unknown'


def registry_for(shop: str):
    """Registry bound to the shop's Shopify client, or None without a token."""
    shop_record = Shop.query.filter_by(shop=shop).first() if shop else None
    if not shop_record or not shop_record.access_token:
        return None
    return DiscountCodeRegistry(get_shopify_client(shop_record))


def storefront_codes(shop: str):
    """
    Validated discount codes for the widget, cached per shop.

    Returns:
        Tuple of (codes, auth_error)
    """
    key = storefront_codes_key(shop)
    cached = cache.get(key)
    if cached is not None:
        return cached, None

    registry = registry_for(shop)
    if registry is None:
        return [], NOT_INSTALLED_MESSAGE

    codes = [code.to_metafield_entry() for code in registry.list_valid(shop)['valid_codes']]
    cache.set(key, codes, timeout=current_app.config.get('STOREFRONT_CACHE_TIMEOUT', 60))
    return codes, None


@storefront_bp.errorhandler(PuzzleCraftError)
def handle_storefront_error(error):
    if error.status_code < 500:
        return storefront_error(error.message, error.status_code)
    logger.error(f'Storefront request failed: {error.message}')
    extra = {}
    if request.endpoint == 'storefront.get_puzzle_config':
        extra = {'campaign': None, 'discountCodes': []}
    return storefront_error(getattr(error, 'public_message', None) or 'Internal server error', 500, **extra)


@storefront_bp.after_request
def storefront_headers(response):
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    # Preflights are answered by flask-cors
    if request.endpoint == 'storefront.get_puzzle_config' and request.method != 'OPTIONS':
        response.headers['Access-Control-Allow-Origin'] = '*'
    return response


@storefront_bp.route('/config', methods=['GET'])
def get_puzzle_config():
    """
    Active campaign and discount codes for a shop.

    Query params:
        shop: shop domain, protocol and trailing slash are ignored

    Response:
        {
            "success": true,
            "shop": "store.myshopify.com",
            "campaign": {...} | null,
            "discountCodes": [...],
            "timestamp": "..."
        }
    """
    raw_shop = request.args.get('shop', '')
    if not raw_shop.strip():
        return storefront_error('Shop parameter is required', 400, campaign=None, discountCodes=[])

    shop = normalize_shop(raw_shop)
    campaign = CampaignStore().get_active(shop)
    codes, auth_error = storefront_codes(shop)

    body = {
        'success': True,
        'shop': shop,
        'campaign': campaign.to_dict() if campaign else None,
        'discountCodes': codes,
        'timestamp': _timestamp(),
    }
    if auth_error:
        body['authError'] = auth_error
    return jsonify(body)


@storefront_bp.route('/submit', methods=['GET'])
def submit_status():
    return jsonify({
        'success': True,
        'message': 'Puzzle API endpoint is working',
        'timestamp': _timestamp(),
    })


@storefront_bp.route('/submit', methods=['POST'])
def submit_game():
    """
    Record one play session.

    Accepts JSON or application/x-www-form-urlencoded bodies with the
    camelCase fields sent by the widget.

    Response:
        {
            "success": true,
            "gameId": 12,
            "discountTier": "gold",
            "discountCode": "PUZZLE25",
            "discountPercentage": 25,
            "timestamp": "..."
        }
    """
    submission = decode_submission(request.get_data(), request.content_type)
    registry = registry_for(submission.shop)

    record = GameSubmissionIntake(registry).submit(
        submission,
        user_agent=request.headers.get('User-Agent', ''),
        ip_address=client_ip(),
    )

    return jsonify({
        'success': True,
        'message': 'Game data saved successfully',
        'gameId': record.id,
        'sessionId': record.session_id,
        'discountTier': record.discount_tier,
        'discountCode': record.discount_code,
        'discountPercentage': record.discount_percentage,
        'completed': record.completed,
        'timestamp': _timestamp(),
    })
