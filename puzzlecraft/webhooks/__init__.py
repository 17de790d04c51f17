"""
Webhook handlers for Puzzle Craft.
Processes Shopify app lifecycle, billing and mandatory privacy webhooks.
"""
import hmac
import hashlib
import base64
import binascii
from functools import wraps
from flask import request, jsonify, current_app, g
from ..models import Shop


def verify_shopify_webhook_signature(data: bytes, hmac_header: str, secret: str) -> bool:
    """
    Verify Shopify webhook HMAC-SHA256 signature.

    Shopify signs webhooks with the app's API secret; the header carries the
    base64 digest of the raw body.

    Args:
        data: Raw request body bytes
        hmac_header: The X-Shopify-Hmac-SHA256 header value
        secret: The app API secret

    Returns:
        True if signature is valid, False otherwise
    """
    if not secret:
        current_app.logger.warning('No webhook secret configured for verification')
        return False

    if not hmac_header:
        current_app.logger.warning('No HMAC header in webhook request')
        return False

    try:
        computed_hmac = base64.b64encode(
            hmac.new(secret.encode('utf-8'), data, hashlib.sha256).digest()
        ).decode('utf-8')
        return hmac.compare_digest(computed_hmac, hmac_header)
    except (TypeError, ValueError, binascii.Error) as e:
        current_app.logger.error(f'Webhook signature verification error: {e}')
        return False


def get_shop_from_webhook_headers():
    """
    Get the Shop record from Shopify webhook headers.

    Returns:
        Shop object or None if not found
    """
    shop_domain = request.headers.get('X-Shopify-Shop-Domain', '')
    if not shop_domain:
        return None
    return Shop.query.filter_by(shop=shop_domain).first()


def require_webhook_verification(f):
    """
    Decorator to require Shopify webhook signature verification.

    Returns 401 on a bad signature. Sets g.webhook_shop (domain) and
    g.webhook_shop_record (Shop or None; privacy webhooks can arrive for
    shops we never stored).

    Usage:
        @bp.route('/app/uninstalled', methods=['POST'])
        @require_webhook_verification
        def handle_app_uninstalled():
            shop = g.webhook_shop_record
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        hmac_header = request.headers.get('X-Shopify-Hmac-SHA256', '')
        secret = current_app.config.get('SHOPIFY_API_SECRET')

        if not verify_shopify_webhook_signature(request.get_data(), hmac_header, secret):
            current_app.logger.warning(
                f'Invalid webhook signature from {request.headers.get("X-Shopify-Shop-Domain", "unknown shop")}'
            )
            return jsonify({'error': 'Invalid signature'}), 401

        g.webhook_shop = request.headers.get('X-Shopify-Shop-Domain', '')
        g.webhook_shop_record = get_shop_from_webhook_headers()
        return f(*args, **kwargs)

    return decorated_function


from .app_lifecycle import app_lifecycle_bp

__all__ = [
    'app_lifecycle_bp',
    'verify_shopify_webhook_signature',
    'require_webhook_verification',
    'get_shop_from_webhook_headers',
]
