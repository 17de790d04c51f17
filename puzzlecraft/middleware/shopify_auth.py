"""
Shopify Session Token Authentication Middleware.

Verifies Shopify session tokens (JWT) from the embedded admin to authenticate
requests. In dev mode (SHOPIFY_AUTH_DEV_MODE) the shop query param or
X-Shop-Domain header is accepted instead.

Session tokens are issued by Shopify App Bridge and contain:
- iss: Shop domain (https://shop.myshopify.com/admin)
- dest: Shop domain
- aud: API key
- sub: Staff member GID
- exp: Expiration time
"""
import logging
import jwt
from functools import wraps
from flask import request, g, current_app
from ..extensions import db
from ..models import Shop
from ..utils.errors import ErrorCode, forbidden, not_found, unauthorized

logger = logging.getLogger(__name__)


def decode_session_token(token: str) -> dict | None:
    """
    Decode and verify a Shopify session token.

    Args:
        token: JWT session token from App Bridge

    Returns:
        Decoded token payload or None if invalid
    """
    if not token:
        return None

    api_key = current_app.config.get('SHOPIFY_API_KEY', '')
    api_secret = current_app.config.get('SHOPIFY_API_SECRET', '')
    if not api_secret:
        logger.warning('SHOPIFY_API_SECRET not configured, cannot verify session token')
        return None

    try:
        # Shopify session tokens are signed with the app's API secret
        return jwt.decode(
            token,
            api_secret,
            algorithms=['HS256'],
            audience=api_key or None,
            options={
                'verify_aud': bool(api_key),
                'verify_exp': True,
            }
        )
    except jwt.ExpiredSignatureError:
        logger.info('Session token expired')
        return None
    except jwt.InvalidAudienceError:
        logger.warning('Invalid session token audience')
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f'Invalid session token: {e}')
        return None


def get_shop_from_token(payload: dict) -> str | None:
    """
    Extract shop domain from session token payload.

    Returns:
        Shop domain (e.g., 'shop.myshopify.com')
    """
    # dest contains the shop URL: https://shop.myshopify.com/admin
    for claim in ('dest', 'iss'):
        value = payload.get(claim, '')
        if value:
            value = value.replace('https://', '').replace('http://', '')
            return value.split('/')[0]
    return None


def require_shopify_auth(f):
    """
    Decorator to require Shopify authentication.

    Sets g.shop (domain), g.shop_record (Shop), g.staff_id and g.auth_method.

    Usage:
        @require_shopify_auth
        def my_endpoint():
            shop = g.shop
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        shop = None
        staff_id = None
        authenticated_via = None
        dev_mode = current_app.config.get('SHOPIFY_AUTH_DEV_MODE', False)

        # Try session token first
        auth_header = request.headers.get('Authorization', '')
        if auth_header.startswith('Bearer '):
            token = auth_header.split(' ', 1)[1]
            payload = decode_session_token(token)
            if payload:
                shop = get_shop_from_token(payload)
                staff_id = payload.get('sub')
                authenticated_via = 'session_token'

        # Fallbacks only in dev mode
        if not shop and dev_mode:
            shop = request.args.get('shop') or request.headers.get('X-Shop-Domain')
            if shop:
                authenticated_via = 'dev_shop_param'

        if not shop:
            return unauthorized('Missing shop domain or session token')

        shop_record = Shop.query.filter_by(shop=shop).first()

        if not shop_record:
            if dev_mode:
                shop_record = Shop(shop=shop)
                db.session.add(shop_record)
                db.session.commit()
                logger.info(f'Auto-created dev shop record for {shop}')
            else:
                return not_found('This shop has not installed the app', ErrorCode.SHOP_NOT_FOUND)

        if not dev_mode and not shop_record.access_token:
            return forbidden('Please reinstall the app from the Shopify App Store')

        g.shop = shop
        g.shop_record = shop_record
        g.staff_id = staff_id
        g.auth_method = authenticated_via

        return f(*args, **kwargs)

    return decorated_function
