"""
App lifecycle webhook handlers.
Handles uninstall, subscription changes and the mandatory privacy webhooks.
"""
from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import database
from ..services.metafield_sync import MetafieldSync
from ..services.shopify_client import get_shopify_client
from ..utils.exceptions import PuzzleCraftError
from . import require_webhook_verification


app_lifecycle_bp = Blueprint('app_lifecycle', __name__)


@app_lifecycle_bp.route('/app/uninstalled', methods=['POST'])
@require_webhook_verification
def handle_app_uninstalled():
    """
    Handle APP_UNINSTALLED webhook.

    Clears the access token and subscription flag. Campaigns, codes and game
    history are kept for a reinstall.
    """
    shop_domain = g.webhook_shop
    shop = g.webhook_shop_record
    current_app.logger.info(f'App uninstalled by {shop_domain}')

    if not shop:
        return jsonify({'success': True, 'message': 'Shop not found'})

    shop.access_token = None
    shop.subscription_active = False
    shop.uninstalled_at = datetime.utcnow()

    try:
        database.commit()
    except SQLAlchemyError as e:
        database.handle_error(e)
        current_app.logger.error(f'Error processing app uninstalled webhook: {e}')
        return jsonify({'error': 'Failed to record uninstall'}), 500

    current_app.logger.info(f'Shop {shop_domain} marked as uninstalled')
    return jsonify({
        'success': True,
        'shop': shop_domain,
        'action': 'marked_uninstalled'
    })


@app_lifecycle_bp.route('/app_subscriptions/update', methods=['POST'])
@require_webhook_verification
def handle_subscription_update():
    """
    Handle APP_SUBSCRIPTIONS_UPDATE webhook.

    Payload:
        {"app_subscription": {"admin_graphql_api_id", "name", "status", ...}}

    Stores the plan and mirrors ACTIVE/not-active into the
    subscription_active metafield the theme extension checks.
    """
    shop_domain = g.webhook_shop
    shop = g.webhook_shop_record
    subscription = (request.get_json(silent=True) or {}).get('app_subscription') or {}
    status = (subscription.get('status') or '').upper()
    active = status == 'ACTIVE'

    current_app.logger.info(f'Subscription update for {shop_domain}: {status or "unknown"}')

    if not shop:
        return jsonify({'success': True, 'message': 'Shop not found'})

    shop.subscription_active = active
    shop.plan = subscription.get('name') or shop.plan
    shop.charge_id = subscription.get('admin_graphql_api_id') or shop.charge_id
    if active:
        shop.activated_at = datetime.utcnow()

    try:
        database.commit()
    except SQLAlchemyError as e:
        database.handle_error(e)
        current_app.logger.error(f'Error saving subscription update for {shop_domain}: {e}')
        return jsonify({'error': 'Failed to record subscription update'}), 500

    synced = False
    if shop.access_token:
        try:
            result = MetafieldSync(get_shopify_client(shop)).publish_subscription_status(active)
            synced = bool(result.get('success'))
        except PuzzleCraftError as e:
            current_app.logger.warning(f'Subscription metafield sync failed for {shop_domain}: {e.message}')

    return jsonify({
        'success': True,
        'shop': shop_domain,
        'subscriptionActive': active,
        'metafieldSynced': synced,
    })


# ==================== MANDATORY PRIVACY WEBHOOKS ====================
# Puzzle Craft stores player emails only inside game history that the
# merchant owns; these requests are acknowledged and logged.

@app_lifecycle_bp.route('/gdpr/customers_data_request', methods=['POST'])
@require_webhook_verification
def handle_customers_data_request():
    current_app.logger.info(f'Customer data request received for {g.webhook_shop}')
    return jsonify({'success': True})


@app_lifecycle_bp.route('/gdpr/customers_redact', methods=['POST'])
@require_webhook_verification
def handle_customers_redact():
    current_app.logger.info(f'Customer redact request received for {g.webhook_shop}')
    return jsonify({'success': True})


@app_lifecycle_bp.route('/gdpr/shop_redact', methods=['POST'])
@require_webhook_verification
def handle_shop_redact():
    current_app.logger.info(f'Shop redact request received for {g.webhook_shop}')
    return jsonify({'success': True})
