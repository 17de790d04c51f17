"""
Campaign API endpoints.

Admin CRUD for puzzle campaigns. Every successful change republishes the
active campaign to the storefront metafields; a failed publish is logged and
retried by the next dashboard sync rather than failing the request.
"""
import logging
from flask import Blueprint, request, jsonify, g

from ..middleware.shopify_auth import require_shopify_auth
from ..services.campaign_store import CampaignStore
from ..services.image_storage import ImageStorage, generate_unique_filename, validate_image
from ..services.metafield_sync import MetafieldSync
from ..services.shopify_client import get_shopify_client
from ..utils.coercion import request_object
from ..utils.exceptions import PuzzleCraftError

logger = logging.getLogger(__name__)

campaigns_bp = Blueprint('campaigns', __name__)


def republish_campaign(shop_record) -> dict:
    """Push the active campaign to Shopify, logging instead of raising."""
    try:
        sync = MetafieldSync(get_shopify_client(shop_record))
        result = sync.publish_campaign(shop_record.shop)
    except PuzzleCraftError as e:
        logger.warning(f'Skipped campaign metafield sync for {shop_record.shop}: {e.message}')
        return {'success': False, 'error': e.message}
    return {'success': result.get('success', False)}


@campaigns_bp.route('', methods=['GET'])
@require_shopify_auth
def list_campaigns():
    """List the shop's campaigns, newest first."""
    store = CampaignStore()
    campaigns = store.list(g.shop)
    active = next((c for c in campaigns if c.is_active), None)

    return jsonify({
        'success': True,
        'campaigns': [c.to_dict() for c in campaigns],
        'activeCampaignId': active.id if active else None,
        'stats': store.stats(g.shop),
    })


@campaigns_bp.route('/stats', methods=['GET'])
@require_shopify_auth
def campaign_stats():
    return jsonify({'success': True, 'stats': CampaignStore().stats(g.shop)})


@campaigns_bp.route('', methods=['POST'])
@require_shopify_auth
def create_campaign():
    """
    Create a campaign and make it the active one.

    Accepts JSON with an imageUrl, or multipart form data with an `image`
    file which is uploaded to S3 after the other fields validate.

    Response:
        {"success": true, "campaign": {...}, "sync": {"success": true}}
    """
    store = CampaignStore()
    image = request.files.get('image')

    if image is not None:
        fields = request.form.to_dict()
        store.validate(fields, require_image=False)

        data = image.read()
        validate_image(image.filename, len(data))

        storage = ImageStorage()
        storage.ensure_configured()
        fields['imageUrl'] = storage.upload(
            data,
            generate_unique_filename(image.filename, g.shop),
            image.mimetype
        )
    else:
        fields = request_object(request.get_json(silent=True)) or request.form.to_dict()

    campaign = store.create(g.shop, fields)
    sync = republish_campaign(g.shop_record)

    return jsonify({
        'success': True,
        'message': 'Campaign created successfully',
        'campaign': campaign.to_dict(),
        'sync': sync,
    }), 201


@campaigns_bp.route('/<int:campaign_id>', methods=['GET'])
@require_shopify_auth
def get_campaign(campaign_id):
    campaign = CampaignStore().get(campaign_id, g.shop)
    return jsonify({'success': True, 'campaign': campaign.to_dict()})


@campaigns_bp.route('/<int:campaign_id>', methods=['PUT', 'PATCH'])
@require_shopify_auth
def update_campaign(campaign_id):
    """Rename a campaign (and optionally set isActive)."""
    data = request_object(request.get_json(silent=True))
    campaign = CampaignStore().update(campaign_id, g.shop, data)
    sync = republish_campaign(g.shop_record)

    return jsonify({
        'success': True,
        'message': 'Campaign updated successfully',
        'campaign': campaign.to_dict(),
        'sync': sync,
    })


@campaigns_bp.route('/<int:campaign_id>/toggle', methods=['POST'])
@require_shopify_auth
def toggle_campaign(campaign_id):
    """
    Activate or deactivate a campaign.

    Request body (optional):
        {"isActive": true}   # omitted => flip the current state
    """
    store = CampaignStore()
    data = request_object(request.get_json(silent=True))

    if 'isActive' in data:
        campaign = store.update(campaign_id, g.shop, {'isActive': data['isActive']})
    else:
        campaign = store.toggle(campaign_id, g.shop)

    sync = republish_campaign(g.shop_record)
    state = 'activated' if campaign.is_active else 'deactivated'

    return jsonify({
        'success': True,
        'message': f'Campaign {state} successfully',
        'campaign': campaign.to_dict(),
        'sync': sync,
    })


@campaigns_bp.route('/<int:campaign_id>', methods=['DELETE'])
@require_shopify_auth
def delete_campaign(campaign_id):
    CampaignStore().delete(campaign_id, g.shop)
    sync = republish_campaign(g.shop_record)

    return jsonify({
        'success': True,
        'message': 'Campaign deleted successfully',
        'sync': sync,
    })
