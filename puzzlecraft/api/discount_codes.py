"""
Discount code API endpoints.

Admin management of the shop's tiered reward codes, plus the one-shot setup
action that issues the starting set of codes in Shopify.
"""
import logging
from flask import Blueprint, request, jsonify, g

from ..middleware.shopify_auth import require_shopify_auth
from ..services.discount_registry import DiscountCodeRegistry
from ..services.metafield_sync import MetafieldSync
from ..services.shopify_client import get_shopify_client
from ..utils.coercion import request_object
from ..utils.exceptions import PuzzleCraftError

logger = logging.getLogger(__name__)

discount_codes_bp = Blueprint('discount_codes', __name__)


def get_registry(with_client: bool = True) -> DiscountCodeRegistry:
    """Registry for the current shop."""
    client = get_shopify_client(g.shop_record) if with_client else None
    return DiscountCodeRegistry(client)


@discount_codes_bp.route('', methods=['GET'])
@require_shopify_auth
def list_discount_codes():
    """All codes for the shop, lowest tier first."""
    codes = get_registry(with_client=False).list(g.shop)
    return jsonify({
        'success': True,
        'discountCodes': [c.to_dict() for c in codes],
    })


@discount_codes_bp.route('/valid', methods=['GET'])
@require_shopify_auth
def list_valid_discount_codes():
    """Codes cross-checked against Shopify (may rewrite the local cache)."""
    result = get_registry().list_valid(g.shop)
    return jsonify({
        'success': True,
        'discountCodes': [c.to_dict() for c in result['valid_codes']],
        'needsUpdate': result['needs_update'],
        'checked': result['checked'],
    })


@discount_codes_bp.route('', methods=['POST'])
@require_shopify_auth
def create_discount_code():
    """
    Issue a single code in Shopify and record it.

    Request body:
        {"code": "PUZZLE40", "title": "...", "tier": "platinum", "minScore": 95, "percentage": 40}
    """
    data = request_object(request.get_json(silent=True)) or request.form.to_dict()
    code = get_registry().create(g.shop, data)

    return jsonify({
        'success': True,
        'message': 'Discount code created successfully',
        'discountCode': code.to_dict(),
    }), 201


@discount_codes_bp.route('/<int:code_id>', methods=['PUT', 'PATCH'])
@require_shopify_auth
def update_discount_code(code_id):
    data = request_object(request.get_json(silent=True)) or request.form.to_dict()
    code = get_registry(with_client=False).update(code_id, g.shop, data)

    return jsonify({
        'success': True,
        'message': 'Discount code updated successfully',
        'discountCode': code.to_dict(),
    })


@discount_codes_bp.route('/<int:code_id>', methods=['DELETE'])
@require_shopify_auth
def delete_discount_code(code_id):
    get_registry(with_client=False).delete(code_id, g.shop)
    return jsonify({
        'success': True,
        'message': 'Discount code deleted successfully',
    })


@discount_codes_bp.route('/setup', methods=['POST'])
@require_shopify_auth
def setup_discounts():
    """
    Issue the shop's starting discount codes.

    Request body (optional):
        {"discountCodes": [{"code", "title", "tier", "minScore", "percentage"}, ...]}
        Omitted => default PUZZLE10/20/25/30 seeds.

    Response:
        {
            "success": true,
            "alreadyExists": false,
            "created": 4,
            "total": 4,
            "discounts": [...],
            "failures": [],
            "sync": {...}
        }
    """
    data = request_object(request.get_json(silent=True))
    client = get_shopify_client(g.shop_record)
    registry = DiscountCodeRegistry(client)

    result = registry.seed_defaults(g.shop, data.get('discountCodes'))

    if result['success']:
        try:
            sync = MetafieldSync(client, registry=registry)
            result['sync'] = {
                'discountCodes': sync.publish_discount_codes(g.shop),
                'subscription': sync.publish_subscription_status(True),
            }
        except PuzzleCraftError as e:
            logger.warning(f'Discount code sync after setup failed for {g.shop}: {e.message}')
            result['sync'] = {'success': False, 'error': e.message}

    status = 200 if result['success'] else 502
    if not result['alreadyExists']:
        result['message'] = f"Created {result['created']} of {result['total']} discount codes"
    return jsonify(result), status
