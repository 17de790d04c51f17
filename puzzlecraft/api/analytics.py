"""
Analytics API endpoints for Puzzle Craft.

Play statistics and the recent game log for the admin analytics page.
"""
import logging
from flask import Blueprint, request, jsonify, g

from ..middleware.shopify_auth import require_shopify_auth
from ..services.analytics_service import AnalyticsService
from ..utils.errors import bad_request

logger = logging.getLogger(__name__)

analytics_bp = Blueprint('analytics', __name__)

MAX_GAMES_LIMIT = 500


@analytics_bp.route('/summary', methods=['GET'])
@require_shopify_auth
def get_summary():
    """
    Query params:
        campaign: optional campaign name filter
    """
    service = AnalyticsService(g.shop)
    campaign_name = request.args.get('campaign') or None

    return jsonify({
        'success': True,
        'summary': service.summary(campaign_name),
        'campaigns': service.campaign_names(),
    })


@analytics_bp.route('/games', methods=['GET'])
@require_shopify_auth
def list_games():
    """
    Recent play sessions, newest first.

    Query params:
        limit: max rows (default 100, capped at 500)
        q: substring match on player email or campaign name
        campaign: exact campaign name filter
    """
    limit = request.args.get('limit', 100, type=int)
    if limit is None or limit < 1:
        return bad_request('limit must be a positive integer')
    limit = min(limit, MAX_GAMES_LIMIT)

    games = AnalyticsService(g.shop).recent_games(
        limit=limit,
        query=request.args.get('q') or None,
        campaign_name=request.args.get('campaign') or None,
    )

    return jsonify({
        'success': True,
        'games': [game.to_dict() for game in games],
        'count': len(games),
    })
