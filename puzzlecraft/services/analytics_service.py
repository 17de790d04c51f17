"""
Game analytics for Puzzle Craft.

Aggregates play sessions per shop (optionally per campaign) for the admin
analytics page.
"""
from typing import Dict, Any, List, Optional
from sqlalchemy import func, case, or_

from ..extensions import db
from ..models.game_data import GameData
from .tier_engine import TIER_ORDER


class AnalyticsService:
    """
    Usage:
        service = AnalyticsService(shop)
        summary = service.summary(campaign_name='Fall Sale')
        games = service.recent_games(limit=50, query='gmail')
    """

    def __init__(self, shop: str):
        self.shop = shop

    def _base_query(self, campaign_name: Optional[str] = None):
        query = GameData.query.filter(GameData.shop == self.shop)
        if campaign_name:
            query = query.filter(GameData.campaign_name == campaign_name)
        return query

    def summary(self, campaign_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Totals, averages and tier breakdown.

        Returns:
            Dict with totalGames, completedGames, averageScore,
            averageCompletion, uniquePlayers and tierBreakdown
        """
        filters = [GameData.shop == self.shop]
        if campaign_name:
            filters.append(GameData.campaign_name == campaign_name)

        row = db.session.query(
            func.count(GameData.id),
            func.sum(case((GameData.completed.is_(True), 1), else_=0)),
            func.avg(GameData.score),
            func.avg(GameData.completion_percentage),
            func.count(func.distinct(GameData.player_email)),
        ).filter(*filters).one()

        total, completed, avg_score, avg_completion, unique_players = row

        tier_rows = (
            db.session.query(GameData.discount_tier, func.count(GameData.id))
            .filter(*filters)
            .group_by(GameData.discount_tier)
            .all()
        )
        tier_counts = dict(tier_rows)

        return {
            'totalGames': total or 0,
            'completedGames': int(completed or 0),
            'averageScore': round(float(avg_score)) if avg_score is not None else 0,
            'averageCompletion': round(float(avg_completion)) if avg_completion is not None else 0,
            'uniquePlayers': unique_players or 0,
            'tierBreakdown': {tier: tier_counts.get(tier, 0) for tier in TIER_ORDER},
        }

    def recent_games(self, limit: int = 100, query: Optional[str] = None,
                     campaign_name: Optional[str] = None) -> List[GameData]:
        """Newest games first, optionally filtered by player email or campaign name."""
        games = self._base_query(campaign_name)
        if query:
            pattern = f'%{query.lower()}%'
            games = games.filter(or_(
                func.lower(GameData.player_email).like(pattern),
                func.lower(GameData.campaign_name).like(pattern),
            ))
        return games.order_by(GameData.timestamp.desc(), GameData.id.desc()).limit(limit).all()

    def campaign_names(self) -> List[str]:
        """Distinct campaign names with recorded games."""
        rows = (
            db.session.query(GameData.campaign_name)
            .filter(GameData.shop == self.shop)
            .distinct()
            .order_by(GameData.campaign_name)
            .all()
        )
        return [name for (name,) in rows]
