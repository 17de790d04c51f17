"""
Game data model - one record per completed or abandoned puzzle session.
"""
from datetime import datetime
from sqlalchemy import event
from ..extensions import db
from ..services.tier_engine import tier_for_score


class GameData(db.Model):
    """
    Play session record. Append-only: used for analytics and as the audit
    trail for issued rewards.
    """
    __tablename__ = 'game_data'

    id = db.Column(db.Integer, primary_key=True)
    shop = db.Column(db.String(255), nullable=False)
    campaign_name = db.Column(db.String(255), nullable=False)
    player_email = db.Column(db.String(255), nullable=False, index=True)

    # Results
    score = db.Column(db.Integer, nullable=False, default=0)
    completion_percentage = db.Column(db.Integer, nullable=False, default=0)
    time_used = db.Column(db.Integer, nullable=False, default=0)
    total_time = db.Column(db.Integer, nullable=False, default=0)
    puzzle_pieces = db.Column(db.Integer, nullable=False, default=4)
    completed = db.Column(db.Boolean, nullable=False, default=False)

    # Reward
    discount_code = db.Column(db.String(100))
    discount_tier = db.Column(db.String(20), nullable=False, default='bronze')
    discount_percentage = db.Column(db.Integer, nullable=False, default=0)

    # Session metadata
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    session_id = db.Column(db.String(255), nullable=False)
    is_early_submission = db.Column(db.Boolean, default=False)
    image_loaded = db.Column(db.Boolean, default=True)
    user_agent = db.Column(db.String(512), default='')
    ip_address = db.Column(db.String(64), default='unknown')
    all_logs = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_game_data_shop_campaign', 'shop', 'campaign_name'),
        db.Index('ix_game_data_score', 'score'),
    )

    def __repr__(self):
        return f'<GameData {self.id} {self.player_email} score={self.score}>'

    def to_dict(self):
        return {
            'id': self.id,
            'shop': self.shop,
            'campaignName': self.campaign_name,
            'playerEmail': self.player_email,
            'score': self.score,
            'completionPercentage': self.completion_percentage,
            'timeUsed': self.time_used,
            'totalTime': self.total_time,
            'puzzlePieces': self.puzzle_pieces,
            'completed': self.completed,
            'discountCode': self.discount_code,
            'discountTier': self.discount_tier,
            'discountPercentage': self.discount_percentage,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'sessionId': self.session_id,
            'isEarlySubmission': self.is_early_submission,
            'imageLoaded': self.image_loaded,
            'userAgent': self.user_agent,
            'ipAddress': self.ip_address,
            'allLogs': self.all_logs or [],
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


@event.listens_for(GameData, 'before_insert')
def apply_derived_fields(mapper, connection, target):
    """Tier and completion flag are always derived, never taken from the caller."""
    if target.completion_percentage == 100:
        target.completed = True
    target.discount_tier = tier_for_score(target.score or 0).tier


@event.listens_for(GameData, 'before_update')
def reject_update(mapper, connection, target):
    raise ValueError('GameData records are append-only')
