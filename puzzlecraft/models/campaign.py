"""
Campaign model - a configured puzzle widget for a shop.
"""
from datetime import datetime
from ..extensions import db


PUZZLE_PIECE_OPTIONS = (4, 8)
TIMER_OPTIONS = (30, 45)
WIDGET_POSITIONS = ('right-bottom', 'right-top', 'bottom-center', 'left-bottom')


class Campaign(db.Model):
    """
    Puzzle widget campaign (image, piece count, timer, position).

    At most one campaign per shop is active. The partial unique index below
    rejects a second active row, so concurrent activations cannot both win.
    """
    __tablename__ = 'campaigns'

    id = db.Column(db.Integer, primary_key=True)
    shop = db.Column(db.String(255), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    image_url = db.Column(db.String(1024), nullable=False)
    puzzle_pieces = db.Column(db.Integer, nullable=False, default=4)
    widget_position = db.Column(db.String(30), nullable=False, default='right-bottom')
    timer = db.Column(db.Integer, nullable=False, default=30)  # seconds

    is_active = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index(
            'uq_campaigns_one_active_per_shop',
            'shop',
            unique=True,
            sqlite_where=db.text('is_active'),
            postgresql_where=db.text('is_active'),
        ),
    )

    def __repr__(self):
        return f'<Campaign {self.id} {self.shop} active={self.is_active}>'

    def to_dict(self):
        return {
            'id': self.id,
            'shop': self.shop,
            'name': self.name,
            'imageUrl': self.image_url,
            'puzzlePieces': self.puzzle_pieces,
            'widgetPosition': self.widget_position,
            'timer': self.timer,
            'isActive': self.is_active,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
