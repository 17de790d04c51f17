"""
Discount code model - tiered reward codes issued in Shopify.
"""
from datetime import datetime
from sqlalchemy.orm import validates
from ..extensions import db


class DiscountCode(db.Model):
    """
    A per-shop tiered reward code.

    shopify_id is the GID of the redeemable discount in Shopify; rows without
    one were never issued and are not offered to players.
    """
    __tablename__ = 'discount_codes'

    id = db.Column(db.Integer, primary_key=True)
    shop = db.Column(db.String(255), nullable=False, index=True)

    code = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(255))
    tier = db.Column(db.String(20), nullable=False)  # bronze, silver, gold, platinum
    min_score = db.Column(db.Integer, nullable=False, default=0)  # 0-100
    percentage = db.Column(db.Integer, nullable=False, default=10)  # 1-100

    shopify_id = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('shop', 'code', name='uq_discount_codes_shop_code'),
    )

    @validates('code')
    def normalize_code(self, key, value):
        return value.strip().upper() if value else value

    def __repr__(self):
        return f'<DiscountCode {self.code} {self.tier}>'

    def to_dict(self):
        return {
            'id': self.id,
            'shop': self.shop,
            'code': self.code,
            'title': self.title,
            'tier': self.tier,
            'minScore': self.min_score,
            'percentage': self.percentage,
            'shopifyId': self.shopify_id,
            'isActive': self.is_active,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_metafield_entry(self):
        """Compact form published to the storefront metafield."""
        return {
            'id': self.shopify_id,
            'code': self.code,
            'title': self.title,
            'tier': self.tier,
            'minScore': self.min_score,
            'percentage': self.percentage,
        }
