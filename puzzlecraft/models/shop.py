"""
Shop model - installation and billing linkage for a Shopify store.
"""
from datetime import datetime
from ..extensions import db


class Shop(db.Model):
    """
    One row per installed shop.

    access_token is written by the OAuth install flow; it is cleared when the
    app is uninstalled.
    """
    __tablename__ = 'shops'

    id = db.Column(db.Integer, primary_key=True)
    shop = db.Column(db.String(255), unique=True, nullable=False, index=True)

    # Billing
    plan = db.Column(db.String(50), nullable=False, default='none')
    charge_id = db.Column(db.String(255))
    activated_at = db.Column(db.DateTime)
    subscription_active = db.Column(db.Boolean, nullable=False, default=False)

    # Shopify API access
    access_token = db.Column(db.String(255))
    uninstalled_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Shop {self.shop}>'

    @property
    def is_installed(self) -> bool:
        return bool(self.access_token)

    def to_dict(self):
        return {
            'id': self.id,
            'shop': self.shop,
            'plan': self.plan,
            'chargeId': self.charge_id,
            'activatedAt': self.activated_at.isoformat() if self.activated_at else None,
            'subscriptionActive': self.subscription_active,
            'installed': self.is_installed,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
