"""Stored shopper preferences."""

from datetime import datetime
from perfumery.extensions import db


class UserPreference(db.Model):
    """Top preference tags synced from the storefront tracker."""
    __tablename__ = 'user_preferences'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, unique=True)
    preferred_scent_families = db.Column(db.JSON, default=list)
    favorite_brands = db.Column(db.JSON, default=list)
    preferred_occasions = db.Column(db.JSON, default=list)
    preferred_moods = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'scentFamilies': self.preferred_scent_families or [],
            'brands': self.favorite_brands or [],
            'occasions': self.preferred_occasions or [],
            'moods': self.preferred_moods or [],
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<UserPreference user={self.user_id}>'
