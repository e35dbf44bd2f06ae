"""Product model."""

from datetime import datetime
from decimal import Decimal
from perfumery.extensions import db


class Product(db.Model):
    """Perfume product."""
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    slug = db.Column(db.String(180), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    original_price = db.Column(db.Numeric(10, 2))
    stock = db.Column(db.Integer, nullable=False, default=0)

    # Perfume specific
    brand = db.Column(db.String(100), nullable=False, index=True)
    concentration = db.Column(db.String(50))  # Eau de Parfum, Eau de Toilette, Parfum
    size = db.Column(db.String(20))  # 50ml, 100ml
    scent_notes = db.Column(db.JSON)  # {"top": [...], "middle": [...], "base": [...]}
    image_url = db.Column(db.String(255))
    gender = db.Column(db.String(10), nullable=False, default='unisex')  # men, women, unisex
    is_trending = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)
    occasion = db.Column(db.JSON)  # ["casual", "evening", "office"]
    longevity = db.Column(db.String(50))
    projection = db.Column(db.String(50))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    cart_items = db.relationship('CartItem', backref='product', lazy='dynamic')

    def to_summary(self):
        """Build the summary record used by recommendation rails."""
        from perfumery.services.recommendations import ProductSummary
        return ProductSummary(
            id=self.id,
            name=self.name,
            brand=self.brand,
            slug=self.slug,
            price=Decimal(str(self.price)),
            image_url=self.image_url,
            gender=self.gender,
            concentration=self.concentration,
            scent_notes=self.scent_notes,
            is_trending=bool(self.is_trending),
            is_active=self.is_active is not False,
        )

    def __repr__(self):
        return f'<Product {self.name}>'
