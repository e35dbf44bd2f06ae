"""Cart models."""

from datetime import datetime
from perfumery.extensions import db


class Cart(db.Model):
    """Account cart, one per user."""
    __tablename__ = 'carts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('CartItem', backref='cart', lazy='dynamic',
                            cascade='all, delete-orphan', order_by='CartItem.id')

    def __repr__(self):
        return f'<Cart user={self.user_id}>'


class CartItem(db.Model):
    """Shopping cart item model.

    The price is never stored here; the cart always shows the product's
    current price.
    """
    __tablename__ = 'cart_items'

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey('carts.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('cart_id', 'product_id', name='uq_cart_items_cart_product'),
    )

    def __repr__(self):
        return f'<CartItem {self.product_id} x {self.quantity}>'
