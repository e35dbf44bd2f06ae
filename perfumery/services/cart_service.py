"""Account cart persistence behind the /api/cart endpoints."""

import logging

from perfumery.extensions import db
from perfumery.models import Cart, CartItem, Product

logger = logging.getLogger(__name__)


def get_or_create_cart(user_id):
    """Find the user's cart, creating an empty one on first use."""
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart is None:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def serialize_cart_item(item):
    """JSON record for one cart item, priced from the product's current price."""
    product = item.product
    return {
        'id': item.id,
        'productId': item.product_id,
        'slug': product.slug,
        'name': product.name,
        'brand': product.brand,
        'price': float(product.price),
        'quantity': item.quantity,
        'imageUrl': product.image_url,
        'size': product.size,
        'scentNotes': product.scent_notes,
    }


def cart_items(user_id):
    """Serialized lines of the user's cart, in insertion order."""
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart is None:
        return []
    return [serialize_cart_item(item) for item in cart.items.all()]


def _parse_item(raw):
    """Return ``(product_id, quantity)`` or None for a malformed record."""
    if not isinstance(raw, dict):
        return None
    try:
        product_id = int(raw.get('productId'))
        quantity = int(raw.get('quantity', 1))
    except (TypeError, ValueError, OverflowError):
        return None
    if product_id <= 0 or quantity < 1:
        return None
    return product_id, quantity


def _available_products(product_ids):
    if not product_ids:
        return set()
    rows = Product.query.filter(
        Product.id.in_(product_ids),
        Product.is_active.is_(True)
    ).with_entities(Product.id).all()
    return {row.id for row in rows}


def _collect(raw_items):
    """Valid ``{product_id: quantity}`` pairs, summing repeated ids."""
    wanted = {}
    for raw in raw_items or []:
        parsed = _parse_item(raw)
        if parsed is None:
            continue
        product_id, quantity = parsed
        wanted[product_id] = wanted.get(product_id, 0) + quantity
    available = _available_products(list(wanted))
    skipped = set(wanted) - available
    if skipped:
        logger.info('Skipping unknown or inactive products %s', sorted(skipped))
    return {pid: qty for pid, qty in wanted.items() if pid in available}


def replace_cart(user_id, raw_items):
    """Make the user's cart exactly ``raw_items``."""
    cart = get_or_create_cart(user_id)
    wanted = _collect(raw_items)

    CartItem.query.filter_by(cart_id=cart.id).delete()
    for product_id, quantity in wanted.items():
        db.session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))
    db.session.commit()
    return cart_items(user_id)


def merge_guest_items(user_id, raw_items):
    """Fold a guest cart into the account cart.

    Quantities for a product present in both carts are summed.
    """
    cart = get_or_create_cart(user_id)
    guest = _collect(raw_items)

    existing = {item.product_id: item for item in cart.items.all()}
    for product_id, quantity in guest.items():
        item = existing.get(product_id)
        if item:
            item.quantity += quantity
        else:
            db.session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))
    db.session.commit()
    logger.info('Merged %d guest line(s) into cart of user %s', len(guest), user_id)
    return cart_items(user_id)


def set_quantity(user_id, product_id, quantity):
    """Set one line's quantity; zero or less removes it. Returns False if there is no cart."""
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart is None:
        return False
    item = CartItem.query.filter_by(cart_id=cart.id, product_id=product_id).first()
    if quantity <= 0:
        if item:
            db.session.delete(item)
    elif item:
        item.quantity = quantity
    db.session.commit()
    return True


def remove_item(user_id, product_id):
    """Delete one line. Returns False if there is no cart."""
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart is None:
        return False
    CartItem.query.filter_by(cart_id=cart.id, product_id=product_id).delete()
    db.session.commit()
    return True
