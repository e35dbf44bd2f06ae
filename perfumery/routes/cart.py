"""Account cart API used by the storefront cart engine."""

import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from perfumery.extensions import db
from perfumery.services import cart_service

logger = logging.getLogger(__name__)

cart_bp = Blueprint('cart', __name__)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


@cart_bp.route('/sync', methods=['GET'])
@login_required
def fetch_cart():
    """Fetch the user's cart."""
    try:
        items = cart_service.cart_items(current_user.id)
    except SQLAlchemyError:
        logger.exception('Failed to fetch cart for user %s', current_user.id)
        return jsonify({'error': 'Failed to fetch cart'}), 500
    return jsonify({'items': items})


@cart_bp.route('/sync', methods=['POST'])
@login_required
def sync_cart():
    """Replace the user's cart with the posted items."""
    data = _json_body()
    if data is None or not isinstance(data.get('items'), list):
        return jsonify({'error': 'items must be a list'}), 400
    try:
        items = cart_service.replace_cart(current_user.id, data['items'])
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to sync cart for user %s', current_user.id)
        return jsonify({'error': 'Failed to sync cart'}), 500
    return jsonify({'success': True, 'items': items})


@cart_bp.route('/sync', methods=['PUT'])
@login_required
def update_cart_item():
    """Update item quantity."""
    data = _json_body() or {}
    try:
        product_id = int(data.get('productId'))
        quantity = int(data.get('quantity'))
    except (TypeError, ValueError, OverflowError):
        return jsonify({'error': 'productId and quantity are required'}), 400
    try:
        found = cart_service.set_quantity(current_user.id, product_id, quantity)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to update cart item for user %s', current_user.id)
        return jsonify({'error': 'Failed to update cart item'}), 500
    if not found:
        return jsonify({'error': 'Cart not found'}), 404
    return jsonify({'success': True})


@cart_bp.route('/sync', methods=['DELETE'])
@login_required
def remove_cart_item():
    """Remove item from cart."""
    product_id = request.args.get('productId', type=int)
    if not product_id:
        return jsonify({'error': 'Product ID required'}), 400
    try:
        found = cart_service.remove_item(current_user.id, product_id)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to delete cart item for user %s', current_user.id)
        return jsonify({'error': 'Failed to delete cart item'}), 500
    if not found:
        return jsonify({'error': 'Cart not found'}), 404
    return jsonify({'success': True})


@cart_bp.route('/merge', methods=['POST'])
@login_required
def merge_cart():
    """Merge a guest cart into the user's cart."""
    data = _json_body()
    if data is None or not isinstance(data.get('guestItems'), list):
        return jsonify({'error': 'guestItems must be a list'}), 400
    try:
        merged = cart_service.merge_guest_items(current_user.id, data['guestItems'])
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to merge cart for user %s', current_user.id)
        return jsonify({'error': 'Failed to merge cart'}), 500
    return jsonify({'mergedItems': merged, 'success': True})
