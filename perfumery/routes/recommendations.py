"""Recommendation rails."""

from flask import Blueprint, current_app, jsonify, request
from perfumery.extensions import db
from perfumery.models import Product
from perfumery.services import recommendations

recommendations_bp = Blueprint('recommendations', __name__)


def _limit(default=None):
    default = default or current_app.config['RECOMMENDATION_LIMIT']
    limit = request.args.get('limit', default, type=int)
    return max(1, min(limit, 24))


def _products_response(products):
    return jsonify({'products': [p.to_dict() for p in products]})


@recommendations_bp.route('/trending')
def trending():
    products = recommendations.trending_products(recommendations.SQLProductCollection(), _limit())
    return _products_response(products)


@recommendations_bp.route('/season')
@recommendations_bp.route('/season/<season>')
def seasonal(season=None):
    season = season or recommendations.current_season()
    products = recommendations.seasonal_picks(recommendations.SQLProductCollection(), season, _limit())
    return jsonify({'season': season, 'products': [p.to_dict() for p in products]})


@recommendations_bp.route('/mood/<mood>')
def mood(mood):
    products = recommendations.mood_picks(recommendations.SQLProductCollection(), mood, _limit())
    return _products_response(products)


@recommendations_bp.route('/occasion/<occasion>')
def occasion(occasion):
    products = recommendations.occasion_picks(recommendations.SQLProductCollection(), occasion, _limit())
    return _products_response(products)


@recommendations_bp.route('/product/<int:product_id>')
def for_product(product_id):
    """Related rails for a product detail page."""
    product = db.get_or_404(Product, product_id)
    collection = recommendations.SQLProductCollection()
    limit = _limit(4)
    return jsonify({
        'similar': [p.to_dict() for p in recommendations.similar_by_notes(
            collection, product.id, product.scent_notes, limit)],
        'sameBrand': [p.to_dict() for p in recommendations.same_brand(
            collection, product.id, product.brand, limit)],
        'cheaper': [p.to_dict() for p in recommendations.affordable_alternatives(
            collection, product.id, product.price, product.scent_notes, limit)],
        'pairsWith': [p.to_dict() for p in recommendations.complementary_products(
            collection, product.id, product.scent_notes, product.gender, limit)],
    })


@recommendations_bp.route('/cart')
def for_cart():
    """Products that pair well with the cart, e.g. ?productIds=1,2,3."""
    raw_ids = request.args.get('productIds', '')
    product_ids = []
    for part in raw_ids.split(','):
        part = part.strip()
        if part.isdigit() and int(part) > 0:
            product_ids.append(int(part))
    if not product_ids:
        return _products_response([])

    cart_products = [p.to_summary() for p in Product.query.filter(Product.id.in_(product_ids)).all()]
    products = recommendations.cart_complements(
        recommendations.SQLProductCollection(), cart_products, limit=_limit(8))
    return _products_response(products)


@recommendations_bp.route('/personalized', methods=['POST'])
def personalized():
    """Picks from the tracker's top brands and scent families."""
    data = request.get_json(silent=True) or {}

    def _strings(key):
        values = data.get(key) or []
        return [v for v in values if isinstance(v, str) and v.strip()] if isinstance(values, list) else []

    viewed = data.get('viewedProductIds') or []
    viewed_ids = [v for v in viewed if isinstance(v, int)] if isinstance(viewed, list) else []

    products = recommendations.personalized_picks(
        recommendations.SQLProductCollection(),
        brands=_strings('brands'),
        scent_families=_strings('scentFamilies'),
        viewed_product_ids=viewed_ids,
        limit=_limit(8),
    )
    return _products_response(products)
