"""Server copy of the shopper's top preferences."""

import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from perfumery.extensions import db
from perfumery.models import UserPreference

logger = logging.getLogger(__name__)

personalization_bp = Blueprint('personalization', __name__)

MAX_TAGS = 10

# JSON key -> UserPreference column
_FIELDS = {
    'scentFamilies': 'preferred_scent_families',
    'brands': 'favorite_brands',
    'occasions': 'preferred_occasions',
    'moods': 'preferred_moods',
}


@personalization_bp.route('/', methods=['GET'])
@login_required
def get_preferences():
    prefs = UserPreference.query.filter_by(user_id=current_user.id).first()
    if prefs is None:
        return jsonify({'preferences': None})
    return jsonify({'preferences': prefs.to_dict()})


@personalization_bp.route('/sync', methods=['POST'])
@login_required
def sync_preferences():
    """Store the top tags posted by the storefront tracker."""
    body = request.get_json(silent=True) or {}
    data = body.get('data')
    if not isinstance(data, dict):
        return jsonify({'error': 'data must be an object'}), 400

    prefs = UserPreference.query.filter_by(user_id=current_user.id).first()
    if prefs is None:
        prefs = UserPreference(user_id=current_user.id)
        db.session.add(prefs)

    for key, column in _FIELDS.items():
        values = data.get(key)
        if isinstance(values, list):
            tags = [v.strip() for v in values if isinstance(v, str) and v.strip()]
            setattr(prefs, column, tags[:MAX_TAGS])

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to store preferences for user %s', current_user.id)
        return jsonify({'error': 'Failed to sync preferences'}), 500
    return jsonify({'success': True, 'preferences': prefs.to_dict()})
