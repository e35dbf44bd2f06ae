"""Authentication routes."""

import logging

from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user
from perfumery.extensions import db
from perfumery.models import User
from perfumery.forms.auth import LoginForm, RegistrationForm

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _user_payload(user):
    return {'id': user.id, 'name': user.name, 'email': user.email, 'role': user.role}


@auth_bp.route('/session')
def session_status():
    """Current auth status, as observed by the storefront cart engine."""
    if current_user.is_authenticated:
        return jsonify({'status': 'authenticated', 'user': _user_payload(current_user)})
    return jsonify({'status': 'unauthenticated', 'user': None})


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login."""
    form = LoginForm(meta={'csrf': False})
    if not form.validate():
        return jsonify({'error': 'Invalid input', 'fields': form.errors}), 400

    user = User.query.filter_by(email=form.email.data.lower()).first()
    if not user or not user.check_password(form.password.data):
        return jsonify({'error': 'Invalid email or password.'}), 401
    if not user.is_active:
        return jsonify({'error': 'Your account has been deactivated. Please contact support.'}), 403

    login_user(user, remember=form.remember.data)
    logger.info('User %s signed in', user.id)
    return jsonify({'status': 'authenticated', 'user': _user_payload(user)})


@auth_bp.route('/register', methods=['POST'])
def register():
    """Customer registration."""
    form = RegistrationForm(meta={'csrf': False})
    if not form.validate():
        return jsonify({'error': 'Invalid input', 'fields': form.errors}), 400

    user = User(
        email=form.email.data.lower(),
        name=form.name.data,
        role='customer'
    )
    user.set_password(form.password.data)

    db.session.add(user)
    db.session.commit()
    return jsonify({'success': True, 'user': _user_payload(user)}), 201


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """User logout."""
    if current_user.is_authenticated:
        logger.info('User %s signed out', current_user.id)
    logout_user()
    return jsonify({'status': 'unauthenticated'})
