"""Routes package - register all blueprints."""

from flask import Flask
from perfumery.extensions import csrf


def register_blueprints(app: Flask):
    """Register all blueprints with the application."""
    from .auth import auth_bp
    from .cart import cart_bp
    from .recommendations import recommendations_bp
    from .personalization import personalization_bp

    # JSON endpoints called by the storefront client, not by HTML forms
    for blueprint in (auth_bp, cart_bp, recommendations_bp, personalization_bp):
        csrf.exempt(blueprint)

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(cart_bp, url_prefix='/api/cart')
    app.register_blueprint(recommendations_bp, url_prefix='/api/recommendations')
    app.register_blueprint(personalization_bp, url_prefix='/api/personalization')
