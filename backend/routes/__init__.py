# routes/__init__.py
"""
Blueprint registration helper
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from errors import CatalogError

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all application blueprints"""
    from routes.health import health_bp
    from routes.tracks import tracks_bp
    from routes.admin import admin_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(tracks_bp)
    app.register_blueprint(admin_bp)


def register_error_handlers(app):
    """
    Render CatalogError subclasses as {'error': message} with their status,
    and anything else a route lets escape as a generic JSON 500
    """

    @app.errorhandler(CatalogError)
    def handle_catalog_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        else:
            logger.info(f"{type(error).__name__} ({error.status_code}): {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        # 404s, 405s and friends keep Flask's own response
        if isinstance(error, HTTPException):
            return error
        logger.error(f"Unhandled error: {error}", exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500
