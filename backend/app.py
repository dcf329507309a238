"""
Classical Catalog Admin API Backend
A Flask API that resolves Spotify tracks against the classical catalog
and lets the operator attribute them to composers, works and movements
"""

from flask import Flask, request
from flask_cors import CORS
import atexit
import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configuration
from config import configure_logging, init_app_config, set_db_pooling_mode

# Set pooling mode BEFORE importing db_utils
set_db_pooling_mode()

# Import database tools
import db_utils as db_tools

logger = configure_logging()


def create_app():
    """Build the Flask app with blueprints, error handlers and request logging"""
    app = Flask(__name__)
    CORS(app)
    init_app_config(app)

    logger.info(f"Spotify credentials present: {bool(os.environ.get('SPOTIFY_CLIENT_ID'))}")
    logger.info(f"Catalog operator: {app.config['ADMIN_USERNAME']}")

    # Register all route blueprints
    from routes import register_blueprints, register_error_handlers
    register_blueprints(app)
    register_error_handlers(app)

    # Request/response logging
    @app.before_request
    def log_request():
        """Log incoming requests"""
        logger.info(f"{request.method} {request.path}")

    @app.after_request
    def log_response(response):
        """Log response status"""
        logger.info(f"{request.method} {request.path} - {response.status_code}")
        return response

    return app


app = create_app()
logger.info(f"Flask app initialized in PID {os.getpid()}")


def cleanup_connections():
    """Close the connection pool on shutdown"""
    logger.info("Shutting down connection pool...")
    db_tools.close_connection_pool()
    logger.info("Connection pool closed")


atexit.register(cleanup_connections)


if __name__ == '__main__':
    # Running directly with 'python app.py' (not gunicorn)
    logger.info("Starting Flask application directly (not gunicorn)...")
    logger.info("Database connection pool will initialize on first request")
    app.run(debug=True, host='0.0.0.0', port=int(os.environ.get('PORT', '5001')))
