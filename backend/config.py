"""
Configuration Module for the Classical Catalog Admin
Handles logging setup, environment settings and Flask app initialization
"""

import os
import logging


# Single operator allowed to curate the catalog
ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'benwaffle')

# Spotify Web API
SPOTIFY_PROVIDER_ID = 'spotify'
SPOTIFY_API_BASE = os.environ.get('SPOTIFY_API_BASE', 'https://api.spotify.com/v1')
SPOTIFY_TOKEN_URL = os.environ.get('SPOTIFY_TOKEN_URL', 'https://accounts.spotify.com/api/token')
SPOTIFY_REQUEST_TIMEOUT = float(os.environ.get('SPOTIFY_REQUEST_TIMEOUT', '10'))


def configure_logging():
    """
    Configure application logging with standard format

    Returns:
        Logger instance for the config module
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger(__name__)


def init_app_config(app):
    """
    Initialize Flask app configuration

    This sets up:
    - Custom JSON provider for date formatting
    - Key order preservation so annotated tracks render in a stable shape

    Args:
        app: Flask application instance
    """
    from utils.json_provider import CustomJSONProvider
    app.json = CustomJSONProvider(app)
    app.json.sort_keys = False
    app.config['ADMIN_USERNAME'] = ADMIN_USERNAME


def set_db_pooling_mode():
    """
    Set database pooling mode environment variable

    This MUST be called before importing db_utils to ensure
    the connection pool is configured correctly.
    """
    os.environ['DB_USE_POOLING'] = 'true'
