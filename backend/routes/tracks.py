"""
Track Metadata Routes

This module resolves Spotify tracks against the catalog:
- POST /api/spotify/track-metadata - One track URI/URL -> annotated track
- POST /api/spotify/track-metadata/batch - A list of URIs/URLs -> annotated tracks

Status codes: 400 invalid reference, 401 no session or no Spotify token,
403 not the operator, Spotify's own status when Spotify fails, 500 otherwise.
"""

from flask import Blueprint, request, jsonify
import logging

import track_reconciliation
from errors import CatalogError
from middleware.auth_middleware import operator_required
from utils.helpers import get_json_body

logger = logging.getLogger(__name__)
tracks_bp = Blueprint('tracks', __name__, url_prefix='/api/spotify')


@tracks_bp.route('/track-metadata', methods=['POST'])
@operator_required
def track_metadata(principal):
    """
    Resolve one Spotify track

    Body:
        {"trackUri": "spotify:track:..." | "https://open.spotify.com/track/..."}

    Returns:
        200: AnnotatedTrack
    """
    track_uri = get_json_body(request).get('trackUri')

    try:
        return jsonify(track_reconciliation.resolve_track(principal, track_uri))
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching track metadata: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch track metadata'}), 500


@tracks_bp.route('/track-metadata/batch', methods=['POST'])
@operator_required
def batch_track_metadata(principal):
    """
    Resolve several Spotify tracks, in order

    Body:
        {"trackUris": ["spotify:track:...", ...]}

    Returns:
        200: [AnnotatedTrack, ...]
        400: Any entry is not a track URI/URL (nothing is resolved)
    """
    track_uris = get_json_body(request).get('trackUris')
    if isinstance(track_uris, list):
        track_uris = [uri.strip() if isinstance(uri, str) else uri for uri in track_uris]
        track_uris = [uri for uri in track_uris if uri != '']

    try:
        return jsonify(track_reconciliation.resolve_tracks(principal, track_uris))
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching batch track metadata: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch track metadata'}), 500
