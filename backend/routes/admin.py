"""
Admin Routes - Classical Catalog Curation

The admin page loads Spotify tracks, parses their titles into classical-work
attribution, and saves or unlinks that attribution. All JSON endpoints are
restricted to the catalog operator (operator_required runs before the body is
read, so a bad payload from anyone else still gets 401/403).

Page:
- GET  /admin/tracks

Catalog writes (one operation each):
- POST   /api/admin/add-composer        {spotifyArtistId, name}
- POST   /api/admin/albums              {id, name, release_date, images}
- POST   /api/admin/artists             {artists: [{id, name}]}
- POST   /api/admin/tracks              {id, name, ..., albumId, artists}
- POST   /api/admin/works/check         {composerId, catalogSystem, catalogNumber, movementNumber}
- POST   /api/admin/works/link          {composerId, formalName, ..., spotifyTrackId}
- DELETE /api/admin/tracks/<id>/movement

Page workflow:
- POST /api/admin/parse-tracks  {entries: [{trackName, artistNames}]}
- POST /api/admin/analyze       {tracks}
- POST /api/admin/describe      {tracks}
- POST /api/admin/save-track    {track, tracks}
- POST /api/admin/unlink-track  {track}
"""

from flask import Blueprint, render_template, request, jsonify
import logging

import admin_workflow
import catalog_db
import catalog_writer
from errors import InvalidInput
from metadata_parser import parse_batch_track_metadata
from middleware.auth_middleware import operator_required
from utils.helpers import get_json_body

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def _require_track(value, what='track'):
    if not isinstance(value, dict) or not value.get('id') or not isinstance(value.get('album'), dict):
        raise InvalidInput(f'Invalid {what}')
    return value


def _require_track_list(value):
    if not isinstance(value, list):
        raise InvalidInput('Expected a list of tracks')
    return [_require_track(track) for track in value]


# ============================================================================
# PAGE
# ============================================================================

@admin_bp.route('/admin/tracks')
def tracks_page():
    """Batch track metadata page; data is loaded by the page's script"""
    return render_template('admin/tracks.html')


# ============================================================================
# CATALOG WRITES
# ============================================================================

@admin_bp.route('/api/admin/add-composer', methods=['POST'])
@operator_required
def add_composer(principal):
    """
    Create a composer for a Spotify artist

    Returns:
        200: {"success": true, "composer": {"id", "name", "spotifyArtistId"}}
        400: Missing fields
        500: Insert failed (including a duplicate composer)
    """
    data = get_json_body(request)
    spotify_artist_id = data.get('spotifyArtistId')
    name = data.get('name')

    if not spotify_artist_id or not name:
        return jsonify({'error': 'Missing required fields'}), 400

    return jsonify(catalog_writer.upsert_composer(principal, spotify_artist_id, name))


@admin_bp.route('/api/admin/albums', methods=['POST'])
@operator_required
def add_album(principal):
    return jsonify(catalog_writer.upsert_album(principal, get_json_body(request)))


@admin_bp.route('/api/admin/artists', methods=['POST'])
@operator_required
def add_artists(principal):
    artists = get_json_body(request).get('artists')
    return jsonify(catalog_writer.upsert_artists(principal, artists))


@admin_bp.route('/api/admin/tracks', methods=['POST'])
@operator_required
def add_track(principal):
    return jsonify(catalog_writer.upsert_track(principal, get_json_body(request)))


@admin_bp.route('/api/admin/works/check', methods=['POST'])
@operator_required
def check_work(principal):
    """
    Report whether a work (and one of its movements) is already catalogued

    Returns:
        200: {"workExists", "movementExists", "work", "movement"}
    """
    data = get_json_body(request)
    for field in ('composerId', 'catalogSystem', 'catalogNumber', 'movementNumber'):
        if data.get(field) in (None, ''):
            raise InvalidInput('Missing required fields')
    try:
        movement_number = int(data['movementNumber'])
    except (TypeError, ValueError):
        raise InvalidInput('movementNumber must be a number')

    return jsonify(catalog_writer.check_work_and_movement(
        principal,
        data['composerId'],
        data['catalogSystem'],
        str(data['catalogNumber']),
        movement_number
    ))


@admin_bp.route('/api/admin/works/link', methods=['POST'])
@operator_required
def link_work(principal):
    return jsonify(catalog_writer.link_work_movement_track(principal, get_json_body(request)))


@admin_bp.route('/api/admin/tracks/<track_id>/movement', methods=['DELETE'])
@operator_required
def unlink_track(track_id, principal):
    return jsonify(catalog_writer.unlink_track(principal, track_id))


# ============================================================================
# PAGE WORKFLOW
# ============================================================================

@admin_bp.route('/api/admin/parse-tracks', methods=['POST'])
@operator_required
def parse_tracks(principal):
    """
    Parse track titles into classical metadata

    Returns:
        200: [ParsedMetadata | null, ...] in input order
    """
    entries = get_json_body(request).get('entries')
    if not isinstance(entries, list):
        raise InvalidInput('Expected a list of entries')

    try:
        known_composers = catalog_db.list_composer_names()
    except Exception as e:
        logger.error(f"Error loading composer names: {e}", exc_info=True)
        return jsonify({'error': 'Failed to parse track metadata'}), 500

    results = parse_batch_track_metadata(entries, known_composers)
    return jsonify([result.to_dict() if result else None for result in results])


@admin_bp.route('/api/admin/analyze', methods=['POST'])
@operator_required
def analyze(principal):
    """Attach parsed metadata to every uncatalogued track in the list"""
    tracks = _require_track_list(get_json_body(request).get('tracks'))
    try:
        return jsonify(admin_workflow.analyze_tracks(principal, tracks))
    except InvalidInput:
        raise
    except Exception as e:
        logger.error(f"Error analyzing tracks: {e}", exc_info=True)
        return jsonify({'error': 'Failed to analyze tracks'}), 500


@admin_bp.route('/api/admin/describe', methods=['POST'])
@operator_required
def describe(principal):
    """Status rows (composer/work/movement, stored or inferred) for the current list"""
    tracks = _require_track_list(get_json_body(request).get('tracks'))
    return jsonify([admin_workflow.describe_track(track, tracks) for track in tracks])


@admin_bp.route('/api/admin/save-track', methods=['POST'])
@operator_required
def save_track(principal):
    """
    Run the save workflow for one track

    Body:
        {"track": AnnotatedTrack with parsed, "tracks": [every loaded track]}

    Returns:
        200: The re-resolved track
    """
    data = get_json_body(request)
    track = _require_track(data.get('track'))
    tracks = _require_track_list(data.get('tracks') or [track])
    refreshed = admin_workflow.save_track(principal, track, tracks)
    return jsonify({'track': refreshed, 'message': f"Saved: {track.get('name')}"})


@admin_bp.route('/api/admin/unlink-track', methods=['POST'])
@operator_required
def unlink_and_refresh(principal):
    track = _require_track(get_json_body(request).get('track'))
    refreshed = admin_workflow.unlink_and_refresh(principal, track)
    return jsonify({'track': refreshed, 'message': f"Unlinked: {track.get('name')}"})
