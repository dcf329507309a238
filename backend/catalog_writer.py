"""
Catalog Write Operations

Server-side operations behind the admin tool's Save/Unlink actions. Each one
re-checks the access gate and is its own unit of work; there is no
transaction across operations.

Idempotent (re-running with the same input rewrites the same rows):
    upsert_album, upsert_artists, upsert_track, link_work_movement_track,
    unlink_track
Not idempotent:
    upsert_composer - a second call for the same name fails rather than
    rebinding the composer to another Spotify artist.

Spotify and database failures are logged in full and re-raised as
WriteFailed(operation); callers only ever see the operation name.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

import catalog_db
import token_broker
from auth_utils import Principal, check_operator
from catalog_utils import make_movement_id, make_work_id, parse_release_year, slugify
from errors import InvalidInput, WriteFailed
from spotify_client import SpotifyClient
from utils.helpers import safe_strip

logger = logging.getLogger(__name__)


def _require_fields(data, fields: List[str], what: str, numeric: Sequence[str] = ()):
    """Required fields must be present and text; fields named in numeric may also be ints"""
    if not isinstance(data, dict):
        raise InvalidInput(f"Invalid {what}")
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise InvalidInput(f"Missing required fields for {what}: {', '.join(missing)}")
    wrong = [f for f in fields if not _is_text(data[f], allow_int=f in numeric)]
    if wrong:
        raise InvalidInput(f"Expected text for {what}: {', '.join(wrong)}")


def _is_text(value, allow_int: bool = False) -> bool:
    if isinstance(value, str):
        return True
    return allow_int and isinstance(value, int) and not isinstance(value, bool)


def _optional_text(data: Dict, field: str) -> Optional[str]:
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        raise InvalidInput(f"Expected text for {field}, got {value!r}")
    return safe_strip(value) or None


def _optional_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Expected a whole number, got {value!r}")


# ============================================================================
# SPOTIFY MIRROR
# ============================================================================

def upsert_album(principal: Optional[Principal], album: Dict,
                 client_factory: Callable[[str], SpotifyClient] = SpotifyClient) -> dict:
    """
    Mirror a Spotify album

    Args:
        album: {id, name, release_date, images}; popularity is re-read from
               the full album object
    """
    check_operator(principal)
    _require_fields(album, ['id', 'name'], 'album')

    try:
        with client_factory(token_broker.get_access_token(principal.user_id)) as client:
            full_album = client.get_album(album['id'])

        catalog_db.upsert_spotify_album(
            album['id'],
            album['name'],
            parse_release_year(album.get('release_date')),
            album.get('images') or [],
            full_album.popularity,
        )
    except Exception as e:
        logger.error(f"Error adding album {album['id']} to database: {e}", exc_info=True)
        raise WriteFailed('add album to database') from e

    logger.info(f"Mirrored album {album['id']} ({album['name']})")
    return {
        'success': True,
        'message': f'Added album "{album["name"]}" to database',
    }


def upsert_artists(principal: Optional[Principal], artists: List[Dict],
                   client_factory: Callable[[str], SpotifyClient] = SpotifyClient) -> dict:
    """
    Mirror Spotify artists, fetching fresh popularity/images for each

    Artists are fetched one at a time; a failure part-way leaves the earlier
    artists written, and re-running simply upserts them again.
    """
    check_operator(principal)
    if not isinstance(artists, list):
        raise InvalidInput('Invalid artists')
    for artist in artists:
        _require_fields(artist, ['id', 'name'], 'artist')

    try:
        with client_factory(token_broker.get_access_token(principal.user_id)) as client:
            for artist in artists:
                full_artist = client.get_artist(artist['id'])
                catalog_db.upsert_spotify_artist(
                    artist['id'],
                    artist['name'],
                    full_artist.popularity,
                    [
                        {'url': image.url, 'width': image.width, 'height': image.height}
                        for image in full_artist.images
                    ] or None,
                )
                logger.debug(f"Mirrored artist {artist['id']} ({artist['name']})")
    except Exception as e:
        logger.error(f"Error adding artists to database: {e}", exc_info=True)
        raise WriteFailed('add artists to database') from e

    return {
        'success': True,
        'message': f'Added {len(artists)} artist(s) to database',
    }


def upsert_track(principal: Optional[Principal], track: Dict) -> dict:
    """
    Mirror a Spotify track and its track/artist associations

    Args:
        track: {id, name, uri, duration_ms, track_number, popularity,
                albumId, artists: [{id, name}]}
    """
    check_operator(principal)
    _require_fields(track, ['id', 'name', 'albumId'], 'track')
    artists = track.get('artists') or []
    for artist in artists:
        _require_fields(artist, ['id'], 'track artist')

    try:
        catalog_db.upsert_spotify_track(track, [artist['id'] for artist in artists])
    except Exception as e:
        logger.error(f"Error adding track {track['id']} to database: {e}", exc_info=True)
        raise WriteFailed('add track to database') from e

    logger.info(f"Mirrored track {track['id']} ({track['name']})")
    return {
        'success': True,
        'message': f'Added track "{track["name"]}" to database',
    }


# ============================================================================
# CLASSICAL CATALOG
# ============================================================================

def upsert_composer(principal: Optional[Principal], spotify_artist_id: str, name: str) -> dict:
    """
    Create a composer for a Spotify artist

    The composer id is the slug of the name and is never regenerated. A
    duplicate fails with WriteFailed instead of rebinding the existing
    composer.
    """
    check_operator(principal)
    for value in (spotify_artist_id, name):
        if value is not None and not isinstance(value, str):
            raise InvalidInput('Composer name and Spotify artist id must be text')
    spotify_artist_id = safe_strip(spotify_artist_id)
    name = safe_strip(name)
    if not spotify_artist_id or not name:
        raise InvalidInput('Missing required fields')

    composer_id = slugify(name)
    if not composer_id:
        raise InvalidInput(f'Cannot derive a composer id from "{name}"')

    try:
        catalog_db.insert_composer(composer_id, name, spotify_artist_id)
    except Exception as e:
        logger.error(f"Error adding composer {composer_id}: {e}", exc_info=True)
        raise WriteFailed('add composer') from e

    logger.info(f"Added composer {composer_id} for Spotify artist {spotify_artist_id}")
    return {
        'success': True,
        'composer': {
            'id': composer_id,
            'name': name,
            'spotifyArtistId': spotify_artist_id,
        },
    }


def check_work_and_movement(principal: Optional[Principal], composer_id: str,
                            catalog_system: str, catalog_number: str,
                            movement_number: int) -> dict:
    """
    Look up a work by (composer, catalog system, catalog number) and one of
    its movements by number
    """
    check_operator(principal)
    _require_fields(
        {'composerId': composer_id, 'catalogSystem': catalog_system, 'catalogNumber': catalog_number},
        ['composerId', 'catalogSystem', 'catalogNumber'],
        'work lookup',
        numeric=('catalogNumber',)
    )
    catalog_number = str(catalog_number)

    try:
        existing_work = catalog_db.find_work(composer_id, catalog_system, catalog_number)
        if not existing_work:
            return {
                'workExists': False,
                'movementExists': False,
                'work': None,
                'movement': None,
            }

        existing_movement = catalog_db.find_movement(existing_work['id'], movement_number)
    except Exception as e:
        logger.error(f"Error checking work and movement: {e}", exc_info=True)
        raise WriteFailed('check work and movement') from e

    return {
        'workExists': True,
        'movementExists': existing_movement is not None,
        'work': existing_work,
        'movement': existing_movement,
    }


def link_work_movement_track(principal: Optional[Principal], data: Dict) -> dict:
    """
    Upsert a work and movement and link the movement to a Spotify track

    Args:
        data: {composerId, formalName, nickname, catalogSystem, catalogNumber,
               key, form, movementNumber, movementName, yearComposed,
               spotifyTrackId}

    Returns:
        {success, message, workId, movementId}
    """
    check_operator(principal)
    _require_fields(
        data,
        ['composerId', 'formalName', 'catalogSystem', 'catalogNumber', 'movementNumber', 'spotifyTrackId'],
        'work/movement link',
        numeric=('catalogNumber', 'movementNumber')
    )
    movement_number = _optional_int(data['movementNumber'])
    if movement_number is None or movement_number < 1:
        raise InvalidInput('Movement number must be 1 or greater')

    catalog_number = str(data['catalogNumber'])
    work_id = make_work_id(data['composerId'], data['catalogSystem'], catalog_number)
    movement_id = make_movement_id(work_id, movement_number)

    work = {
        'id': work_id,
        'composerId': data['composerId'],
        'title': data['formalName'],
        'nickname': _optional_text(data, 'nickname'),
        'catalogSystem': data['catalogSystem'],
        'catalogNumber': catalog_number,
        'yearComposed': _optional_int(data.get('yearComposed')),
        'form': _optional_text(data, 'form'),
    }
    movement = {
        'id': movement_id,
        'workId': work_id,
        'number': movement_number,
        'title': _optional_text(data, 'movementName'),
    }

    try:
        catalog_db.save_work_movement_link(work, movement, data['spotifyTrackId'])
    except Exception as e:
        logger.error(f"Error adding work {work_id}, movement and track link: {e}", exc_info=True)
        raise WriteFailed('add work, movement, and track') from e

    logger.info(f"Linked track {data['spotifyTrackId']} to {movement_id}")
    return {
        'success': True,
        'message': f'Added work "{data["formalName"]}", movement {movement_number}, and linked to track',
        'workId': work_id,
        'movementId': movement_id,
    }


def unlink_track(principal: Optional[Principal], track_id: str) -> dict:
    """
    Remove a track's movement link

    Only the track_movements row goes; the work and movement stay, even when
    nothing references them any more.
    """
    check_operator(principal)
    track_id = safe_strip(track_id)
    if not track_id:
        raise InvalidInput('Missing track id')

    try:
        removed = catalog_db.delete_track_movements(track_id)
    except Exception as e:
        logger.error(f"Error unlinking track {track_id}: {e}", exc_info=True)
        raise WriteFailed('delete track metadata') from e

    logger.info(f"Unlinked track {track_id} ({removed} link(s) removed)")
    return {
        'success': True,
        'message': f'Removed {removed} movement link(s) from track',
        'removed': removed,
    }
