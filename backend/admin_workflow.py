"""
Admin Save/Unlink Workflow

Drives the catalog operations for one album table of the admin page. Tracks
are AnnotatedTrack dicts (see track_reconciliation), optionally carrying a
``parsed`` dict produced by the metadata parser.

Save runs in a fixed order, skipping every step the reconciliation already
reported as done:

    album -> new artists -> composer -> track -> movement number -> link -> re-resolve

so pressing Save again on a fully stored track only re-links and refreshes.
The steps are not transactional; a failure part-way leaves earlier writes in
place and the next attempt starts from the re-resolved state.
"""

import logging
from typing import Callable, List, Optional

import catalog_db
import catalog_writer
import track_reconciliation
from auth_utils import Principal, check_operator
from errors import InvalidInput
from metadata_parser import parse_batch_track_metadata
from movement_inference import get_inferred_movement, infer_movement_number
from spotify_client import SpotifyClient
from spotify_utils import track_uri

logger = logging.getLogger(__name__)


# ============================================================================
# TRACK VIEW HELPERS
# ============================================================================

def has_metadata(track: dict) -> bool:
    """A track is catalogued once it has at least one movement link"""
    return bool((track.get('dbData') or {}).get('trackMovements'))


def get_composer_name(track: dict) -> Optional[str]:
    parsed = track.get('parsed') or {}
    if parsed.get('composerName'):
        return parsed['composerName']
    composers = (track.get('dbData') or {}).get('composers') or []
    return composers[0]['name'] if composers else None


def composer_exists_in_db(track: dict) -> bool:
    composer_name = get_composer_name(track)
    if not composer_name:
        return False
    for artist in track.get('artists') or []:
        if artist.get('name') == composer_name:
            return bool(artist.get('inComposersTable'))
    return False


def get_work_info(track: dict) -> Optional[dict]:
    """Work fields from parsed data, falling back to the stored work"""
    parsed = track.get('parsed')
    if parsed:
        return {
            'catalogSystem': parsed.get('catalogSystem'),
            'catalogNumber': parsed.get('catalogNumber'),
            'nickname': parsed.get('nickname'),
            'title': parsed.get('formalName'),
        }
    works = (track.get('dbData') or {}).get('works') or []
    if works:
        work = works[0]
        return {
            'catalogSystem': work.get('catalogSystem'),
            'catalogNumber': work.get('catalogNumber'),
            'nickname': work.get('nickname'),
            'title': work.get('title'),
        }
    return None


def work_exists_in_db(track: dict) -> bool:
    work_info = get_work_info(track)
    if not work_info:
        return False
    for work in (track.get('dbData') or {}).get('works') or []:
        if work_info['catalogSystem'] and work_info['catalogNumber']:
            if (work.get('catalogSystem') == work_info['catalogSystem']
                    and work.get('catalogNumber') == work_info['catalogNumber']):
                return True
        elif work.get('title') == work_info['title']:
            return True
    return False


def get_movement_info(track: dict) -> Optional[dict]:
    parsed = track.get('parsed')
    if parsed:
        return {'number': parsed.get('movement'), 'title': parsed.get('movementName')}
    movements = (track.get('dbData') or {}).get('movements') or []
    if movements:
        return {'number': movements[0].get('number'), 'title': movements[0].get('title')}
    return None


def movement_exists_in_db(track: dict) -> bool:
    movement_info = get_movement_info(track)
    if not movement_info or not movement_info['number']:
        return False
    return any(
        m.get('number') == movement_info['number']
        for m in (track.get('dbData') or {}).get('movements') or []
    )


def describe_track(track: dict, tracks: List[dict]) -> dict:
    """Status row for one track, computed from the current track list"""
    movement_info = get_movement_info(track) or {}
    return {
        'id': track.get('id'),
        'hasMetadata': has_metadata(track),
        'composerName': get_composer_name(track),
        'composerInDb': composer_exists_in_db(track),
        'work': get_work_info(track),
        'workInDb': work_exists_in_db(track),
        'movementNumber': movement_info.get('number'),
        'movementTitle': movement_info.get('title'),
        'movementInDb': movement_exists_in_db(track),
        'inferredMovement': get_inferred_movement(track, tracks),
    }


# ============================================================================
# ACTIONS
# ============================================================================

def analyze_tracks(principal: Optional[Principal], tracks: List[dict],
                   known_composers_loader: Optional[Callable[[], List[str]]] = None) -> List[dict]:
    """
    Parse every track that is not yet catalogued and attach the result

    Raises:
        InvalidInput: Every track already has metadata
    """
    check_operator(principal)
    unknown = [t for t in tracks if not has_metadata(t)]
    if not unknown:
        raise InvalidInput('All tracks in this album are already in the database')

    parsed = parse_batch_track_metadata(
        [
            {
                'trackName': t.get('name'),
                'artistNames': [a.get('name') for a in t.get('artists') or []],
            }
            for t in unknown
        ],
        (known_composers_loader or catalog_db.list_composer_names)()
    )
    parsed_by_id = {
        t.get('id'): (result.to_dict() if result else None)
        for t, result in zip(unknown, parsed)
    }

    return [
        dict(t, parsed=parsed_by_id[t.get('id')]) if t.get('id') in parsed_by_id else t
        for t in tracks
    ]


def save_track(principal: Optional[Principal], track: dict, tracks: List[dict],
               client_factory: Callable[[str], SpotifyClient] = SpotifyClient) -> dict:
    """
    Persist a track's attribution and return the re-resolved track

    Args:
        track: The AnnotatedTrack (with ``parsed``) being saved
        tracks: Every track currently loaded, used for movement inference

    Raises:
        InvalidInput: No composer/work could be determined, or the composer
                      is not one of the track's credited artists
        WriteFailed: A write step failed
    """
    check_operator(principal)

    composer_name = get_composer_name(track)
    work_info = get_work_info(track)
    movement_info = get_movement_info(track) or {}

    if not composer_name or not work_info:
        raise InvalidInput('Track has no composer or work to save')

    composer_artist = next(
        (a for a in track.get('artists') or [] if a.get('name') == composer_name),
        None
    )
    if composer_artist is None:
        raise InvalidInput(f'Could not find composer artist: {composer_name}')

    album = track['album']
    if not album.get('inSpotifyAlbumsTable'):
        catalog_writer.upsert_album(principal, {
            'id': album['id'],
            'name': album['name'],
            'release_date': album.get('release_date'),
            'popularity': album.get('popularity'),
            'images': album.get('images'),
        }, client_factory)

    artists_to_save = [a for a in track.get('artists') or [] if not a.get('inSpotifyArtistsTable')]
    if artists_to_save:
        catalog_writer.upsert_artists(
            principal,
            [{'id': a['id'], 'name': a['name']} for a in artists_to_save],
            client_factory
        )

    composer_id = composer_artist.get('composerId')
    if not composer_id:
        result = catalog_writer.upsert_composer(principal, composer_artist['id'], composer_name)
        composer_id = result['composer']['id']

    if not track.get('inSpotifyTracksTable'):
        catalog_writer.upsert_track(principal, {
            'id': track['id'],
            'name': track['name'],
            'uri': track.get('uri'),
            'duration_ms': track.get('duration_ms'),
            'track_number': track.get('track_number'),
            'popularity': track.get('popularity'),
            'albumId': album['id'],
            'artists': [{'id': a['id'], 'name': a['name']} for a in track.get('artists') or []],
        })

    movement_number = movement_info.get('number')
    if not movement_number:
        movement_number = infer_movement_number(
            track, tracks, work_info['catalogSystem'], work_info['catalogNumber'], composer_name
        )
        logger.info(f"Inferred movement {movement_number} for track {track['id']}")

    parsed = track.get('parsed') or {}
    catalog_writer.link_work_movement_track(principal, {
        'composerId': composer_id,
        'formalName': work_info['title'],
        'nickname': work_info.get('nickname'),
        'catalogSystem': work_info['catalogSystem'],
        'catalogNumber': work_info['catalogNumber'],
        'key': parsed.get('key'),
        'form': parsed.get('form'),
        'movementNumber': movement_number,
        'movementName': movement_info.get('title'),
        'yearComposed': parsed.get('yearComposed'),
        'spotifyTrackId': track['id'],
    })

    uri = track.get('uri') or track_uri(track['id'])
    refreshed = track_reconciliation.resolve_track(principal, uri, client_factory)
    refreshed['parsed'] = track.get('parsed')
    return refreshed


def unlink_and_refresh(principal: Optional[Principal], track: dict,
                       client_factory: Callable[[str], SpotifyClient] = SpotifyClient) -> dict:
    """
    Remove a catalogued track's movement link and return it re-resolved

    A track without metadata is returned unchanged.
    """
    check_operator(principal)
    if not has_metadata(track):
        return track

    catalog_writer.unlink_track(principal, track['id'])

    uri = track.get('uri') or track_uri(track['id'])
    refreshed = track_reconciliation.resolve_track(principal, uri, client_factory)
    refreshed['parsed'] = track.get('parsed')
    return refreshed
