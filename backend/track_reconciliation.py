"""
Track Reconciliation

Resolves Spotify track references to live Spotify metadata annotated with
what the local catalog already holds:

- inSpotifyTracksTable / album.inSpotifyAlbumsTable: mirror rows exist
- per artist: inSpotifyArtistsTable, inComposersTable, composerId
- dbData: the stored rows, including the track_movements -> movements ->
  works -> composers chain for tracks that are already catalogued

Nothing here writes. Results are as fresh as Spotify's response plus the
store at query time; the admin UI re-resolves after every write.
"""

import logging
from typing import Callable, List, Optional

import catalog_db
import token_broker
from auth_utils import Principal, check_operator
from spotify_client import SpotifyClient
from spotify_models import ProviderTrack
from spotify_utils import extract_track_id, extract_track_ids

logger = logging.getLogger(__name__)


def annotate_track(track: ProviderTrack, rows: dict, chain: dict) -> dict:
    """
    Combine a Spotify track with local presence information

    Args:
        track: Decoded Spotify track
        rows: Output of catalog_db.find_reconciliation_rows
        chain: Output of catalog_db.find_track_catalog_chain (empty lists if
               the track is not mirrored)

    Returns:
        AnnotatedTrack dict
    """
    artist_rows = {row['spotifyId']: row for row in rows['artists']}
    composer_rows = {row['spotifyArtistId']: row for row in rows['composers']}

    return {
        'id': track.id,
        'name': track.name,
        'uri': track.uri,
        'duration_ms': track.duration_ms,
        'track_number': track.track_number,
        'popularity': track.popularity,
        'inSpotifyTracksTable': rows['track'] is not None,
        'artists': [
            {
                'id': artist.id,
                'name': artist.name,
                'uri': artist.uri,
                'inSpotifyArtistsTable': artist.id in artist_rows,
                'inComposersTable': artist.id in composer_rows,
                'composerId': composer_rows[artist.id]['id'] if artist.id in composer_rows else None,
            }
            for artist in track.artists
        ],
        'album': {
            'id': track.album.id,
            'name': track.album.name,
            'uri': track.album.uri,
            'release_date': track.album.release_date,
            'popularity': track.album.popularity,
            'images': track.album.images_as_dicts(),
            'inSpotifyAlbumsTable': rows['album'] is not None,
        },
        'dbData': {
            'track': rows['track'],
            'album': rows['album'],
            'artists': rows['artists'],
            'composers': chain['composers'],
            'trackMovements': chain['trackMovements'],
            'movements': chain['movements'],
            'works': chain['works'],
        },
    }


def _fetch_annotated(client: SpotifyClient, track_id: str) -> dict:
    track = client.get_track(track_id)

    rows = catalog_db.find_reconciliation_rows(track.id, track.album.id, track.artist_ids)

    if rows['track'] is not None:
        chain = catalog_db.find_track_catalog_chain(track.id)
    else:
        chain = {'trackMovements': [], 'movements': [], 'works': [], 'composers': []}

    logger.debug(
        f"Resolved track {track.id}: mirrored={rows['track'] is not None}, "
        f"linked movements={len(chain['trackMovements'])}"
    )
    return annotate_track(track, rows, chain)


def resolve_track(principal: Optional[Principal], reference: str,
                  client_factory: Callable[[str], SpotifyClient] = SpotifyClient) -> dict:
    """
    Resolve one Spotify track URI/URL to an AnnotatedTrack

    Raises:
        Unauthorized / AccessDenied: Access gate
        InvalidInput: Reference matches neither URI nor URL shape
        UpstreamAuthFailure: No Spotify token for the caller
        ProviderError: Spotify answered with a non-success status
    """
    check_operator(principal)
    track_id = extract_track_id(reference)
    with client_factory(token_broker.get_access_token(principal.user_id)) as client:
        return _fetch_annotated(client, track_id)


def resolve_tracks(principal: Optional[Principal], references: List[str],
                   client_factory: Callable[[str], SpotifyClient] = SpotifyClient) -> List[dict]:
    """
    Resolve a batch of references, preserving input order

    Every reference is validated before any external call; one invalid entry
    fails the whole batch.
    """
    check_operator(principal)
    track_ids = extract_track_ids(references)
    if not track_ids:
        return []

    logger.info(f"Resolving {len(track_ids)} track(s) for {principal.name}")
    with client_factory(token_broker.get_access_token(principal.user_id)) as client:
        return [_fetch_annotated(client, track_id) for track_id in track_ids]
