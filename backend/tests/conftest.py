"""Pytest configuration for backend tests.

Environment is set before any backend module is imported, since config reads
it at import time.
"""

import os

os.environ.setdefault('JWT_SECRET', 'catalog-admin-test-secret-0123456789abcdef')
os.environ.setdefault('ADMIN_USERNAME', 'benwaffle')
os.environ.setdefault('SPOTIFY_CLIENT_ID', 'client-id')
os.environ.setdefault('SPOTIFY_CLIENT_SECRET', 'client-secret')

from unittest import mock

import pytest

from auth_utils import Principal, generate_access_token

OPERATOR_ID = 'user-operator'
STRANGER_ID = 'user-stranger'

USERS = {
    OPERATOR_ID: {'id': OPERATOR_ID, 'name': 'benwaffle', 'is_active': True},
    STRANGER_ID: {'id': STRANGER_ID, 'name': 'someone-else', 'is_active': True},
}


@pytest.fixture
def operator():
    return Principal(user_id=OPERATOR_ID, name='benwaffle')


@pytest.fixture
def stranger():
    return Principal(user_id=STRANGER_ID, name='someone-else')


@pytest.fixture
def app():
    from app import create_app

    flask_app = create_app()
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    """Test client whose session lookups hit the in-memory USERS table"""
    with mock.patch('middleware.auth_middleware.find_session_user', side_effect=USERS.get):
        yield app.test_client()


@pytest.fixture
def db_cursor():
    """Cursor behind catalog_db.get_db_connection()"""
    with mock.patch('catalog_db.get_db_connection') as get_conn:
        conn = mock.MagicMock()
        get_conn.return_value.__enter__.return_value = conn
        yield conn.cursor.return_value.__enter__.return_value


@pytest.fixture
def operator_headers():
    return {'Authorization': f'Bearer {generate_access_token(OPERATOR_ID)}'}


@pytest.fixture
def stranger_headers():
    return {'Authorization': f'Bearer {generate_access_token(STRANGER_ID)}'}


def spotify_track_payload(track_id='trk1', name='Symphony No. 5 in C Minor, Op. 67: I. Allegro con brio',
                          track_number=1, album_id='alb1', artists=None):
    """A Spotify Web API track object, trimmed to the fields the backend reads"""
    if artists is None:
        artists = [('art1', 'Ludwig van Beethoven'), ('art2', 'Berliner Philharmoniker')]
    return {
        'id': track_id,
        'name': name,
        'uri': f'spotify:track:{track_id}',
        'duration_ms': 450000,
        'track_number': track_number,
        'popularity': 55,
        'album': {
            'id': album_id,
            'name': 'Beethoven: Symphonies Nos. 5 & 7',
            'uri': f'spotify:album:{album_id}',
            'release_date': '1963-05-01',
            'images': [{'url': 'https://i.scdn.co/image/abc', 'width': 640, 'height': 640}],
        },
        'artists': [
            {'id': artist_id, 'name': artist_name, 'uri': f'spotify:artist:{artist_id}'}
            for artist_id, artist_name in artists
        ],
    }


def make_track(track_id, track_number=1, album_id='alb1', name='Track', parsed=None,
               works=None, track_movements=None, artists=None, in_tracks_table=False,
               in_albums_table=False):
    """An annotated track as returned by track reconciliation"""
    if artists is None:
        artists = [{
            'id': 'art1',
            'name': 'Ludwig van Beethoven',
            'uri': 'spotify:artist:art1',
            'inSpotifyArtistsTable': False,
            'inComposersTable': False,
            'composerId': None,
        }]
    track = {
        'id': track_id,
        'name': name,
        'uri': f'spotify:track:{track_id}',
        'duration_ms': 300000,
        'track_number': track_number,
        'popularity': 40,
        'inSpotifyTracksTable': in_tracks_table,
        'artists': artists,
        'album': {
            'id': album_id,
            'name': 'Album',
            'uri': f'spotify:album:{album_id}',
            'release_date': '2001',
            'popularity': 30,
            'images': [],
            'inSpotifyAlbumsTable': in_albums_table,
        },
        'dbData': {
            'track': None,
            'album': None,
            'artists': [],
            'composers': [],
            'trackMovements': track_movements or [],
            'movements': [],
            'works': works or [],
        },
    }
    if parsed is not None:
        track['parsed'] = parsed
    return track


def parsed_work(catalog_system='Op', catalog_number='67', composer='Ludwig van Beethoven',
                movement=None, movement_name=None, formal_name='Symphony No. 5 in C Minor, Op. 67'):
    return {
        'composerName': composer,
        'formalName': formal_name,
        'nickname': None,
        'catalogSystem': catalog_system,
        'catalogNumber': catalog_number,
        'key': 'C minor',
        'form': 'Symphony',
        'movement': movement,
        'movementName': movement_name,
        'yearComposed': None,
    }
