"""
Catalog Database Operations

All database queries and updates for the classical catalog: the Spotify
mirror tables (spotify_tracks, spotify_albums, spotify_artists,
track_artists) and the catalog proper (composers, works, movements,
track_movements).

Rows are returned with camelCase keys so they can be handed to the admin UI
unchanged as the annotated track's dbData.
"""

import logging
from typing import Dict, Iterable, List, Optional

from psycopg.types.json import Jsonb

from db_utils import get_db_connection

logger = logging.getLogger(__name__)


TRACK_COLUMNS = """
    spotify_id AS "spotifyId", title, track_number AS "trackNumber",
    duration_ms AS "durationMs", popularity, spotify_album_id AS "spotifyAlbumId"
"""
ALBUM_COLUMNS = """
    spotify_id AS "spotifyId", title, year, images, popularity
"""
ARTIST_COLUMNS = """
    spotify_id AS "spotifyId", name, popularity, images
"""
COMPOSER_COLUMNS = """
    id, name, spotify_artist_id AS "spotifyArtistId"
"""
WORK_COLUMNS = """
    id, composer_id AS "composerId", title, nickname,
    catalog_system AS "catalogSystem", catalog_number AS "catalogNumber",
    year_composed AS "yearComposed", form
"""
MOVEMENT_COLUMNS = """
    id, work_id AS "workId", number, title
"""
TRACK_MOVEMENT_COLUMNS = """
    spotify_track_id AS "spotifyTrackId", movement_id AS "movementId",
    start_ms AS "startMs", end_ms AS "endMs"
"""


def _unique(values: Iterable) -> List:
    """De-duplicate while keeping first-seen order"""
    seen = []
    for value in values:
        if value is not None and value not in seen:
            seen.append(value)
    return seen


# ============================================================================
# RECONCILIATION LOOKUPS (read only)
# ============================================================================

def find_reconciliation_rows(track_id: str, album_id: str, artist_ids: List[str]) -> Dict:
    """
    Batch-query local presence of a Spotify track, its album and its artists

    Returns:
        Dict with 'artists' (spotify_artists rows), 'composers' (composers
        whose spotify_artist_id is one of artist_ids), 'album' (row or None),
        'track' (row or None)
    """
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT {ARTIST_COLUMNS} FROM spotify_artists WHERE spotify_id = ANY(%s)",
                (list(artist_ids),)
            )
            artists = cur.fetchall()

            cur.execute(
                f"SELECT {COMPOSER_COLUMNS} FROM composers WHERE spotify_artist_id = ANY(%s)",
                (list(artist_ids),)
            )
            composers = cur.fetchall()

            cur.execute(
                f"SELECT {ALBUM_COLUMNS} FROM spotify_albums WHERE spotify_id = %s",
                (album_id,)
            )
            album = cur.fetchone()

            cur.execute(
                f"SELECT {TRACK_COLUMNS} FROM spotify_tracks WHERE spotify_id = %s",
                (track_id,)
            )
            track = cur.fetchone()

    return {
        'artists': artists,
        'composers': composers,
        'album': album,
        'track': track,
    }


def find_track_catalog_chain(track_id: str) -> Dict[str, List[dict]]:
    """
    Follow track_movements -> movements -> works -> composers for a track

    A missing hop truncates the chain: later lists stay empty rather than
    raising, so a partially cleaned-up catalog shows up as unknown data.
    """
    chain = {
        'trackMovements': [],
        'movements': [],
        'works': [],
        'composers': [],
    }

    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT {TRACK_MOVEMENT_COLUMNS} FROM track_movements WHERE spotify_track_id = %s",
                (track_id,)
            )
            chain['trackMovements'] = cur.fetchall()
            if not chain['trackMovements']:
                return chain

            movement_ids = _unique(tm['movementId'] for tm in chain['trackMovements'])
            cur.execute(
                f"SELECT {MOVEMENT_COLUMNS} FROM movements WHERE id = ANY(%s)",
                (movement_ids,)
            )
            chain['movements'] = cur.fetchall()

            work_ids = _unique(m['workId'] for m in chain['movements'])
            if not work_ids:
                return chain
            cur.execute(
                f"SELECT {WORK_COLUMNS} FROM works WHERE id = ANY(%s)",
                (work_ids,)
            )
            chain['works'] = cur.fetchall()

            composer_ids = _unique(w['composerId'] for w in chain['works'])
            if not composer_ids:
                return chain
            cur.execute(
                f"SELECT {COMPOSER_COLUMNS} FROM composers WHERE id = ANY(%s)",
                (composer_ids,)
            )
            chain['composers'] = cur.fetchall()

    return chain


def list_composer_names() -> List[str]:
    """Names of every catalogued composer (used to steer metadata parsing)"""
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT name FROM composers ORDER BY name")
            return [row['name'] for row in cur.fetchall()]


# ============================================================================
# SPOTIFY MIRROR WRITES
# ============================================================================

def upsert_spotify_album(album_id: str, title: str, year: Optional[int],
                         images: List[dict], popularity: Optional[int]):
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                INSERT INTO spotify_albums (spotify_id, title, year, images, popularity)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (spotify_id) DO UPDATE SET
                    title = EXCLUDED.title,
                    year = EXCLUDED.year,
                    images = EXCLUDED.images,
                    popularity = EXCLUDED.popularity
            """, (album_id, title, year, Jsonb(images), popularity))


def upsert_spotify_artist(artist_id: str, name: str, popularity: Optional[int],
                          images: Optional[List[dict]]):
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                INSERT INTO spotify_artists (spotify_id, name, popularity, images)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (spotify_id) DO UPDATE SET
                    name = EXCLUDED.name,
                    popularity = EXCLUDED.popularity,
                    images = EXCLUDED.images
            """, (artist_id, name, popularity, Jsonb(images) if images is not None else None))


def upsert_spotify_track(track: Dict, artist_ids: List[str]):
    """
    Upsert a spotify_tracks row and its track_artists links in one transaction

    Args:
        track: dict with id, name, track_number, duration_ms, popularity, albumId
        artist_ids: Spotify artist IDs credited on the track
    """
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                INSERT INTO spotify_tracks
                    (spotify_id, title, track_number, duration_ms, popularity, spotify_album_id)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (spotify_id) DO UPDATE SET
                    title = EXCLUDED.title,
                    track_number = EXCLUDED.track_number,
                    duration_ms = EXCLUDED.duration_ms,
                    popularity = EXCLUDED.popularity,
                    spotify_album_id = EXCLUDED.spotify_album_id
            """, (
                track['id'],
                track['name'],
                track.get('track_number'),
                track.get('duration_ms'),
                track.get('popularity'),
                track['albumId'],
            ))

            for artist_id in _unique(artist_ids):
                cur.execute("""
                    INSERT INTO track_artists (spotify_track_id, spotify_artist_id)
                    VALUES (%s, %s)
                    ON CONFLICT DO NOTHING
                """, (track['id'], artist_id))


# ============================================================================
# CATALOG WRITES
# ============================================================================

def insert_composer(composer_id: str, name: str, spotify_artist_id: str) -> dict:
    """
    Insert a composer row

    Plain INSERT: a duplicate slug or an artist that already has a composer
    violates a unique constraint and raises.
    """
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(f"""
                INSERT INTO composers (id, name, spotify_artist_id)
                VALUES (%s, %s, %s)
                RETURNING {COMPOSER_COLUMNS}
            """, (composer_id, name, spotify_artist_id))
            return cur.fetchone()


def find_work(composer_id: str, catalog_system: str, catalog_number: str) -> Optional[dict]:
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(f"""
                SELECT {WORK_COLUMNS} FROM works
                WHERE composer_id = %s AND catalog_system = %s AND catalog_number = %s
                LIMIT 1
            """, (composer_id, catalog_system, catalog_number))
            return cur.fetchone()


def find_movement(work_id: str, number: int) -> Optional[dict]:
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(f"""
                SELECT {MOVEMENT_COLUMNS} FROM movements
                WHERE work_id = %s AND number = %s
                LIMIT 1
            """, (work_id, number))
            return cur.fetchone()


def save_work_movement_link(work: Dict, movement: Dict, spotify_track_id: str):
    """
    Upsert a work and a movement, then link the movement to a track

    Args:
        work: dict with id, composerId, title, nickname, catalogSystem,
              catalogNumber, yearComposed, form
        movement: dict with id, workId, number, title
        spotify_track_id: Spotify track to link
    """
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                INSERT INTO works
                    (id, composer_id, title, nickname, catalog_system, catalog_number,
                     year_composed, form)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    title = EXCLUDED.title,
                    nickname = EXCLUDED.nickname,
                    catalog_system = EXCLUDED.catalog_system,
                    catalog_number = EXCLUDED.catalog_number,
                    year_composed = EXCLUDED.year_composed,
                    form = EXCLUDED.form
            """, (
                work['id'],
                work['composerId'],
                work['title'],
                work.get('nickname'),
                work['catalogSystem'],
                work['catalogNumber'],
                work.get('yearComposed'),
                work.get('form'),
            ))

            cur.execute("""
                INSERT INTO movements (id, work_id, number, title)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    number = EXCLUDED.number,
                    title = EXCLUDED.title
            """, (movement['id'], movement['workId'], movement['number'], movement.get('title')))

            cur.execute("""
                INSERT INTO track_movements (spotify_track_id, movement_id, start_ms, end_ms)
                VALUES (%s, %s, NULL, NULL)
                ON CONFLICT DO NOTHING
            """, (spotify_track_id, movement['id']))


def delete_track_movements(spotify_track_id: str) -> int:
    """
    Remove a track's movement links; works and movements are left in place

    Returns:
        Number of links removed
    """
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM track_movements WHERE spotify_track_id = %s",
                (spotify_track_id,)
            )
            return cur.rowcount
