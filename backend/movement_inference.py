"""
Movement Number Inference

When a parsed title carries no explicit movement number, the number is
inferred from the track's place among the loaded tracks of the same work on
the same album: tracks are grouped by album plus (catalog system, catalog
number, composer name), either freshly parsed or already linked in the
store, ordered by album track number, and each track's 1-based rank is its
movement number.

These are pure functions over the caller's current track list; nothing is
cached between calls.
"""

from typing import List, Optional


def _position(track: dict) -> float:
    number = track.get('track_number')
    return number if isinstance(number, int) else float('inf')


def is_same_work(candidate: dict, album_id: str, catalog_system: Optional[str],
                 catalog_number: Optional[str], composer_name: Optional[str]) -> bool:
    """True if candidate is on album_id and belongs to the given work"""
    if (candidate.get('album') or {}).get('id') != album_id:
        return False

    parsed = candidate.get('parsed') or {}
    parsed_match = bool(parsed) and (
        parsed.get('catalogSystem') == catalog_system
        and parsed.get('catalogNumber') == catalog_number
        and parsed.get('composerName') == composer_name
    )

    works = (candidate.get('dbData') or {}).get('works') or []
    db_match = any(
        work.get('catalogSystem') == catalog_system and work.get('catalogNumber') == catalog_number
        for work in works
    )

    return parsed_match or db_match


def infer_movement_number(track: dict, tracks: List[dict], catalog_system: Optional[str],
                          catalog_number: Optional[str], composer_name: Optional[str]) -> int:
    """
    Rank of track among same-work tracks on its album, by album position

    Returns 1 for a work with a single loaded track, and -1 if the track is
    not part of its own group (its own data does not match the work).
    """
    album_id = (track.get('album') or {}).get('id')
    group = sorted(
        (t for t in tracks if is_same_work(t, album_id, catalog_system, catalog_number, composer_name)),
        key=_position
    )

    if len(group) <= 1:
        return 1

    for index, candidate in enumerate(group):
        if candidate.get('id') == track.get('id'):
            return index + 1
    return -1


def get_inferred_movement(track: dict, tracks: List[dict]) -> Optional[int]:
    """
    Inferred movement number for a parsed track lacking an explicit one

    Returns None when the track was not parsed or the parser already found
    a movement number.
    """
    parsed = track.get('parsed')
    if not parsed or parsed.get('movement'):
        return None
    return infer_movement_number(
        track,
        tracks,
        parsed.get('catalogSystem'),
        parsed.get('catalogNumber'),
        parsed.get('composerName'),
    )
