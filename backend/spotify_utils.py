"""
Spotify Reference Utilities

Extract Spotify track IDs from the two shapes operators paste into the admin
tool:
- URIs:  spotify:track:4uLU6hMCjMI75M1A2tKUQC
- URLs:  https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=...
"""

import re
from typing import List

from errors import InvalidInput

TRACK_URI_PATTERN = re.compile(r'spotify:track:([a-zA-Z0-9]+)')
TRACK_URL_PATTERN = re.compile(r'open\.spotify\.com/(?:intl-[a-z]{2}/)?track/([a-zA-Z0-9]+)')


def extract_track_id(reference) -> str:
    """
    Extract the track ID from a Spotify URI or open.spotify.com URL

    Raises:
        InvalidInput: If the reference matches neither shape
    """
    if not reference or not isinstance(reference, str):
        raise InvalidInput('Invalid track URI')

    match = TRACK_URI_PATTERN.search(reference) or TRACK_URL_PATTERN.search(reference)
    if not match:
        raise InvalidInput('Invalid Spotify track URI or URL format')
    return match.group(1)


def extract_track_ids(references) -> List[str]:
    """
    Extract track IDs for a batch of references

    The whole batch fails on the first invalid entry; callers wanting partial
    success must validate entries individually first.
    """
    if not isinstance(references, (list, tuple)):
        raise InvalidInput('Expected a list of track URIs')
    return [extract_track_id(ref) for ref in references]


def track_uri(track_id: str) -> str:
    """Canonical Spotify URI for a track ID"""
    return f"spotify:track:{track_id}"
