"""
Spotify API Client

Handles low-level Spotify Web API concerns for the catalog admin:
- Bearer authentication with the operator's own access token
- Error mapping (non-2xx responses become ProviderError with Spotify's status)
- Decoding payloads into record types at the boundary

There is no retry loop and no response cache: every lookup is a
single live request, and failures surface once to the caller.
"""

import logging
from typing import Any, Dict, Optional

import requests

import config
from errors import ProviderError
from spotify_models import ProviderAlbum, ProviderArtist, ProviderTrack

logger = logging.getLogger(__name__)


class SpotifyClient:
    """
    Thin Spotify Web API client bound to one user's access token.
    """

    def __init__(self, access_token: str, api_base: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None,
                 logger=None):
        """
        Initialize Spotify Client

        Args:
            access_token: Bearer token obtained from the token broker
            api_base: Base URL of the Web API (defaults to config.SPOTIFY_API_BASE)
            timeout: Per-request timeout in seconds
            session: Optional requests.Session; an injected session is left
                     open by close()
            logger: Optional logger instance (uses module logger if not provided)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.access_token = access_token
        self.api_base = (api_base or config.SPOTIFY_API_BASE).rstrip('/')
        self.timeout = timeout if timeout is not None else config.SPOTIFY_REQUEST_TIMEOUT
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

        self.stats = {
            'api_calls': 0,
            'errors': 0,
        }

    def close(self):
        """Release the HTTP session if this client created it"""
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    # ========================================================================
    # REQUEST HANDLING
    # ========================================================================

    @staticmethod
    def _error_message(response: requests.Response) -> Optional[str]:
        """Pull Spotify's error.message out of an error response, if any"""
        try:
            payload = response.json()
        except ValueError:
            return None
        error = payload.get('error') if isinstance(payload, dict) else None
        if isinstance(error, dict):
            return error.get('message')
        if isinstance(error, str):
            return error
        return None

    def _make_api_request(self, path: str) -> Dict[str, Any]:
        """
        GET a Web API path and return the decoded JSON body

        Raises:
            ProviderError: On network failure, non-2xx status, or a non-JSON body
        """
        url = f"{self.api_base}/{path.lstrip('/')}"
        self.stats['api_calls'] += 1

        try:
            response = self.session.get(
                url,
                headers={'Authorization': f'Bearer {self.access_token}'},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            self.stats['errors'] += 1
            self.logger.error(f"Spotify request failed for {path}: {e}")
            raise ProviderError(502, 'Failed to reach Spotify') from e

        if not response.ok:
            self.stats['errors'] += 1
            message = self._error_message(response)
            if response.status_code == 429:
                self.logger.warning(
                    f"Spotify rate limit hit for {path} "
                    f"(Retry-After: {response.headers.get('Retry-After')})"
                )
            else:
                self.logger.warning(f"Spotify returned {response.status_code} for {path}: {message}")
            raise ProviderError(
                response.status_code,
                message or 'Failed to fetch data from Spotify'
            )

        try:
            return response.json()
        except ValueError as e:
            self.stats['errors'] += 1
            self.logger.error(f"Spotify returned a non-JSON body for {path}")
            raise ProviderError(502, 'Malformed response from Spotify') from e

    # ========================================================================
    # ENTITY LOOKUPS
    # ========================================================================

    def get_track(self, track_id: str) -> ProviderTrack:
        """Fetch a track (album and artists are embedded in the payload)"""
        self.logger.debug(f"Fetching Spotify track {track_id}")
        return ProviderTrack.from_api(self._make_api_request(f"tracks/{track_id}"))

    def get_album(self, album_id: str) -> ProviderAlbum:
        """Fetch the full album object (includes popularity)"""
        self.logger.debug(f"Fetching Spotify album {album_id}")
        return ProviderAlbum.from_api(self._make_api_request(f"albums/{album_id}"))

    def get_artist(self, artist_id: str) -> ProviderArtist:
        """Fetch the full artist object (includes popularity and images)"""
        self.logger.debug(f"Fetching Spotify artist {artist_id}")
        return ProviderArtist.from_api(self._make_api_request(f"artists/{artist_id}"))
