"""
Spotify Token Broker

Looks up the caller's stored Spotify OAuth account and returns a usable
bearer token, refreshing it with the refresh-token grant when it has expired.
Accounts are keyed by (provider_id, user_id).
"""

import base64
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests

import config
from db_utils import get_db_connection
from errors import UpstreamAuthFailure

logger = logging.getLogger(__name__)

# Refresh a little before the recorded expiry
EXPIRY_MARGIN = timedelta(seconds=60)


def find_account(provider_id: str, user_id: str) -> Optional[dict]:
    """Load the stored OAuth account row for a user"""
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                SELECT id, access_token, refresh_token, access_token_expires_at
                FROM account
                WHERE provider_id = %s AND user_id = %s
                LIMIT 1
            """, (provider_id, user_id))
            return cur.fetchone()


def store_refreshed_token(account_id, access_token: str, expires_at: datetime,
                          refresh_token: Optional[str] = None):
    """Persist a refreshed access token (and rotated refresh token, if any)"""
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                UPDATE account
                SET access_token = %s,
                    access_token_expires_at = %s,
                    refresh_token = COALESCE(%s, refresh_token),
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = %s
            """, (access_token, expires_at, refresh_token, account_id))


def _is_expired(expires_at: Optional[datetime]) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) >= expires_at - EXPIRY_MARGIN


def refresh_access_token(refresh_token: str) -> dict:
    """
    Exchange a refresh token for a new access token

    Returns:
        Spotify token response (access_token, expires_in, optional refresh_token)

    Raises:
        UpstreamAuthFailure: If credentials are missing or Spotify rejects the refresh
    """
    client_id = os.environ.get('SPOTIFY_CLIENT_ID')
    client_secret = os.environ.get('SPOTIFY_CLIENT_SECRET')

    if not client_id or not client_secret:
        logger.error("Spotify credentials not found in environment variables")
        raise UpstreamAuthFailure()

    credentials_b64 = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()

    try:
        response = requests.post(
            config.SPOTIFY_TOKEN_URL,
            headers={
                'Authorization': f'Basic {credentials_b64}',
                'Content-Type': 'application/x-www-form-urlencoded'
            },
            data={'grant_type': 'refresh_token', 'refresh_token': refresh_token},
            timeout=config.SPOTIFY_REQUEST_TIMEOUT
        )
        response.raise_for_status()
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error(f"Failed to refresh Spotify access token: {e}")
        raise UpstreamAuthFailure() from e

    if not data.get('access_token'):
        logger.error("Spotify token refresh returned no access token")
        raise UpstreamAuthFailure()
    return data


def get_access_token(user_id: str, provider_id: str = config.SPOTIFY_PROVIDER_ID) -> str:
    """
    Get a valid access token for the user's linked provider account

    Raises:
        UpstreamAuthFailure: No linked account, no token, or refresh failed
    """
    account = find_account(provider_id, user_id)

    if not account or not account.get('access_token'):
        logger.warning(f"No {provider_id} access token for user {user_id}")
        raise UpstreamAuthFailure()

    if not _is_expired(account.get('access_token_expires_at')):
        return account['access_token']

    if not account.get('refresh_token'):
        logger.warning(f"{provider_id} access token expired for user {user_id} and no refresh token stored")
        raise UpstreamAuthFailure()

    logger.info(f"Refreshing {provider_id} access token for user {user_id}")
    data = refresh_access_token(account['refresh_token'])
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(data.get('expires_in', 3600)))
    store_refreshed_token(account['id'], data['access_token'], expires_at, data.get('refresh_token'))
    return data['access_token']
