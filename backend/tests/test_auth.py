"""Tests for the access gate, session loading, and the Spotify token broker."""

from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest
import requests

import token_broker
from auth_utils import Principal, check_operator, decode_token, generate_access_token, parse_bearer_header
from conftest import OPERATOR_ID, USERS
from errors import AccessDenied, Unauthorized, UpstreamAuthFailure
from middleware.auth_middleware import load_session


# ============================================================================
# ACCESS GATE
# ============================================================================

def test_gate_rejects_missing_session():
    with pytest.raises(Unauthorized) as exc_info:
        check_operator(None)
    assert exc_info.value.status_code == 401


def test_gate_rejects_other_users(stranger):
    with pytest.raises(AccessDenied) as exc_info:
        check_operator(stranger)
    assert exc_info.value.status_code == 403


def test_gate_admits_operator(operator):
    assert check_operator(operator) is operator


def test_gate_uses_configured_operator_name():
    principal = Principal(user_id='u1', name='curator')
    assert check_operator(principal, 'curator') is principal
    with pytest.raises(AccessDenied):
        check_operator(principal, 'benwaffle')


# ============================================================================
# SESSIONS
# ============================================================================

def test_access_token_round_trip():
    payload = decode_token(generate_access_token(OPERATOR_ID))
    assert payload['user_id'] == OPERATOR_ID
    assert payload['type'] == 'access'


def test_parse_bearer_header():
    assert parse_bearer_header('Bearer abc') == 'abc'
    assert parse_bearer_header('Basic abc') is None
    assert parse_bearer_header(None) is None


def test_load_session_resolves_user():
    header = f'Bearer {generate_access_token(OPERATOR_ID)}'
    with mock.patch('middleware.auth_middleware.find_session_user', side_effect=USERS.get):
        principal = load_session(header)
    assert principal == Principal(user_id=OPERATOR_ID, name='benwaffle')


def test_load_session_rejects_bad_tokens():
    with mock.patch('middleware.auth_middleware.find_session_user') as find_user:
        assert load_session(None) is None
        assert load_session('Bearer not-a-jwt') is None
        find_user.assert_not_called()


def test_load_session_rejects_inactive_user():
    header = f'Bearer {generate_access_token(OPERATOR_ID)}'
    inactive = dict(USERS[OPERATOR_ID], is_active=False)
    with mock.patch('middleware.auth_middleware.find_session_user', return_value=inactive):
        assert load_session(header) is None


# ============================================================================
# TOKEN BROKER
# ============================================================================

def _account(expires_in_seconds, refresh_token='refresh-1'):
    return {
        'id': 'acct-1',
        'access_token': 'access-1',
        'refresh_token': refresh_token,
        'access_token_expires_at': datetime.now(timezone.utc) + timedelta(seconds=expires_in_seconds),
    }


def test_get_access_token_returns_valid_token():
    with mock.patch.object(token_broker, 'find_account', return_value=_account(3600)) as find_account:
        assert token_broker.get_access_token(OPERATOR_ID) == 'access-1'
    find_account.assert_called_once_with('spotify', OPERATOR_ID)


def test_get_access_token_without_account():
    with mock.patch.object(token_broker, 'find_account', return_value=None):
        with pytest.raises(UpstreamAuthFailure) as exc_info:
            token_broker.get_access_token(OPERATOR_ID)
    assert exc_info.value.status_code == 401
    assert exc_info.value.message == 'No Spotify access token'


def test_get_access_token_refreshes_expired_token():
    response = mock.Mock()
    response.json.return_value = {'access_token': 'access-2', 'expires_in': 3600}
    response.raise_for_status.return_value = None

    with mock.patch.object(token_broker, 'find_account', return_value=_account(-10)), \
            mock.patch.object(token_broker, 'store_refreshed_token') as store, \
            mock.patch.object(token_broker.requests, 'post', return_value=response) as post:
        assert token_broker.get_access_token(OPERATOR_ID) == 'access-2'

    assert post.call_args.kwargs['data'] == {'grant_type': 'refresh_token', 'refresh_token': 'refresh-1'}
    assert post.call_args.kwargs['headers']['Authorization'].startswith('Basic ')
    store.assert_called_once()
    assert store.call_args[0][0] == 'acct-1'
    assert store.call_args[0][1] == 'access-2'


def test_expired_token_without_refresh_token():
    with mock.patch.object(token_broker, 'find_account', return_value=_account(-10, refresh_token=None)):
        with pytest.raises(UpstreamAuthFailure):
            token_broker.get_access_token(OPERATOR_ID)


def test_failed_refresh_is_upstream_auth_failure():
    with mock.patch.object(token_broker, 'find_account', return_value=_account(-10)), \
            mock.patch.object(token_broker, 'store_refreshed_token') as store, \
            mock.patch.object(token_broker.requests, 'post',
                              side_effect=requests.exceptions.HTTPError("400 invalid_grant")):
        with pytest.raises(UpstreamAuthFailure):
            token_broker.get_access_token(OPERATOR_ID)
    store.assert_not_called()
