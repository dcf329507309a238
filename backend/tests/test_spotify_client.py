"""Tests for the Spotify client and record decoding (HTTP session is mocked)."""

from unittest import mock

import pytest
import requests

from conftest import spotify_track_payload
from errors import ProviderError
from spotify_client import SpotifyClient


def make_response(status_code=200, payload=None, headers=None, json_error=False):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = headers or {}
    if json_error:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


def make_client(response=None, side_effect=None):
    session = mock.Mock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    return SpotifyClient('token-123', api_base='https://api.example.test/v1', timeout=5, session=session), session


def test_get_track_sends_bearer_and_decodes():
    client, session = make_client(make_response(payload=spotify_track_payload()))

    track = client.get_track('trk1')

    session.get.assert_called_once_with(
        'https://api.example.test/v1/tracks/trk1',
        headers={'Authorization': 'Bearer token-123'},
        timeout=5
    )
    assert track.id == 'trk1'
    assert track.album.id == 'alb1'
    assert track.album.images[0].width == 640
    assert track.artist_ids == ['art1', 'art2']
    assert client.stats['api_calls'] == 1


def test_get_album_and_artist_paths():
    album_payload = {'id': 'alb1', 'name': 'Album', 'popularity': 61, 'images': []}
    client, session = make_client(make_response(payload=album_payload))
    assert client.get_album('alb1').popularity == 61
    assert session.get.call_args[0][0].endswith('/albums/alb1')

    artist_payload = {'id': 'art1', 'name': 'Beethoven', 'popularity': 80,
                      'images': [{'url': 'https://img', 'width': None, 'height': None}]}
    client, session = make_client(make_response(payload=artist_payload))
    artist = client.get_artist('art1')
    assert artist.popularity == 80
    assert artist.images[0].url == 'https://img'
    assert session.get.call_args[0][0].endswith('/artists/art1')


def test_non_success_status_passes_through():
    client, session = make_client(make_response(404, {'error': {'status': 404, 'message': 'non existing id'}}))

    with pytest.raises(ProviderError) as exc_info:
        client.get_track('missing')

    assert exc_info.value.status == 404
    assert exc_info.value.message == 'non existing id'
    assert session.get.call_count == 1


def test_rate_limit_is_not_retried():
    client, session = make_client(make_response(429, {}, headers={'Retry-After': '3'}))

    with pytest.raises(ProviderError) as exc_info:
        client.get_track('trk1')

    assert exc_info.value.status == 429
    assert exc_info.value.message == 'Failed to fetch data from Spotify'
    assert session.get.call_count == 1
    assert client.stats['errors'] == 1


def test_network_failure_is_bad_gateway():
    client, _ = make_client(side_effect=requests.exceptions.ConnectionError("boom"))

    with pytest.raises(ProviderError) as exc_info:
        client.get_track('trk1')

    assert exc_info.value.status == 502


def test_non_json_body_is_malformed():
    client, _ = make_client(make_response(200, json_error=True))

    with pytest.raises(ProviderError) as exc_info:
        client.get_track('trk1')

    assert exc_info.value.status == 502
    assert 'Malformed' in exc_info.value.message


def test_missing_required_field_is_malformed():
    payload = spotify_track_payload()
    del payload['album']
    client, _ = make_client(make_response(payload=payload))

    with pytest.raises(ProviderError) as exc_info:
        client.get_track('trk1')

    assert exc_info.value.status == 502
    assert "'album'" in exc_info.value.message


def test_boolean_popularity_is_ignored():
    payload = spotify_track_payload()
    payload['popularity'] = True
    client, _ = make_client(make_response(payload=payload))

    assert client.get_track('trk1').popularity is None


def test_context_manager_closes_its_own_session():
    with mock.patch('spotify_client.requests.Session') as session_class:
        with SpotifyClient('token-123') as client:
            assert client.session is session_class.return_value
    session_class.return_value.close.assert_called_once_with()


def test_injected_session_is_left_open():
    client, session = make_client(make_response(payload=spotify_track_payload()))
    with client:
        client.get_track('trk1')
    session.close.assert_not_called()
