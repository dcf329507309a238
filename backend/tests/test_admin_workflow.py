"""Tests for the admin page's analyze/save/unlink workflow."""

from unittest import mock

import pytest

import admin_workflow
from conftest import make_track, parsed_work
from errors import InvalidInput, WriteFailed


def beethoven(in_artists=False, composer_id=None):
    return {
        'id': 'art1',
        'name': 'Ludwig van Beethoven',
        'uri': 'spotify:artist:art1',
        'inSpotifyArtistsTable': in_artists,
        'inComposersTable': composer_id is not None,
        'composerId': composer_id,
    }


def orchestra(in_artists=False):
    return {
        'id': 'art2',
        'name': 'Berliner Philharmoniker',
        'uri': 'spotify:artist:art2',
        'inSpotifyArtistsTable': in_artists,
        'inComposersTable': False,
        'composerId': None,
    }


@pytest.fixture
def writer():
    """catalog_writer as seen by admin_workflow, with every write recorded in order"""
    with mock.patch.object(admin_workflow, 'catalog_writer') as catalog_writer:
        catalog_writer.upsert_composer.return_value = {
            'success': True,
            'composer': {'id': 'ludwig-van-beethoven', 'name': 'Ludwig van Beethoven', 'spotifyArtistId': 'art1'},
        }
        yield catalog_writer


@pytest.fixture
def resolve():
    with mock.patch.object(admin_workflow.track_reconciliation, 'resolve_track') as resolve_track:
        resolve_track.side_effect = lambda principal, uri, client_factory: make_track(
            uri.rsplit(':', 1)[-1], in_tracks_table=True, in_albums_table=True,
            track_movements=[{'movementId': 'x'}]
        )
        yield resolve_track


def written(writer):
    return [c[0] for c in writer.mock_calls]


# ============================================================================
# VIEW HELPERS
# ============================================================================

def test_has_metadata():
    assert not admin_workflow.has_metadata(make_track('t1'))
    assert admin_workflow.has_metadata(make_track('t1', track_movements=[{'movementId': 'm'}]))


def test_view_prefers_parsed_data_over_stored():
    track = make_track(
        't1',
        parsed=parsed_work(movement=2, movement_name='Andante con moto'),
        works=[{'catalogSystem': 'Op', 'catalogNumber': '67', 'title': 'Stored', 'nickname': 'Fate'}],
        artists=[beethoven(composer_id='ludwig-van-beethoven')],
    )

    assert admin_workflow.get_composer_name(track) == 'Ludwig van Beethoven'
    assert admin_workflow.composer_exists_in_db(track) is True
    assert admin_workflow.get_work_info(track)['title'] == 'Symphony No. 5 in C Minor, Op. 67'
    assert admin_workflow.work_exists_in_db(track) is True
    assert admin_workflow.get_movement_info(track) == {'number': 2, 'title': 'Andante con moto'}
    assert admin_workflow.movement_exists_in_db(track) is False


def test_view_falls_back_to_stored_chain():
    track = make_track('t1', works=[{'catalogSystem': 'Op', 'catalogNumber': '67', 'title': 'Symphony No. 5',
                                     'nickname': None}])
    track['dbData']['composers'] = [{'id': 'ludwig-van-beethoven', 'name': 'Ludwig van Beethoven'}]
    track['dbData']['movements'] = [{'number': 1, 'title': 'Allegro con brio'}]

    assert admin_workflow.get_composer_name(track) == 'Ludwig van Beethoven'
    assert admin_workflow.get_work_info(track)['catalogNumber'] == '67'
    assert admin_workflow.get_movement_info(track) == {'number': 1, 'title': 'Allegro con brio'}
    assert admin_workflow.movement_exists_in_db(track) is True


def test_describe_track_reports_inferred_movement():
    tracks = [
        make_track('t1', track_number=1, parsed=parsed_work()),
        make_track('t2', track_number=2, parsed=parsed_work()),
    ]
    row = admin_workflow.describe_track(tracks[1], tracks)
    assert row['hasMetadata'] is False
    assert row['movementNumber'] is None
    assert row['inferredMovement'] == 2


# ============================================================================
# ANALYZE
# ============================================================================

def test_analyze_parses_only_uncatalogued_tracks(operator):
    stored = make_track('stored', name='Symphony No. 5 in C Minor, Op. 67: I. Allegro con brio',
                        track_movements=[{'movementId': 'm'}])
    fresh = make_track('fresh', name='Symphony No. 5 in C Minor, Op. 67: II. Andante con moto')
    other = make_track('other', name='So What')

    result = admin_workflow.analyze_tracks(operator, [stored, fresh, other],
                                           known_composers_loader=lambda: [])

    assert [t['id'] for t in result] == ['stored', 'fresh', 'other']
    assert 'parsed' not in result[0]
    assert result[1]['parsed']['movement'] == 2
    assert result[1]['parsed']['composerName'] == 'Ludwig van Beethoven'
    assert result[2]['parsed'] is None


def test_analyze_rejects_fully_catalogued_album(operator):
    stored = make_track('stored', track_movements=[{'movementId': 'm'}])
    with pytest.raises(InvalidInput) as exc_info:
        admin_workflow.analyze_tracks(operator, [stored], known_composers_loader=lambda: [])
    assert exc_info.value.message == 'All tracks in this album are already in the database'


# ============================================================================
# SAVE
# ============================================================================

def test_save_new_track_runs_every_step_in_order(operator, writer, resolve):
    track = make_track('t1', track_number=1, parsed=parsed_work(movement=1, movement_name='Allegro con brio'),
                       artists=[beethoven(), orchestra()])

    refreshed = admin_workflow.save_track(operator, track, [track])

    assert written(writer) == [
        'upsert_album', 'upsert_artists', 'upsert_composer', 'upsert_track', 'link_work_movement_track',
    ]
    assert writer.upsert_artists.call_args[0][1] == [
        {'id': 'art1', 'name': 'Ludwig van Beethoven'},
        {'id': 'art2', 'name': 'Berliner Philharmoniker'},
    ]
    writer.upsert_composer.assert_called_once_with(operator, 'art1', 'Ludwig van Beethoven')
    link = writer.link_work_movement_track.call_args[0][1]
    assert link['composerId'] == 'ludwig-van-beethoven'
    assert link['movementNumber'] == 1
    assert link['spotifyTrackId'] == 't1'
    assert resolve.call_args[0][1] == 'spotify:track:t1'
    assert refreshed['parsed'] == track['parsed']


def test_save_skips_steps_already_done(operator, writer, resolve):
    track = make_track(
        't1', parsed=parsed_work(movement=3), in_tracks_table=True, in_albums_table=True,
        artists=[beethoven(in_artists=True, composer_id='ludwig-van-beethoven'), orchestra(in_artists=True)],
    )

    admin_workflow.save_track(operator, track, [track])

    assert written(writer) == ['link_work_movement_track']
    assert writer.link_work_movement_track.call_args[0][1]['composerId'] == 'ludwig-van-beethoven'


def test_save_only_mirrors_missing_artists(operator, writer, resolve):
    track = make_track('t1', parsed=parsed_work(movement=1), in_albums_table=True,
                       artists=[beethoven(in_artists=True), orchestra()])

    admin_workflow.save_track(operator, track, [track])

    assert writer.upsert_artists.call_args[0][1] == [{'id': 'art2', 'name': 'Berliner Philharmoniker'}]


def test_save_infers_movement_number(operator, writer, resolve):
    tracks = [
        make_track('t5', track_number=5, parsed=parsed_work(), in_tracks_table=True, in_albums_table=True,
                   artists=[beethoven(True, 'ludwig-van-beethoven')]),
        make_track('t3', track_number=3, parsed=parsed_work(), in_tracks_table=True, in_albums_table=True,
                   artists=[beethoven(True, 'ludwig-van-beethoven')]),
        make_track('t7', track_number=7, parsed=parsed_work(), in_tracks_table=True, in_albums_table=True,
                   artists=[beethoven(True, 'ludwig-van-beethoven')]),
    ]

    admin_workflow.save_track(operator, tracks[0], tracks)

    assert writer.link_work_movement_track.call_args[0][1]['movementNumber'] == 2


def test_save_requires_composer_among_artists(operator, writer, resolve):
    track = make_track('t1', parsed=parsed_work(composer='Franz Schubert'), artists=[orchestra()])

    with pytest.raises(InvalidInput) as exc_info:
        admin_workflow.save_track(operator, track, [track])

    assert 'Franz Schubert' in exc_info.value.message
    assert writer.mock_calls == []
    resolve.assert_not_called()


def test_save_stops_at_first_failed_step(operator, writer, resolve):
    writer.upsert_composer.side_effect = WriteFailed('add composer')
    track = make_track('t1', parsed=parsed_work(movement=1), artists=[beethoven()])

    with pytest.raises(WriteFailed):
        admin_workflow.save_track(operator, track, [track])

    assert written(writer) == ['upsert_album', 'upsert_artists', 'upsert_composer']
    resolve.assert_not_called()


# ============================================================================
# UNLINK
# ============================================================================

def test_unlink_catalogued_track(operator, writer, resolve):
    track = make_track('t1', parsed=parsed_work(), track_movements=[{'movementId': 'm'}])

    refreshed = admin_workflow.unlink_and_refresh(operator, track)

    writer.unlink_track.assert_called_once_with(operator, 't1')
    resolve.assert_called_once()
    assert refreshed['parsed'] == track['parsed']


def test_unlink_uncatalogued_track_is_a_no_op(operator, writer, resolve):
    track = make_track('t1')

    assert admin_workflow.unlink_and_refresh(operator, track) is track
    assert writer.mock_calls == []
    resolve.assert_not_called()
