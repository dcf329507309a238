"""Tests for movement number inference from album track order."""

from conftest import make_track, parsed_work
from movement_inference import get_inferred_movement, infer_movement_number, is_same_work


def _work_tracks():
    return [
        make_track('t5', track_number=5, parsed=parsed_work()),
        make_track('t3', track_number=3, parsed=parsed_work()),
        make_track('t7', track_number=7, parsed=parsed_work()),
    ]


def test_rank_follows_album_track_number():
    tracks = _work_tracks()
    ranks = [infer_movement_number(t, tracks, 'Op', '67', 'Ludwig van Beethoven') for t in tracks]
    assert ranks == [2, 1, 3]


def test_other_works_and_albums_are_ignored():
    tracks = _work_tracks() + [
        make_track('other-work', track_number=1, parsed=parsed_work(catalog_number='92')),
        make_track('other-album', track_number=2, album_id='alb2', parsed=parsed_work()),
        make_track('unparsed', track_number=4),
    ]
    t5 = tracks[0]
    assert infer_movement_number(t5, tracks, 'Op', '67', 'Ludwig van Beethoven') == 2


def test_stored_work_counts_as_same_work():
    stored = make_track('t1', track_number=1, works=[{'catalogSystem': 'Op', 'catalogNumber': '67'}])
    tracks = [stored] + _work_tracks()
    t5 = tracks[1]
    assert infer_movement_number(t5, tracks, 'Op', '67', 'Ludwig van Beethoven') == 3


def test_single_track_work_is_first_movement():
    track = make_track('solo', track_number=9, parsed=parsed_work())
    assert infer_movement_number(track, [track], 'Op', '67', 'Ludwig van Beethoven') == 1


def test_track_outside_its_own_group():
    tracks = _work_tracks()
    stray = make_track('stray', track_number=2, parsed=parsed_work(catalog_number='92'))
    assert infer_movement_number(stray, tracks + [stray], 'Op', '67', 'Ludwig van Beethoven') == -1


def test_missing_track_numbers_sort_last():
    tracks = _work_tracks()
    tracks[1]['track_number'] = None
    ranks = [infer_movement_number(t, tracks, 'Op', '67', 'Ludwig van Beethoven') for t in tracks]
    assert ranks == [1, 3, 2]


def test_is_same_work_requires_matching_composer_for_parsed_tracks():
    track = make_track('t1', parsed=parsed_work(composer='Someone Else'))
    assert not is_same_work(track, 'alb1', 'Op', '67', 'Ludwig van Beethoven')


def test_inferred_movement_only_when_parser_found_none():
    tracks = _work_tracks()
    assert get_inferred_movement(tracks[0], tracks) == 2

    explicit = make_track('t9', track_number=9, parsed=parsed_work(movement=4))
    assert get_inferred_movement(explicit, tracks + [explicit]) is None

    assert get_inferred_movement(make_track('raw'), tracks) is None
