import pytest

from tunebacker.core import MissingParametersError
from tunebacker.flows.restoration import PlaylistRestorer


@pytest.fixture
def restorer(fake_spotify) -> PlaylistRestorer:
    return PlaylistRestorer(fake_spotify)


def test_restore_creates_then_fills_playlist(restorer, fake_spotify) -> None:
    new_id = restorer.restore("tok", "spotify-alice", "Road Trip", ["a", "b"])

    assert new_id == "new-playlist-1"
    assert fake_spotify.created == [
        {"access_token": "tok", "user": "spotify-alice", "name": "Road Trip"}
    ]
    assert fake_spotify.added == [{"playlist_id": "new-playlist-1", "track_ids": ["a", "b"]}]


@pytest.mark.parametrize(
    "access_token, spotify_user_id, playlist_name, track_ids",
    [
        ("tok", "spotify-alice", "", ["a"]),
        ("tok", "spotify-alice", "Mix", []),
        ("tok", "", "Mix", ["a"]),
        ("", "spotify-alice", "Mix", ["a"]),
    ],
)
def test_restore_rejects_missing_input_before_any_write(
    restorer, fake_spotify, access_token, spotify_user_id, playlist_name, track_ids
) -> None:
    with pytest.raises(MissingParametersError):
        restorer.restore(access_token, spotify_user_id, playlist_name, track_ids)

    assert fake_spotify.created == []
    assert fake_spotify.added == []
