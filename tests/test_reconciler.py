"""Test per-playlist reconciliation"""

import pytest

from artist_sync.exceptions import SessionExpiredError, SpotifyAPIError
from artist_sync.spotify.models import Playlist, Song
from artist_sync.sync.matcher import Match
from artist_sync.sync.reconciler import PLAYLIST_URI_FIELDS, Reconciler

from conftest import API_BASE, USER_ID


def song(n, artist="Queen"):
    return Song(uri=f"spotify:track:{n}", name=f"Song {n}", artist_names=(artist,))


def match_for(fake_api, playlist_id, songs, existing=None, name="Queen"):
    fake_api.add_playlist(playlist_id, name, uris=existing or [])
    playlist = Playlist(
        id=playlist_id,
        name=name,
        owner_id=USER_ID,
        tracks_endpoint=fake_api.playlist_tracks_url(playlist_id),
    )
    return Match(playlist=playlist, artist_key=name.lower().strip(), songs=songs)


class TestReconciler:
    """Test appending missing songs to one playlist"""

    @pytest.mark.asyncio
    async def test_adds_only_missing_songs(self, fake_api):
        """Songs already in the playlist are not added again"""
        match = match_for(fake_api, "p1", [song(1), song(2), song(3)], existing=["spotify:track:2"])

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.succeeded
        assert outcome.added == 2
        assert fake_api.playlist_uris["p1"] == ["spotify:track:2", "spotify:track:1", "spotify:track:3"]

    @pytest.mark.asyncio
    async def test_up_to_date_playlist_issues_no_mutation(self, fake_api):
        match = match_for(fake_api, "p1", [song(1)], existing=["spotify:track:1"])

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.succeeded
        assert outcome.added == 0
        assert fake_api.mutations() == []

    @pytest.mark.asyncio
    async def test_reads_every_page_of_existing_tracks(self, fake_api):
        """Membership uses the whole playlist, not just its first page"""
        existing = [f"spotify:track:{n}" for n in range(1, 6)]
        match = match_for(fake_api, "p1", [song(5), song(6)], existing=existing)

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.added == 1
        assert fake_api.mutations()[0][2] == ["spotify:track:6"]

    @pytest.mark.asyncio
    async def test_requests_uri_projection_with_next(self, fake_api):
        """The field projection keeps the next pointer"""
        match = match_for(fake_api, "p1", [song(1)])

        await Reconciler(fake_api, tracks_page_size=100).reconcile(match)

        method, url, params = fake_api.requests[0]
        assert url == f"{API_BASE}/playlists/p1/tracks"
        assert params == {'limit': '100', 'fields': PLAYLIST_URI_FIELDS}
        assert 'next' in PLAYLIST_URI_FIELDS

    @pytest.mark.asyncio
    async def test_ignores_null_tracks_in_playlist(self, fake_api):
        match = match_for(fake_api, "p1", [song(1)], existing=[None, "spotify:track:1"])

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.added == 0

    @pytest.mark.asyncio
    async def test_duplicate_liked_songs_added_once(self, fake_api):
        match = match_for(fake_api, "p1", [song(1), song(1), song(2)])

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.added == 2
        assert fake_api.mutations()[0][2] == ["spotify:track:1", "spotify:track:2"]

    @pytest.mark.asyncio
    async def test_batches_in_order(self, fake_api):
        """Additions are split into batches of at most batch_size, in song order"""
        songs = [song(n) for n in range(1, 251)]
        match = match_for(fake_api, "p1", songs)

        outcome = await Reconciler(fake_api, batch_size=100).reconcile(match)

        batches = [uris for _, _, uris in fake_api.mutations()]
        assert [len(batch) for batch in batches] == [100, 100, 50]
        assert sum(batches, []) == [s.uri for s in songs]
        assert outcome.added == 250

    @pytest.mark.asyncio
    async def test_exact_batch_multiple(self, fake_api):
        songs = [song(n) for n in range(1, 201)]
        match = match_for(fake_api, "p1", songs)

        await Reconciler(fake_api, batch_size=100).reconcile(match)

        assert [len(uris) for _, _, uris in fake_api.mutations()] == [100, 100]

    @pytest.mark.asyncio
    async def test_failed_batch_counts_nothing(self, fake_api):
        """Earlier batches stay in the playlist but the failed playlist adds 0"""
        songs = [song(n) for n in range(1, 6)]
        match = match_for(fake_api, "p1", songs)
        fake_api.fail_add["p1"] = {2: SpotifyAPIError("Failed to add tracks: Forbidden", status=403)}

        outcome = await Reconciler(fake_api, batch_size=2).reconcile(match)

        assert not outcome.succeeded
        assert outcome.added == 0
        assert outcome.error == "Error syncing Queen: Failed to add tracks: Forbidden"
        assert fake_api.playlist_uris["p1"] == ["spotify:track:1", "spotify:track:2"]
        # Later batches are not attempted
        assert len(fake_api.mutations()) == 2

    @pytest.mark.asyncio
    async def test_first_batch_failure_counts_nothing(self, fake_api):
        match = match_for(fake_api, "p1", [song(1)])
        fake_api.fail_add["p1"] = {1: SpotifyAPIError("Failed to add tracks: Not found", status=404)}

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.added == 0
        assert outcome.error == "Error syncing Queen: Failed to add tracks: Not found"

    @pytest.mark.asyncio
    async def test_track_fetch_failure_is_isolated(self, fake_api):
        match = match_for(fake_api, "p1", [song(1)])
        fake_api.fail_fetch["/v1/playlists/p1/tracks"] = SpotifyAPIError(
            "API request failed with status 500: Server error", status=500
        )

        outcome = await Reconciler(fake_api).reconcile(match)

        assert outcome.error == "Error syncing Queen: API request failed with status 500: Server error"
        assert fake_api.mutations() == []

    @pytest.mark.asyncio
    async def test_session_expiry_propagates(self, fake_api):
        match = match_for(fake_api, "p1", [song(1)])
        fake_api.fail_add["p1"] = {1: SessionExpiredError("API request failed with status 401: expired")}

        with pytest.raises(SessionExpiredError):
            await Reconciler(fake_api).reconcile(match)

    def test_rejects_non_positive_batch_size(self, fake_api):
        with pytest.raises(ValueError):
            Reconciler(fake_api, batch_size=0)

    def test_songs_to_add_preserves_order(self):
        songs = [song(3), song(1), song(2)]

        assert Reconciler.songs_to_add(songs, {"spotify:track:1"}) == [song(3), song(2)]
