"""Test sync report assembly"""

from artist_sync.sync.report import NO_MATCHES_MESSAGE, PlaylistOutcome, SyncReport


class TestSyncReport:
    """Test report shapes and serialization"""

    def test_record_merges_outcomes(self):
        report = SyncReport(artists_found=["a", "b"], playlists_matched=["A", "B"])

        report.record(PlaylistOutcome.success("A", 3))
        report.record(PlaylistOutcome.failure("B", "Error syncing B: boom"))

        assert report.songs_added == 3
        assert report.errors == ["Error syncing B: boom"]
        assert report.has_errors
        assert not report.is_informational

    def test_informational_report(self):
        report = SyncReport(artists_found=["a"], message=NO_MATCHES_MESSAGE)

        assert report.is_informational
        assert report.summary() == NO_MATCHES_MESSAGE

    def test_summary(self):
        report = SyncReport(artists_found=["a"], playlists_matched=["A", "B"], songs_added=1)

        assert report.summary() == "1 artist, 2 playlists matched, 1 song added"

    def test_to_dict_uses_report_field_names(self):
        report = SyncReport(artists_found=["x"], playlists_matched=["X"], songs_added=1)

        assert report.to_dict() == {
            'artistsFound': ["x"],
            'playlistsMatched': ["X"],
            'songsAdded': 1,
            'errors': [],
            'skippedPlaylists': [],
        }

    def test_to_dict_includes_message(self):
        assert SyncReport(message="No liked songs found.").to_dict()['message'] == "No liked songs found."

    def test_outcome_tags(self):
        assert PlaylistOutcome.success("A", 0).succeeded
        assert not PlaylistOutcome.failure("A", "Error syncing A: boom").succeeded
