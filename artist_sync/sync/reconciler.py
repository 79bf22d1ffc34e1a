"""
Reconciliation of one matched playlist with the artist's liked songs

For every Match the reconciler:

1. collects the URIs currently in the playlist (all pages, trimmed server-side
   to ``items(track(uri)),next``)
2. computes the liked songs of the artist that are missing from the playlist
3. appends them in sequential batches of at most ``batch_size`` URIs

Additions are monotonic: existing playlist contents are never removed or
reordered, and there is no rollback when a later batch fails. A failed
playlist counts no added songs, even when earlier batches went through.

Failures are isolated per playlist and returned as a failed PlaylistOutcome,
except for an expired session, which always propagates to the caller.
"""

from typing import List, Set

from ..exceptions import SessionExpiredError, SpotifyAPIError
from ..spotify.models import Song
from ..utils.helpers import chunked, unique_by
from ..utils.logger import get_logger
from .aggregator import collect_all
from .matcher import Match
from .report import PlaylistOutcome

# Server-side projection for playlist contents; "next" must stay in the
# projection or the paging pointer is stripped from the response
PLAYLIST_URI_FIELDS = 'items(track(uri)),next'


class Reconciler:
    """
    Appends missing liked songs to matched playlists

    Attributes:
        client: Object providing ``fetch_page(url, params)`` and
                ``add_tracks_to_playlist(playlist_id, uris)`` coroutines
        batch_size: Maximum URIs per append request
        tracks_page_size: Page size for the first playlist-tracks request
    """

    def __init__(self, client, batch_size: int = 100, tracks_page_size: int = 100):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.client = client
        self.batch_size = batch_size
        self.tracks_page_size = tracks_page_size
        self.logger = get_logger(__name__)

    async def existing_uris(self, match: Match) -> Set[str]:
        """
        Collect the URIs currently in the matched playlist

        Items whose track is null (removed or unavailable) are ignored.
        """
        items = await collect_all(
            self.client.fetch_page,
            match.playlist.tracks_endpoint,
            {'limit': str(self.tracks_page_size), 'fields': PLAYLIST_URI_FIELDS}
        )

        uris = set()
        for item in items:
            track = (item or {}).get('track')
            if track and track.get('uri'):
                uris.add(track['uri'])
        return uris

    @staticmethod
    def songs_to_add(songs: List[Song], existing: Set[str]) -> List[Song]:
        """
        Liked songs missing from the playlist, each URI at most once

        Order follows the artist index, i.e. the liked-songs order.
        """
        missing = [song for song in songs if song.uri and song.uri not in existing]
        return unique_by(missing, lambda song: song.uri)

    async def reconcile(self, match: Match) -> PlaylistOutcome:
        """
        Bring one playlist up to date with the artist's liked songs

        Args:
            match: Matched playlist with the artist's songs

        Returns:
            Successful outcome with the number of songs appended (possibly 0),
            or a failed outcome naming the playlist and the underlying error

        Raises:
            SessionExpiredError: The token expired; never isolated per playlist
        """
        name = match.playlist_name
        self.logger.info(f"Processing playlist: {name}")

        added = 0
        try:
            existing = await self.existing_uris(match)
            pending = self.songs_to_add(match.songs, existing)

            if not pending:
                self.logger.info(f"No new songs to add to {name}")
                return PlaylistOutcome.success(name, 0)

            batches = list(chunked(pending, self.batch_size))
            for number, batch in enumerate(batches, 1):
                await self.client.add_tracks_to_playlist(match.playlist.id, [song.uri for song in batch])
                added += len(batch)
                self.logger.info(f"Added {len(batch)} songs to {name} (batch {number}/{len(batches)})")

        except SessionExpiredError:
            raise
        except SpotifyAPIError as e:
            self.logger.error(f"Error syncing {name}: {e.message}")
            if added:
                self.logger.warning(f"{added} songs were added to {name} before the failure and are not counted")
            return PlaylistOutcome.failure(name, f"Error syncing {name}: {e.message}")

        return PlaylistOutcome.success(name, added)
