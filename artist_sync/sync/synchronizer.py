"""
Artist Playlist Synchronization Engine

This module orchestrates one sync run: it appends the user's liked songs to the
user's own playlists named after the songs' artists.

Architecture Overview:
    A run is a straight pipeline over the authenticated Web API client:

    - **Liked songs**: complete saved-track collection (`collect_all`)
    - **Artist index**: normalized artist name -> liked songs (`build_artist_index`)
    - **Playlists**: complete playlist collection of the user
    - **Matching**: user-owned playlists whose normalized name is an artist key
    - **Reconciliation**: per matched playlist, append the missing songs
    - **Report**: `SyncReport` assembled from the per-playlist outcomes

Key Behaviours:
    - Early exit with an informational report when there are no liked songs
      (the playlist collection is never requested) or when no playlist matches
      (no mutation is ever issued)
    - Matched playlists are reconciled sequentially by default; with
      ``sync.max_concurrent_playlists > 1`` they run concurrently under a
      semaphore and outcomes are merged in match order once all complete
    - A failure while reconciling one playlist is recorded in the report and the
      run continues; failures of the liked-songs or playlist aggregation and an
      expired session abort the run with an exception
    - When one concurrent reconciliation raises, the others are cancelled before
      the exception reaches the caller
    - Sync settings outside the Web API limits raise ConfigError before any request
    - No state is kept between runs: a second run over unchanged data adds nothing

Usage:
    report = await sync(access_token, user_id)
"""

import asyncio
from typing import Any, Dict, List, Optional

from ..config.settings import Settings, get_settings
from ..exceptions import ConfigError
from ..spotify.client import SpotifyClient
from ..spotify.models import Playlist
from ..utils.logger import OperationLogger, create_operation_logger, get_logger
from ..utils.helpers import pluralize
from .aggregator import collect_all
from .artist_index import build_artist_index
from .matcher import Match, match_playlists
from .reconciler import Reconciler
from .report import NO_LIKED_SONGS_MESSAGE, NO_MATCHES_MESSAGE, PlaylistOutcome, SyncReport


class ArtistPlaylistSynchronizer:
    """
    Main orchestrator of an artist sync run

    The client is anything exposing the `SpotifyClient` operations used here
    (``fetch_page``, ``add_tracks_to_playlist`` and the URL builders), which lets
    tests drive the engine with an in-memory API.

    Attributes:
        client: Authenticated Web API client
        settings: Page sizes, batch size and concurrency
        reconciler: Per-playlist reconciliation component
    """

    def __init__(self, client, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        problems = self.settings.sync_problems()
        if problems:
            raise ConfigError(
                f"Invalid sync configuration: {'; '.join(problems)}",
                details={'problems': problems}
            )

        sync_config = self.settings.sync
        self.reconciler = Reconciler(
            client,
            batch_size=sync_config.batch_size,
            tracks_page_size=sync_config.playlist_tracks_page_size
        )

    async def fetch_liked_items(self) -> List[Dict[str, Any]]:
        """Complete saved-track collection, in library order"""
        return await collect_all(
            self.client.fetch_page,
            self.client.liked_tracks_url(),
            {'limit': str(self.settings.sync.liked_page_size)}
        )

    async def fetch_playlists(self) -> List[Playlist]:
        """Complete playlist collection of the user, null entries dropped"""
        items = await collect_all(
            self.client.fetch_page,
            self.client.playlists_url(),
            {'limit': str(self.settings.sync.playlist_page_size)}
        )
        api_base_url = self.settings.spotify.api_base_url
        return [Playlist.from_spotify_data(item, api_base_url) for item in items if item]

    async def reconcile_all(self, matches: List[Match], operation: OperationLogger) -> List[PlaylistOutcome]:
        """
        Reconcile every match and return the outcomes in match order

        Args:
            matches: Matched playlists
            operation: Progress tracker of the run

        Returns:
            One outcome per match, same order as ``matches``

        Raises:
            SessionExpiredError: Raised by any reconciliation; the remaining
                concurrent reconciliations are cancelled before it propagates
        """
        total = len(matches)
        max_concurrent = max(1, self.settings.sync.max_concurrent_playlists)

        if max_concurrent == 1 or total == 1:
            outcomes = []
            for number, match in enumerate(matches, 1):
                outcomes.append(await self.reconciler.reconcile(match))
                operation.progress(f"Synced {match.playlist_name}", number, total)
            return outcomes

        self.logger.debug(f"Reconciling {total} playlists with concurrency {max_concurrent}")
        semaphore = asyncio.Semaphore(max_concurrent)
        completed = 0

        async def reconcile_one(match: Match) -> PlaylistOutcome:
            nonlocal completed
            async with semaphore:
                outcome = await self.reconciler.reconcile(match)
            completed += 1
            operation.progress(f"Synced {match.playlist_name}", completed, total)
            return outcome

        tasks = [asyncio.create_task(reconcile_one(match)) for match in matches]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # No new mutation may start once the run has failed
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def run(self, user_id: str) -> SyncReport:
        """
        Execute one sync run for the given user

        Args:
            user_id: Spotify id of the token's user; only playlists it owns are modified

        Returns:
            Informational report on early exit, otherwise the completed report

        Raises:
            SessionExpiredError: The token expired at any point of the run
            SpotifyAPIError: Liked songs or playlists could not be fetched completely
        """
        operation = create_operation_logger(__name__, "Artist sync")
        operation.start("Fetching liked songs...")

        liked_items = await self.fetch_liked_items()
        if not liked_items:
            operation.complete(NO_LIKED_SONGS_MESSAGE)
            return SyncReport(message=NO_LIKED_SONGS_MESSAGE)

        artist_index = build_artist_index(liked_items)
        artists_found = list(artist_index.keys())
        self.logger.console_info(
            f"Found {pluralize(len(liked_items), 'liked song')} by {pluralize(len(artists_found), 'artist')}"
        )

        playlists = await self.fetch_playlists()
        self.logger.debug(f"Fetched {pluralize(len(playlists), 'playlist')}")

        matches = match_playlists(playlists, artist_index, user_id)
        if not matches:
            operation.complete(NO_MATCHES_MESSAGE)
            return SyncReport(artists_found=artists_found, message=NO_MATCHES_MESSAGE)

        self.logger.console_info(f"Matched {pluralize(len(matches), 'playlist')}")

        report = SyncReport(
            artists_found=artists_found,
            playlists_matched=[match.playlist_name for match in matches]
        )

        try:
            outcomes = await self.reconcile_all(matches, operation)
        except Exception as e:
            operation.error(str(e), e)
            raise

        for outcome in outcomes:
            report.record(outcome)

        operation.complete(f"Sync complete: {report.summary()}")
        return report


async def sync(access_token: str, user_id: str, settings: Optional[Settings] = None) -> SyncReport:
    """
    Run one artist sync with a fresh client

    Args:
        access_token: Valid OAuth access token
        user_id: Spotify id of the token's user
        settings: Settings to use, defaults to the global settings

    Returns:
        SyncReport of the run
    """
    settings = settings or get_settings()

    async with SpotifyClient(access_token, settings=settings) as client:
        synchronizer = ArtistPlaylistSynchronizer(client, settings)
        return await synchronizer.run(user_id)
