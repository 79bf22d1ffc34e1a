"""
Synchronization engine for artist-sync

The run is a pipeline of small components, each usable on its own:

- aggregator: follows next-page pointers into complete collections
- artist_index: normalized artist name -> liked songs
- matcher: user-owned playlists whose normalized name is an artist key
- reconciler: appends the missing songs to one matched playlist
- report: per-playlist outcomes and the run summary
- synchronizer: orchestration, early exits and optional playlist concurrency
"""

from .aggregator import iter_pages, collect_all
from .artist_index import build_artist_index, ArtistIndex
from .matcher import match_playlists, Match
from .reconciler import Reconciler
from .report import SyncReport, PlaylistOutcome, NO_LIKED_SONGS_MESSAGE, NO_MATCHES_MESSAGE
from .synchronizer import ArtistPlaylistSynchronizer, sync

__all__ = [
    # Collection aggregation
    'iter_pages',
    'collect_all',

    # Matching
    'build_artist_index',
    'ArtistIndex',
    'match_playlists',
    'Match',

    # Reconciliation and reporting
    'Reconciler',
    'PlaylistOutcome',
    'SyncReport',
    'NO_LIKED_SONGS_MESSAGE',
    'NO_MATCHES_MESSAGE',

    # Orchestration
    'ArtistPlaylistSynchronizer',
    'sync',
]
