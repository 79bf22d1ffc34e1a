"""
artist-sync: keep artist playlists in step with Spotify Liked Songs

For every playlist owned by the user whose name matches an artist of the
user's Liked Songs, the liked songs by that artist that the playlist does not
yet contain are appended to it.

## Package layout

**Configuration (`artist_sync/config/`)**
- YAML + environment settings (`settings.py`)
- OAuth2 PKCE login and token storage (`auth.py`)

**Spotify integration (`artist_sync/spotify/`)**
- Async Web API client on aiohttp (`client.py`)
- Data models for pages, songs, playlists and the user (`models.py`)

**Synchronization (`artist_sync/sync/`)**
- Pagination aggregator, artist index, playlist matcher, reconciler
- Sync report and the orchestrating synchronizer

**Utilities (`artist_sync/utils/`)**
- Logging with colored console output and rotating log files
- Name normalization, batching and PKCE helpers

The command line entry point lives in `artist_sync/main.py` and is installed
as the `artist-sync` console script.
"""

__version__ = "1.0.0"

__description__ = "Append Spotify liked songs to the user's playlists named after their artists"

__all__ = [
    "__version__",
    "__description__",
]
