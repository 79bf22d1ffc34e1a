"""
Result types of a sync run

- PlaylistOutcome: tagged per-playlist result (success with a count, or failure
  with a message), produced by the reconciler
- SyncReport: the summary handed back to the caller, assembled from outcomes
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..utils.helpers import pluralize

NO_LIKED_SONGS_MESSAGE = "No liked songs found."
NO_MATCHES_MESSAGE = (
    "No playlists match artist names from your liked songs. "
    "Make sure the playlists are owned by you."
)


@dataclass
class PlaylistOutcome:
    """
    Result of reconciling one matched playlist

    Attributes:
        playlist_name: Original-case playlist name
        added: Songs appended by successful batches
        error: Failure description, None on success
    """
    playlist_name: str
    added: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, playlist_name: str, added: int) -> 'PlaylistOutcome':
        return cls(playlist_name=playlist_name, added=added)

    @classmethod
    def failure(cls, playlist_name: str, message: str) -> 'PlaylistOutcome':
        return cls(playlist_name=playlist_name, error=message)


@dataclass
class SyncReport:
    """
    Summary of one sync run

    Three shapes are possible and callers must tell them apart:

    - informational: ``message`` is set (no liked songs, or no playlist matched);
      nothing was modified
    - completed: ``message`` is None; ``songs_added`` may be 0 when every
      matched playlist was already up to date
    - completed with partial failures: ``errors`` lists one entry per playlist
      that could not be fully synced

    Attributes:
        artists_found: Every artist key of the artist index
        playlists_matched: Original-case names of the matched playlists
        songs_added: Songs appended across all playlists
        errors: Per-playlist failure messages, in match order
        skipped_playlists: Reserved for future use, always empty
        message: Informational early-exit message
    """
    artists_found: List[str] = field(default_factory=list)
    playlists_matched: List[str] = field(default_factory=list)
    songs_added: int = 0
    errors: List[str] = field(default_factory=list)
    skipped_playlists: List[str] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def is_informational(self) -> bool:
        return self.message is not None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def record(self, outcome: PlaylistOutcome) -> None:
        """
        Merge one playlist outcome into the report

        Only the synchronizer calls this, after reconciliation tasks have
        finished, so the counters have a single writer.
        """
        self.songs_added += outcome.added
        if outcome.error:
            self.errors.append(outcome.error)

    def summary(self) -> str:
        """One-line description for logs and the console"""
        if self.message:
            return self.message

        parts = [
            pluralize(len(self.artists_found), "artist"),
            f"{pluralize(len(self.playlists_matched), 'playlist')} matched",
            f"{pluralize(self.songs_added, 'song')} added",
        ]
        if self.errors:
            parts.append(pluralize(len(self.errors), "error"))
        return ", ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation"""
        data: Dict[str, Any] = {
            'artistsFound': list(self.artists_found),
            'playlistsMatched': list(self.playlists_matched),
            'songsAdded': self.songs_added,
            'errors': list(self.errors),
            'skippedPlaylists': list(self.skipped_playlists),
        }
        if self.message is not None:
            data['message'] = self.message
        return data
