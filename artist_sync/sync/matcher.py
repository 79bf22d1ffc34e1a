"""
Playlist matching against the artist index

A playlist is eligible for sync (a Match) when the current user owns it and its
name, normalized the same way as artist names, is a key of the artist index.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..spotify.models import Playlist, Song
from ..utils.helpers import normalize_name
from ..utils.logger import get_logger
from .artist_index import ArtistIndex

logger = get_logger(__name__)


@dataclass
class Match:
    """
    A playlist proven eligible for sync

    Attributes:
        playlist: The user-owned playlist
        artist_key: Normalized name shared by the playlist and an artist
        songs: The artist's entry of the artist index
    """
    playlist: Playlist
    artist_key: str
    songs: List[Song]

    @property
    def playlist_name(self) -> str:
        """Playlist name with its original casing, as reported to the user"""
        return self.playlist.name


def match_playlists(
    playlists: Iterable[Optional[Playlist]],
    artist_index: ArtistIndex,
    user_id: str
) -> List[Match]:
    """
    Select the user's playlists named after an artist of the liked songs

    Playlists owned by someone else are excluded even on an exact name match,
    since they must never be modified. Matching is exact after normalization:
    "The Beatles", "the beatles " and "THE BEATLES" all match "the beatles",
    "Beatles" does not.

    Args:
        playlists: Complete playlist collection, in library order
        artist_index: Index built from the complete liked songs
        user_id: Spotify id of the current user

    Returns:
        Matches in playlist order
    """
    matches: List[Match] = []

    for playlist in playlists:
        if playlist is None:
            continue

        if not playlist.is_owned_by(user_id):
            logger.info(
                f'Skipping playlist "{playlist.name}" - not owned by you (owner: {playlist.owner_id})'
            )
            continue

        artist_key = normalize_name(playlist.name)
        songs = artist_index.get(artist_key) if artist_key else None
        if songs is None:
            continue

        logger.debug(f'Playlist "{playlist.name}" matches artist "{artist_key}" ({len(songs)} liked songs)')
        matches.append(Match(playlist=playlist, artist_key=artist_key, songs=songs))

    return matches
