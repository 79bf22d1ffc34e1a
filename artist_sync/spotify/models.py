"""
Data models for Spotify library data used by the artist sync

This module defines the data structures that flow between the Web API client and the
synchronization engine. It is deliberately small: the sync only needs enough of each
Spotify object to join liked songs to playlists by artist name and to append tracks.

Architecture Overview:

1. **Transport Layer**: what one authenticated request returns
   - PageResult: a single page of a paginated collection with its opaque next pointer

2. **Core Spotify Models Layer**: read-only views of Web API entities
   - Song: a liked track reduced to uri, title and credited artist names
   - Playlist: a playlist reduced to identity, owner and its tracks endpoint
   - SpotifyUser: the authenticated user's profile

Design Patterns Implemented:

- **Data Transfer Object (DTO)**: All models serve as DTOs for API response data
- **Factory Method**: `from_spotify_data()` methods for safe construction from external data

Thread Safety Considerations:

Song and Playlist are frozen dataclasses. Once fetched they are never modified, so
they can be shared freely between concurrently reconciled playlists.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class PageResult:
    """
    One page of a paginated Web API collection

    Spotify paging objects carry the page items plus an absolute URL for the
    following page. The URL is treated as opaque: the aggregator requests it
    verbatim and never rebuilds offsets itself.

    Attributes:
        items: Items of this page, in server order (may contain nulls)
        next: URL of the following page, None (or empty) on the last page
        total: Size of the whole collection when the server reports it
    """
    items: List[Any] = field(default_factory=list)
    next: Optional[str] = None
    total: Optional[int] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'PageResult':
        """
        Build a page from a raw paging object

        Args:
            data: Decoded JSON body of a paginated endpoint

        Returns:
            PageResult with missing keys defaulted (no items, no next page)
        """
        return cls(
            items=list(data.get('items') or []),
            next=data.get('next') or None,
            total=data.get('total')
        )

    @property
    def has_next(self) -> bool:
        """True while the server reports another page"""
        return bool(self.next)


@dataclass(frozen=True)
class Song:
    """
    A liked track as the sync engine sees it

    Attributes:
        uri: Spotify track URI, the identity used for set differences
        name: Track title
        artist_names: Display names of every credited artist, in credit order
    """
    uri: str
    name: str
    artist_names: Tuple[str, ...] = ()

    @classmethod
    def from_spotify_data(cls, track_data: Dict[str, Any]) -> 'Song':
        """
        Factory method to construct a Song from a track object

        Args:
            track_data: Track object (the ``track`` key of a saved-track item)

        Returns:
            Song with artist names in the order Spotify credits them
        """
        artist_names = tuple(
            artist.get('name') or ''
            for artist in track_data.get('artists') or []
            if artist
        )
        return cls(
            uri=track_data.get('uri') or '',
            name=track_data.get('name') or '',
            artist_names=artist_names
        )

    @property
    def artists_display(self) -> str:
        """All credited artists joined for display, e.g. "Artist A, Artist B" """
        return ', '.join(self.artist_names)

    def __str__(self) -> str:
        return f"{self.name} - {self.artists_display}"


@dataclass(frozen=True)
class Playlist:
    """
    A playlist from the user's library

    Sourced entirely from the Web API. The only mutation this application
    performs is appending tracks through ``tracks_endpoint``.

    Attributes:
        id: Spotify playlist identifier
        name: Playlist name exactly as the owner typed it
        owner_id: Spotify user id of the owner
        track_count: Number of tracks reported when the playlist list was fetched
        tracks_endpoint: Absolute URL of the playlist's tracks collection
    """
    id: str
    name: str
    owner_id: str
    track_count: int = 0
    tracks_endpoint: str = ''

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any], api_base_url: str = 'https://api.spotify.com/v1') -> 'Playlist':
        """
        Factory method for constructing a Playlist from a simplified playlist object

        Args:
            data: Playlist object from ``/me/playlists``
            api_base_url: Used to build the tracks endpoint when ``tracks.href`` is missing

        Returns:
            Playlist instance
        """
        owner = data.get('owner') or {}
        tracks = data.get('tracks') or {}
        playlist_id = data['id']

        return cls(
            id=playlist_id,
            name=data.get('name') or '',
            owner_id=owner.get('id') or '',
            track_count=tracks.get('total') or 0,
            tracks_endpoint=tracks.get('href') or f"{api_base_url.rstrip('/')}/playlists/{playlist_id}/tracks"
        )

    def is_owned_by(self, user_id: str) -> bool:
        """Check ownership, the precondition for ever modifying this playlist"""
        return bool(user_id) and self.owner_id == user_id


@dataclass
class SpotifyUser:
    """
    Profile of the authenticated user

    Attributes:
        id: Spotify user id, compared against playlist owners
        display_name: Name shown in the Spotify apps (falls back to the id)
    """
    id: str
    display_name: str

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyUser':
        """Build the profile from a ``/me`` response"""
        return cls(
            id=data['id'],
            display_name=data.get('display_name') or data['id']
        )
