"""
Spotify Web API integration for artist-sync

- SpotifyClient: async, token-bound client (paged fetch, profile, playlist append)
- PageResult, Song, Playlist, SpotifyUser: immutable views of API payloads
"""

from .client import SpotifyClient, MAX_TRACKS_PER_REQUEST
from .models import PageResult, Song, Playlist, SpotifyUser

__all__ = [
    'SpotifyClient',
    'MAX_TRACKS_PER_REQUEST',
    'PageResult',
    'Song',
    'Playlist',
    'SpotifyUser',
]
