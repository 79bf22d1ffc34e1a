"""Test configuration and fixtures"""

import asyncio
import urllib.parse
from typing import Any, Dict, List, Optional

import pytest

from artist_sync.config.settings import Settings
from artist_sync.spotify.models import PageResult

API_BASE = "https://api.test/v1"
USER_ID = "me"


def make_track(name: str, *artists: str, uri: Optional[str] = None) -> Dict[str, Any]:
    """Track object as found under the ``track`` key of a saved-track item"""
    return {
        'uri': uri or f"spotify:track:{name.lower().replace(' ', '-')}",
        'name': name,
        'artists': [{'name': artist} for artist in artists],
    }


def make_playlist(playlist_id: str, name: str, owner: str = USER_ID, total: int = 0) -> Dict[str, Any]:
    """Simplified playlist object as returned by /me/playlists"""
    return {
        'id': playlist_id,
        'name': name,
        'owner': {'id': owner},
        'tracks': {'href': f"{API_BASE}/playlists/{playlist_id}/tracks", 'total': total},
    }


class FakeSpotifyAPI:
    """
    In-memory stand-in for SpotifyClient

    Collections are paginated by offset with absolute next URLs, like the
    real Web API. Every request is recorded in ``requests`` as
    ``(method, url, params_or_uris)``.

    Failure injection:
        fail_fetch: path -> exception raised when any page of that path is requested
        fail_add: playlist id -> {call number (1-based): exception}
        add_delays: playlist id -> seconds each add waits before it is applied
    """

    def __init__(self, page_size: int = 2):
        self.default_page_size = page_size
        self.liked: List[Optional[Dict[str, Any]]] = []
        self.playlists: List[Optional[Dict[str, Any]]] = []
        self.playlist_uris: Dict[str, List[Optional[str]]] = {}
        self.requests: List[tuple] = []
        self.fail_fetch: Dict[str, Exception] = {}
        self.fail_add: Dict[str, Dict[int, Exception]] = {}
        self.add_calls: Dict[str, int] = {}
        self.add_delays: Dict[str, float] = {}

    # Library setup

    def like(self, track: Optional[Dict[str, Any]]) -> None:
        self.liked.append(track)

    def add_playlist(self, playlist_id: str, name: str, owner: str = USER_ID,
                     uris: Optional[List[Optional[str]]] = None) -> None:
        uris = list(uris or [])
        self.playlists.append(make_playlist(playlist_id, name, owner, len(uris)))
        self.playlist_uris[playlist_id] = uris

    # SpotifyClient interface

    def liked_tracks_url(self) -> str:
        return f"{API_BASE}/me/tracks"

    def playlists_url(self) -> str:
        return f"{API_BASE}/me/playlists"

    def playlist_tracks_url(self, playlist_id: str) -> str:
        return f"{API_BASE}/playlists/{playlist_id}/tracks"

    def _collection(self, path: str) -> List[Any]:
        if path.endswith('/me/tracks'):
            return [{'track': track} for track in self.liked]
        if path.endswith('/me/playlists'):
            return list(self.playlists)

        playlist_id = path.rstrip('/').split('/')[-2]
        return [
            {'track': {'uri': uri} if uri else None}
            for uri in self.playlist_uris[playlist_id]
        ]

    async def fetch_page(self, url: str, params: Optional[Dict[str, str]] = None) -> PageResult:
        self.requests.append(('GET', url, params))

        parsed = urllib.parse.urlparse(url)
        query = urllib.parse.parse_qs(parsed.query)

        if parsed.path in self.fail_fetch:
            raise self.fail_fetch[parsed.path]

        limit = int((params or {}).get('limit') or query.get('limit', [self.default_page_size])[0])
        limit = min(limit, self.default_page_size)
        offset = int(query.get('offset', ['0'])[0])

        items = self._collection(parsed.path)
        page_items = items[offset:offset + limit]

        next_url = None
        if offset + limit < len(items):
            next_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}?offset={offset + limit}&limit={limit}"

        return PageResult(items=page_items, next=next_url, total=len(items))

    async def add_tracks_to_playlist(self, playlist_id: str, uris: List[str]) -> str:
        delay = self.add_delays.get(playlist_id)
        if delay:
            await asyncio.sleep(delay)

        self.requests.append(('POST', self.playlist_tracks_url(playlist_id), list(uris)))

        call_number = self.add_calls.get(playlist_id, 0) + 1
        self.add_calls[playlist_id] = call_number

        failure = self.fail_add.get(playlist_id, {}).get(call_number)
        if failure is not None:
            raise failure

        self.playlist_uris[playlist_id].extend(uris)
        return f"snapshot-{call_number}"

    # Inspection helpers

    def mutations(self) -> List[tuple]:
        return [request for request in self.requests if request[0] == 'POST']

    def fetched_paths(self) -> List[str]:
        return [urllib.parse.urlparse(request[1]).path for request in self.requests if request[0] == 'GET']


@pytest.fixture
def fake_api():
    """Empty in-memory Web API with a page size of 2"""
    return FakeSpotifyAPI()


@pytest.fixture
def settings(tmp_path):
    """Default settings with storage redirected into a temporary directory"""
    settings = Settings(load_files=False)
    settings.spotify.client_id = "test-client-id"
    settings.spotify.redirect_url = "http://127.0.0.1:8080/callback"
    settings.spotify.api_base_url = API_BASE
    settings.security.config_directory = str(tmp_path)
    settings.security.token_storage_path = str(tmp_path / "tokens.json")
    return settings
