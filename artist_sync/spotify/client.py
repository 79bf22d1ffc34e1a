"""
Asynchronous Spotify Web API client for the artist sync

This module provides the authenticated request layer the synchronization engine is
built on. Every Web API call of a sync run goes through one `aiohttp.ClientSession`
owned by a `SpotifyClient`, so a run is a single task whose only suspension points
are network round-trips.

Architecture Overview:

1. **Request Layer**: one method, `_request`, performs every HTTP call
   - Attaches the bearer credential and JSON headers
   - Maps non-2xx responses to `SpotifyAPIError` with the server's message
   - Maps HTTP 401 to `SessionExpiredError` so callers can trigger re-login
   - Maps network failures and timeouts to `SpotifyAPIError` with no status

2. **Paged Fetch**: `fetch_page` returns one `PageResult` with an opaque `next` URL.
   Following the pointers is the aggregator's job (see `sync.aggregator`).

3. **Mutation**: `add_tracks_to_playlist` appends at most 100 URIs per request,
   the Web API's per-request limit.

Error Handling Strategy:

The client never retries. Rate limiting (429), server errors and network errors
surface as `SpotifyAPIError`; deciding whether that aborts a whole sync or a single
playlist belongs to the caller.

Usage Examples:

    async with SpotifyClient(access_token) as client:
        user = await client.get_current_user()
        page = await client.fetch_page(client.liked_tracks_url(), {'limit': '50'})
        await client.add_tracks_to_playlist(playlist_id, [song.uri for song in songs])
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from ..config.settings import Settings, get_settings
from ..exceptions import SessionExpiredError, SpotifyAPIError
from ..utils.logger import get_logger
from .models import PageResult, SpotifyUser

# Web API limit for "Add Items to Playlist"
MAX_TRACKS_PER_REQUEST = 100


class SpotifyClient:
    """
    Authenticated async Web API client bound to one access token

    The client is an async context manager. Entering it opens the HTTP session
    (unless one was injected), leaving it closes the session it owns.

    Attributes:
        access_token: Bearer token for every request
        settings: Application settings (API base URL, timeouts, user agent)
        api_base_url: Base URL without trailing slash
    """

    def __init__(
        self,
        access_token: str,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the client

        Args:
            access_token: Valid OAuth access token
            settings: Settings to use, defaults to the global settings
            session: Existing aiohttp session to reuse; the caller keeps ownership
        """
        self.access_token = access_token
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.api_base_url = self.settings.spotify.api_base_url.rstrip('/')

        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> 'SpotifyClient':
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.network.request_timeout),
                headers={'User-Agent': self.settings.network.user_agent}
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("SpotifyClient must be entered with 'async with' before making requests")
        return self._session

    # URL builders

    def liked_tracks_url(self) -> str:
        return f"{self.api_base_url}/me/tracks"

    def playlists_url(self) -> str:
        return f"{self.api_base_url}/me/playlists"

    def playlist_tracks_url(self, playlist_id: str) -> str:
        return f"{self.api_base_url}/playlists/{playlist_id}/tracks"

    # Request layer

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {self.access_token}",
            'Accept': 'application/json'
        }

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Perform one authenticated request and decode its JSON body

        Args:
            method: HTTP method
            url: Absolute URL (a next-page pointer is passed through unchanged)
            params: Query parameters for the request
            json_body: JSON payload for mutations

        Returns:
            Decoded response body ({} for empty bodies)

        Raises:
            SessionExpiredError: On HTTP 401
            SpotifyAPIError: On any other non-2xx status, network error or timeout
        """
        self.logger.debug(f"{method} {url} params={params}")

        try:
            async with self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers()
            ) as response:
                if not 200 <= response.status < 300:
                    server_message = await self._error_message(response)
                    details = {'url': url, 'server_message': server_message}
                    message = f"API request failed with status {response.status}: {server_message}"

                    if response.status == 401:
                        raise SessionExpiredError(message, details=details)
                    raise SpotifyAPIError(message, status=response.status, details=details)

                data = await response.json(content_type=None)
                return data or {}

        except asyncio.TimeoutError as e:
            raise SpotifyAPIError(
                f"Request timed out after {self.settings.network.request_timeout}s",
                details={'url': url, 'original_error': repr(e)}
            ) from e
        except aiohttp.ClientError as e:
            raise SpotifyAPIError(
                f"Network error: {e}",
                details={'url': url, 'original_error': repr(e)}
            ) from e

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str:
        """
        Extract the human-readable message of an error response

        Web API errors look like ``{"error": {"status": 404, "message": "..."}}``;
        the accounts service uses ``{"error": "...", "error_description": "..."}``.
        Falls back to the HTTP reason phrase.
        """
        try:
            data = await response.json(content_type=None)
        except ValueError:
            data = None

        if isinstance(data, dict):
            error = data.get('error')
            if isinstance(error, dict) and error.get('message'):
                return str(error['message'])
            if data.get('error_description'):
                return str(data['error_description'])
            if isinstance(error, str) and error:
                return error

        return response.reason or 'Unknown error'

    # Public operations

    async def fetch_page(self, url: str, params: Optional[Dict[str, str]] = None) -> PageResult:
        """
        Fetch a single page of a paginated collection

        Args:
            url: Collection URL or a next-page pointer from a previous page
            params: Query parameters (only meaningful on the first request)

        Returns:
            PageResult with items and the opaque next pointer
        """
        data = await self._request('GET', url, params=params)
        return PageResult.from_spotify_data(data)

    async def get_current_user(self) -> SpotifyUser:
        """Fetch the profile of the user the token belongs to"""
        data = await self._request('GET', f"{self.api_base_url}/me")
        return SpotifyUser.from_spotify_data(data)

    async def get_liked_songs_count(self) -> int:
        """Number of saved tracks, read from the paging total of a one-item page"""
        page = await self.fetch_page(self.liked_tracks_url(), {'limit': '1'})
        return page.total or 0

    async def add_tracks_to_playlist(self, playlist_id: str, uris: List[str]) -> Optional[str]:
        """
        Append tracks to the end of a playlist

        Args:
            playlist_id: Target playlist
            uris: Track URIs in the order they should be appended (1 to 100)

        Returns:
            New playlist snapshot id, when the server returns one

        Raises:
            ValueError: If the batch is empty or above the per-request limit
            SessionExpiredError: On HTTP 401
            SpotifyAPIError: On any other failure, message prefixed with "Failed to add tracks"
        """
        if not uris:
            raise ValueError("At least one track URI is required")
        if len(uris) > MAX_TRACKS_PER_REQUEST:
            raise ValueError(
                f"Cannot add {len(uris)} tracks in one request (limit {MAX_TRACKS_PER_REQUEST})"
            )

        try:
            data = await self._request(
                'POST',
                self.playlist_tracks_url(playlist_id),
                json_body={'uris': list(uris)}
            )
        except SessionExpiredError:
            raise
        except SpotifyAPIError as e:
            reason = e.details.get('server_message') or e.message
            raise SpotifyAPIError(
                f"Failed to add tracks: {reason}",
                status=e.status,
                details={**e.details, 'playlist_id': playlist_id, 'batch_size': len(uris)}
            ) from e

        self.logger.debug(f"Appended {len(uris)} tracks to playlist {playlist_id}")
        return data.get('snapshot_id')
