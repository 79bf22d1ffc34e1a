"""
OAuth2 PKCE authentication and token management for the Spotify Web API

This module implements the Authorization Code flow with Proof Key for Code
Exchange, the flow Spotify recommends for applications that cannot keep a client
secret. It handles authorization, token storage, token refresh and gives the rest
of the application a valid access token.

Key features:
- PKCE authorization (code verifier + S256 challenge, no client secret)
- Local HTTP callback server for loopback redirect URIs, manual code entry otherwise
- Token refresh with the stored refresh token
- Token storage with restrictive file permissions (600)
- Expiry check with a safety buffer

The authentication flow:
1. Generate a code verifier and derive its S256 challenge
2. Open the browser on the authorization URL (challenge + random state)
3. Receive the authorization code through the redirect
4. Exchange code + verifier for access/refresh tokens
5. Store the tokens for later runs and refresh them when they expire
"""

import json
import secrets
import threading
import time
import urllib.parse
import webbrowser
from datetime import datetime
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, Optional

import requests
import spotipy

from ..exceptions import AuthenticationError, ConfigError, SessionExpiredError
from ..utils.helpers import code_challenge, generate_code_verifier
from ..utils.logger import get_logger
from .settings import Settings, get_settings

# Refresh tokens this many seconds before they actually expire
EXPIRY_BUFFER_SECONDS = 300

# Maximum wait for the browser redirect
AUTHORIZATION_TIMEOUT_SECONDS = 300

REQUIRED_TOKEN_FIELDS = ('access_token', 'refresh_token', 'expires_at', 'token_type')

SUCCESS_PAGE = """
<html>
<head><title>Authorization Success</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #1DB954;">Authorization Successful!</h1>
    <p>You can now close this window and return to the terminal.</p>
</body>
</html>
"""

ERROR_PAGE = """
<html>
<head><title>Authorization Error</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #E22134;">Authorization Failed</h1>
    <p>Error: {error}</p>
    <p>Please try again or check your Spotify App settings.</p>
</body>
</html>
"""


class CallbackHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for the OAuth2 redirect

    Stores either the authorization code or the error reported by the
    authorization server on the parent server instance, together with the
    returned state, for the main flow to pick up.
    """

    def do_GET(self):
        query_params = urllib.parse.parse_qs(urllib.parse.urlparse(self.path).query)

        if 'code' in query_params:
            self.server.authorization_state = query_params.get('state', [None])[0]
            self.server.authorization_code = query_params['code'][0]
            self._respond(200, SUCCESS_PAGE)
        elif 'error' in query_params:
            self.server.authorization_state = query_params.get('state', [None])[0]
            self.server.authorization_error = query_params['error'][0]
            self._respond(400, ERROR_PAGE.format(error=query_params['error'][0]))
        else:
            # Favicon and other stray requests
            self._respond(404, "Not found")

    def _respond(self, status: int, body: str) -> None:
        self.send_response(status)
        self.send_header('Content-type', 'text/html')
        self.end_headers()
        self.wfile.write(body.encode())

    def log_message(self, format, *args):
        """Keep request logs off the console"""
        return


class SpotifyAuth:
    """
    Spotify PKCE authentication and token management

    Attributes:
        settings: Application settings instance
        token_file: Path to the token storage file
        client_id: Spotify application client id
        redirect_uri: Redirect URI registered for the application
        scope: Space-separated OAuth scopes
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        self.token_file = self.settings.get_token_storage_path()
        self.client_id = self.settings.spotify.client_id
        self.redirect_uri = self.settings.spotify.redirect_url
        self.scope = self.settings.spotify.scope

        accounts_base_url = self.settings.spotify.accounts_base_url.rstrip('/')
        self.authorize_url = f"{accounts_base_url}/authorize"
        self.token_url = f"{accounts_base_url}/api/token"

        self._spotify_client: Optional[spotipy.Spotify] = None
        self._spotify_token: Optional[str] = None
        self._token_info: Optional[Dict[str, Any]] = None

    # Authorization

    def build_authorization_url(self, verifier: str, state: str) -> str:
        """
        Build the consent URL for one authorization attempt

        Args:
            verifier: PKCE code verifier; only its S256 challenge leaves the process
            state: Random value echoed back on the redirect

        Returns:
            Absolute authorization URL
        """
        params = {
            'client_id': self.client_id,
            'response_type': 'code',
            'redirect_uri': self.redirect_uri,
            'scope': self.scope,
            'state': state,
            'code_challenge_method': 'S256',
            'code_challenge': code_challenge(verifier),
        }
        return f"{self.authorize_url}?{urllib.parse.urlencode(params)}"

    def _uses_local_server(self) -> bool:
        host = urllib.parse.urlparse(self.redirect_uri).hostname or ''
        return host in ('127.0.0.1', 'localhost')

    def _wait_for_callback(self, authorization_url: str) -> HTTPServer:
        """Serve the redirect URI locally until the redirect arrives or times out"""
        parsed = urllib.parse.urlparse(self.redirect_uri)
        server = HTTPServer((parsed.hostname, parsed.port or 80), CallbackHandler)
        server.authorization_code = None
        server.authorization_error = None
        server.authorization_state = None

        server_thread = threading.Thread(target=server.serve_forever)
        server_thread.daemon = True
        server_thread.start()

        try:
            self.logger.console_info("Opening browser for Spotify authorization...")
            self.logger.console_info(f"If browser doesn't open, visit: {authorization_url}")
            webbrowser.open(authorization_url)

            self.logger.console_info("Waiting for authorization callback...")
            start_time = time.time()
            while server.authorization_code is None and server.authorization_error is None:
                time.sleep(0.5)
                if time.time() - start_time > AUTHORIZATION_TIMEOUT_SECONDS:
                    raise AuthenticationError("Authorization timed out")
        finally:
            server.shutdown()
            server.server_close()

        return server

    def _prompt_for_code(self, authorization_url: str) -> str:
        """Manual flow for redirect URIs this process cannot serve"""
        self.logger.console_info("Opening browser for Spotify authorization...")
        self.logger.console_info(f"If browser doesn't open, visit: {authorization_url}")
        webbrowser.open(authorization_url)

        print("\n" + "=" * 80)
        print("1. Complete authorization in the browser")
        print("2. Copy the 'code' parameter from the URL you are redirected to")
        print("3. Paste it below")
        print("=" * 80 + "\n")

        code = input("Enter the authorization code from the redirect URL: ").strip()
        if not code:
            raise AuthenticationError("No authorization code provided")
        return code

    def authorize(self) -> Dict[str, Any]:
        """
        Run the interactive PKCE flow and store the resulting token

        Returns:
            Stored token information

        Raises:
            ConfigError: If no client id is configured
            AuthenticationError: If the user denies access, the state does not
                                 match, the flow times out or the exchange fails
        """
        if not self.client_id:
            raise ConfigError(
                "Spotify client_id must be configured (config file or SPOTIFY_CLIENT_ID)"
            )

        verifier = generate_code_verifier()
        state = secrets.token_urlsafe(16)
        authorization_url = self.build_authorization_url(verifier, state)

        if self._uses_local_server():
            server = self._wait_for_callback(authorization_url)
            if server.authorization_state != state:
                raise AuthenticationError("Authorization state mismatch, please try again")
            if server.authorization_error:
                raise AuthenticationError(
                    f"Authorization failed: {server.authorization_error}",
                    details={'error': server.authorization_error}
                )
            code = server.authorization_code
        else:
            code = self._prompt_for_code(authorization_url)

        token_info = self.exchange_code(code, verifier)
        self._save_token(token_info)
        self._token_info = token_info
        self.logger.console_info("Authorization successful!")
        return token_info

    # Token endpoint

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        """
        POST a form to the token endpoint

        Raises:
            AuthenticationError: On network failure or a non-2xx answer, carrying
                                 the server's ``error_description`` when present
        """
        try:
            response = requests.post(
                self.token_url,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                data=data,
                timeout=self.settings.network.request_timeout
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"Token request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            description = payload.get('error_description') or payload.get('error') or response.reason
            raise AuthenticationError(
                f"Token request failed: {description}",
                details={'status': response.status_code, 'error_description': description}
            )

        return payload

    def _build_token_info(self, token_data: Dict[str, Any], refresh_token: Optional[str] = None) -> Dict[str, Any]:
        expires_in = token_data.get('expires_in', 3600)
        return {
            'access_token': token_data['access_token'],
            'token_type': token_data.get('token_type', 'Bearer'),
            'expires_in': expires_in,
            'expires_at': int(time.time()) + expires_in,
            # Spotify may rotate the refresh token; keep the old one otherwise
            'refresh_token': token_data.get('refresh_token') or refresh_token,
            'scope': token_data.get('scope', self.scope),
        }

    def exchange_code(self, code: str, verifier: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens

        Args:
            code: Code received on the redirect
            verifier: The verifier whose challenge started this authorization

        Returns:
            Token information with an absolute ``expires_at``
        """
        token_data = self._token_request({
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': self.redirect_uri,
            'client_id': self.client_id,
            'code_verifier': verifier,
        })
        return self._build_token_info(token_data)

    def refresh(self, token_info: Dict[str, Any]) -> Dict[str, Any]:
        """
        Obtain a fresh access token with the stored refresh token

        Args:
            token_info: Current token information

        Returns:
            Updated token information, already saved
        """
        refresh_token = token_info.get('refresh_token')
        if not refresh_token:
            raise AuthenticationError("No refresh token available, please log in again")

        token_data = self._token_request({
            'grant_type': 'refresh_token',
            'refresh_token': refresh_token,
            'client_id': self.client_id,
        })
        updated = self._build_token_info(token_data, refresh_token)
        self._save_token(updated)
        return updated

    # Token storage

    def _load_token(self) -> Optional[Dict[str, Any]]:
        """Stored token information, or None when absent or unusable"""
        if not self.token_file.exists():
            return None

        try:
            with open(self.token_file, 'r', encoding='utf-8') as f:
                token_data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Failed to load stored token: {e}")
            return None

        if not all(field in token_data for field in REQUIRED_TOKEN_FIELDS):
            self.logger.warning("Invalid token structure, re-authentication required")
            return None

        return token_data

    def _save_token(self, token_info: Dict[str, Any]) -> None:
        self.token_file.parent.mkdir(parents=True, exist_ok=True)

        token_data = {
            **token_info,
            'saved_at': datetime.now().isoformat(),
            'client_id': self.client_id,
        }
        with open(self.token_file, 'w', encoding='utf-8') as f:
            json.dump(token_data, f, indent=2)

        try:
            self.token_file.chmod(0o600)
        except NotImplementedError:
            self.logger.debug("Token file permissions not supported on this platform")

    @staticmethod
    def _is_token_expired(token_info: Dict[str, Any]) -> bool:
        """True when the token expires within the safety buffer"""
        if 'expires_at' not in token_info:
            return True
        return int(time.time()) >= token_info['expires_at'] - EXPIRY_BUFFER_SECONDS

    # Public interface

    def get_valid_token(self, interactive: bool = True) -> Optional[str]:
        """
        Access token usable right now

        Loads the stored token, refreshes it when it is about to expire and
        falls back to a new authorization when allowed.

        Args:
            interactive: Start the browser flow when no usable token exists

        Returns:
            Access token, or None when not logged in and not interactive
        """
        if not self._token_info:
            self._token_info = self._load_token()

        if self._token_info and self._is_token_expired(self._token_info):
            try:
                self._token_info = self.refresh(self._token_info)
            except AuthenticationError as e:
                self.logger.warning(f"Failed to refresh token: {e}")
                self._token_info = None

        if not self._token_info:
            if not interactive:
                return None
            self._token_info = self.authorize()

        return self._token_info['access_token']

    def is_authenticated(self) -> bool:
        """True when a usable token is stored (refreshing it if needed)"""
        return self.get_valid_token(interactive=False) is not None

    def get_spotify_client(self) -> Optional[spotipy.Spotify]:
        """spotipy client bound to the current token"""
        token = self.get_valid_token(interactive=False)
        if not token:
            return None

        if not self._spotify_client or self._spotify_token != token:
            self._spotify_client = spotipy.Spotify(auth=token)
            self._spotify_token = token
        return self._spotify_client

    def get_user_info(self) -> Optional[Dict[str, Any]]:
        """
        Profile of the logged-in user

        Returns:
            ``/me`` profile dictionary, or None when not logged in

        Raises:
            SessionExpiredError: If Spotify rejects the token as expired or revoked
            AuthenticationError: If the profile request is rejected
        """
        client = self.get_spotify_client()
        if not client:
            return None

        try:
            return client.current_user()
        except spotipy.SpotifyException as e:
            if e.http_status == 401:
                raise SessionExpiredError(
                    f"Failed to get user info: {e.msg}",
                    details={'status': e.http_status}
                ) from e
            raise AuthenticationError(
                f"Failed to get user info: {e.msg}",
                details={'status': e.http_status}
            ) from e

    def revoke_token(self) -> None:
        """
        Log out by deleting the stored token

        Tokens remain valid on Spotify's side until they expire.
        """
        if self.token_file.exists():
            self.token_file.unlink()
            self.logger.info("Token revoked")

        self._token_info = None
        self._spotify_client = None


_auth_instance: Optional[SpotifyAuth] = None


def get_auth() -> SpotifyAuth:
    """Global authentication instance"""
    global _auth_instance
    if not _auth_instance:
        _auth_instance = SpotifyAuth()
    return _auth_instance


def reset_auth() -> None:
    """Drop the global instance; stored tokens are untouched"""
    global _auth_instance
    _auth_instance = None
