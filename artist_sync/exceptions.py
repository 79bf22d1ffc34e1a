"""
Exception classes for artist-sync.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between the failure modes a caller has to react to
differently.

Exception Hierarchy:
    ArtistSyncError (base)
        ConfigError - Configuration file or value issues
        AuthenticationError - OAuth authorization / token exchange issues
        SpotifyAPIError - Any failed Spotify Web API request
            SessionExpiredError - HTTP 401, the caller must log in again
"""

from typing import Any, Dict, Optional


class ArtistSyncError(Exception):
    """
    Base exception for all artist-sync errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every artist-sync error with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URLs, playlist ids).

    Example:
        try:
            report = await sync(token, user_id)
        except ArtistSyncError as e:
            logger.error(f"Sync failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL of the request that failed
                     - 'playlist_id': Spotify playlist involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(ArtistSyncError):
    """
    Raised when the configuration is unusable.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml has invalid YAML syntax
        - Spotify client_id missing
        - Page or batch sizes outside the limits the Web API accepts
    """
    pass


class AuthenticationError(ArtistSyncError):
    """
    Raised when the PKCE authorization flow cannot produce a token.

    Common causes:
        - User denied access on the Spotify consent page
        - Authorization code expired or already used
        - Code verifier does not match the challenge sent earlier
        - Refresh token revoked

    The message carries Spotify's ``error_description`` when one is returned.
    """
    pass


class SpotifyAPIError(ArtistSyncError):
    """
    Raised when a Spotify Web API request fails.

    Covers non-2xx responses as well as network failures. For network
    failures ``status`` is None.

    Attributes:
        status: HTTP status code of the failed response, or None.
        is_rate_limit: True for HTTP 429. Not retried here; the current
                       operation simply fails.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.status = status
        self.is_rate_limit = status == 429


class SessionExpiredError(SpotifyAPIError):
    """
    Raised for HTTP 401 responses.

    The access token is expired or was revoked. This error is never
    swallowed by per-playlist isolation: it always reaches the caller so
    it can clear the stored token and ask the user to log in again.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status=401, details=details)
