"""
Configuration management package for artist-sync

1. Settings Management (settings.py):
   - Application configuration from YAML files and environment variables
   - Validation of page sizes, batch size and concurrency
   - Singleton access through get_settings() / reload_settings()

2. Authentication Management (auth.py):
   - Spotify OAuth2 PKCE flow, token storage and refresh
   - Imported directly as ``artist_sync.config.auth`` since it depends on
     the logging utilities, which themselves read the settings
"""

from .settings import get_settings, reload_settings, Settings

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
]
