"""
Configuration management for artist-sync

This module handles loading, validation, and management of application settings
from multiple sources including YAML files and environment variables. It provides
a centralized configuration system that supports reloading and validation.

The configuration is organized into logical sections using dataclasses:
- Spotify API settings (client id, redirect URL, scopes, endpoints)
- Sync behaviour (page sizes, mutation batch size, playlist concurrency)
- Logging, network and token storage settings

The PKCE flow needs no client secret, so the only credential is the client id,
which can be provided through the SPOTIFY_CLIENT_ID environment variable.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
from dotenv import load_dotenv

from ..exceptions import ConfigError

# Load environment variables from .env file if present
load_dotenv()

# Scopes needed to read the library and append to the user's playlists
DEFAULT_SCOPES = ' '.join([
    'playlist-read-private',
    'playlist-read-collaborative',
    'user-read-private',
    'user-library-read',
    'playlist-modify-public',
    'playlist-modify-private',
])


@dataclass
class SpotifyConfig:
    """
    Spotify application and endpoint settings

    The redirect URL must be registered in the Spotify Developer Dashboard
    for the application identified by ``client_id``.
    """
    client_id: str = ""
    redirect_url: str = "http://127.0.0.1:8080/callback"
    scope: str = DEFAULT_SCOPES
    api_base_url: str = "https://api.spotify.com/v1"
    accounts_base_url: str = "https://accounts.spotify.com"


@dataclass
class SyncConfig:
    """
    Synchronization behaviour

    Page sizes only apply to the first request of each collection; the
    following pages are whatever the server's next pointers return.
    ``batch_size`` bounds the URIs per "add tracks" request (Web API limit 100).
    ``max_concurrent_playlists`` above 1 reconciles matched playlists in parallel.
    """
    liked_page_size: int = 50
    playlist_page_size: int = 50
    playlist_tracks_page_size: int = 100
    batch_size: int = 100
    max_concurrent_playlists: int = 1


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Console output only shows user-facing messages; the optional log file
    receives everything at DEBUG detail.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings

    There is no retry setting: failed requests surface immediately.
    """
    user_agent: str = "artist-sync/1.0"
    request_timeout: int = 30


@dataclass
class SecurityConfig:
    """
    Security and storage configuration

    Controls where the OAuth token and the user configuration live.
    """
    token_storage_path: str = "~/.artist-sync/tokens.json"
    config_directory: str = "~/.artist-sync/"


class Settings:
    """
    Main settings class that manages all configuration

    Loads settings from YAML files and environment variables and provides a
    unified interface for accessing configuration throughout the application.

    The class handles:
    - Loading configuration from YAML files
    - Overriding with environment variables
    - Validating configuration values
    - Saving configuration back to files
    """

    def __init__(self, config_path: Optional[str] = None, load_files: bool = True):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
            load_files: When False only defaults and environment variables are used
        """
        self.config_path = config_path

        self.spotify = SpotifyConfig()
        self.sync = SyncConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.security = SecurityConfig()

        # Load configuration from various sources in order of precedence
        if load_files:
            self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'spotify': self.spotify,
            'sync': self.sync,
            'logging': self.logging,
            'network': self.network,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches for configuration files in multiple locations in order of
        precedence. The first file found will be used. An explicit path that
        does not exist or does not parse is a ConfigError.
        """
        if self.config_path and not Path(self.config_path).exists():
            raise ConfigError(
                f"Config file not found: {self.config_path}",
                details={'file_path': str(self.config_path)}
            )

        config_paths = [
            self.config_path,
            self.get_config_directory() / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(
                        f"Failed to parse config file {path}: {e}",
                        details={'file_path': str(path)}
                    ) from e
                break

        if not isinstance(config_data, dict):
            raise ConfigError("Config file must contain a mapping of sections")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Updates only the attributes that exist in both the config file and
        the dataclass definition; unknown sections and keys are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load configuration overrides from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'SPOTIFY_CLIENT_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_REDIRECT_URL': lambda v: setattr(self.spotify, 'redirect_url', v),
            'ARTIST_SYNC_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        """Configuration directory with user home expansion applied"""
        return Path(self.security.config_directory).expanduser()

    def get_token_storage_path(self) -> Path:
        """Token storage file with user home expansion applied"""
        return Path(self.security.token_storage_path).expanduser()

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to file

        The client id is not written out; it belongs in the environment.

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to
        """
        target = Path(path) if path else self.get_config_directory() / "config.yaml"

        config_data = self.to_dict()
        config_data['spotify']['client_id'] = ""

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {target}: {e}") from e

        return target

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """All sections as plain dictionaries"""
        return {name: asdict(section) for name, section in self._sections().items()}

    def validate(self) -> List[str]:
        """
        Validate current configuration

        Returns:
            List of human-readable problems, empty when the configuration is usable
        """
        errors = []

        if not self.spotify.client_id:
            errors.append("Spotify client_id is required (set SPOTIFY_CLIENT_ID)")

        errors.extend(self.sync_problems())

        if self.network.request_timeout <= 0:
            errors.append(f"network.request_timeout must be positive: {self.network.request_timeout}")

        return errors

    def sync_problems(self) -> List[str]:
        """Problems of the ``sync`` section, checked against the Web API limits"""
        errors = []

        if not 1 <= self.sync.liked_page_size <= 50:
            errors.append(f"sync.liked_page_size must be between 1 and 50: {self.sync.liked_page_size}")

        if not 1 <= self.sync.playlist_page_size <= 50:
            errors.append(f"sync.playlist_page_size must be between 1 and 50: {self.sync.playlist_page_size}")

        if not 1 <= self.sync.playlist_tracks_page_size <= 100:
            errors.append(
                f"sync.playlist_tracks_page_size must be between 1 and 100: {self.sync.playlist_tracks_page_size}"
            )

        if not 1 <= self.sync.batch_size <= 100:
            errors.append(f"sync.batch_size must be between 1 and 100: {self.sync.batch_size}")

        if self.sync.max_concurrent_playlists < 1:
            errors.append(
                f"sync.max_concurrent_playlists must be at least 1: {self.sync.max_concurrent_playlists}"
            )

        return errors

    def __str__(self) -> str:
        sections = [
            f"API: {self.spotify.api_base_url}",
            f"Batch: {self.sync.batch_size}",
            f"Concurrency: {self.sync.max_concurrent_playlists}",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance for singleton pattern
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    Created lazily on first access so importing the package never reads files.

    Returns:
        The global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
