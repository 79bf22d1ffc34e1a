"""
Main CLI interface for artist-sync

This module provides the command-line interface: authentication, library
browsing and the artist sync itself.

The CLI is built using Click framework and provides:
- Sync (append liked songs to the user's playlists named after their artists)
- Library browsing (playlists, tracks of a playlist or of Liked Songs)
- Authentication handling (login, logout, status)
- Configuration display
"""

import asyncio
import functools
import json
import sys

import click

from . import __version__
from .config.auth import get_auth, reset_auth
from .config.settings import get_settings, reload_settings
from .exceptions import ArtistSyncError, SessionExpiredError, SpotifyAPIError
from .spotify.client import SpotifyClient
from .spotify.models import Playlist, Song
from .sync.aggregator import collect_all
from .sync.report import SyncReport
from .sync.synchronizer import sync as run_sync
from .utils.helpers import truncate_string
from .utils.logger import configure_from_settings, get_logger

logger = get_logger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session expired. Please log in again."
NOT_LOGGED_IN_MESSAGE = "Not authenticated. Run 'artist-sync auth login' first."

# Track fields needed to display a playlist
TRACK_DISPLAY_FIELDS = 'items(track(uri,name,artists(name))),next'


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    An expired session clears the stored token so the next command starts
    a fresh login. Click usage errors keep click's own output and exit code.
    Every other failure prints in red and exits with 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except SessionExpiredError as e:
            logger.error(f"Session expired: {e}")
            get_auth().revoke_token()
            reset_auth()
            click.echo(click.style(SESSION_EXPIRED_MESSAGE, fg='red'), err=True)
            sys.exit(1)
        except ArtistSyncError as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
            sys.exit(1)
        except click.ClickException:
            raise
        except Exception as e:
            logger.error(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def require_token() -> str:
    """Stored access token, refreshed if needed; exits when not logged in"""
    token = get_auth().get_valid_token(interactive=False)
    if not token:
        click.echo(click.style(NOT_LOGGED_IN_MESSAGE, fg='red'), err=True)
        sys.exit(1)
    return token


def current_user_id() -> str:
    user_info = get_auth().get_user_info()
    if not user_info:
        click.echo(click.style(NOT_LOGGED_IN_MESSAGE, fg='red'), err=True)
        sys.exit(1)
    return user_info['id']


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    artist-sync - Add liked songs to playlists named after their artists

    For every playlist you own whose name matches an artist of your Liked
    Songs, the songs you liked by that artist and missing from the playlist
    are appended to it.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"artist-sync v{__version__}")
        return

    if config:
        reload_settings(config)
        reset_auth()

    ctx.obj['verbose'] = verbose
    configure_from_settings(verbose=verbose)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def render_report(report: SyncReport) -> None:
    """Print a sync report: informational message or completed summary"""
    if report.is_informational:
        click.echo(click.style(report.message, fg='yellow'))
        return

    click.echo(click.style("Sync Complete!", fg='green', bold=True))
    click.echo(f"   Artists found: {len(report.artists_found)}")
    click.echo(f"   Playlists matched: {len(report.playlists_matched)}")
    click.echo(f"   Songs added: {report.songs_added}")

    if report.playlists_matched:
        click.echo(f"\nMatched playlists: {', '.join(report.playlists_matched)}")

    if report.has_errors:
        click.echo(click.style(f"\n{len(report.errors)} error(s) occurred:", fg='yellow'))
        for error in report.errors:
            click.echo(click.style(f"   • {error}", fg='red'))


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@handle_error
def sync(as_json):
    """
    Sync liked songs into artist playlists

    Only playlists you own are modified, and songs are only ever appended.
    """
    settings = get_settings()
    token = require_token()
    user_id = current_user_id()

    if not as_json:
        click.echo("Syncing liked songs to artist playlists...")

    try:
        report = asyncio.run(run_sync(token, user_id, settings))
    except SessionExpiredError:
        raise
    except SpotifyAPIError as e:
        logger.error(f"Sync failed: {e}")
        click.echo(click.style("Sync Failed", fg='red', bold=True), err=True)
        click.echo(click.style(e.message, fg='red'), err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report)


async def load_library(token: str):
    """Liked-songs count and every playlist of the user"""
    settings = get_settings()
    async with SpotifyClient(token, settings=settings) as client:
        liked_count, items = await asyncio.gather(
            client.get_liked_songs_count(),
            collect_all(
                client.fetch_page,
                client.playlists_url(),
                {'limit': str(settings.sync.playlist_page_size)}
            )
        )
    playlists = [Playlist.from_spotify_data(item, settings.spotify.api_base_url) for item in items if item]
    return liked_count, playlists


@cli.command()
@handle_error
def playlists():
    """
    List Liked Songs and your playlists

    Playlists owned by someone else are listed but never modified by sync.
    """
    token = require_token()
    user_id = current_user_id()

    liked_count, user_playlists = asyncio.run(load_library(token))

    if liked_count == 0 and not user_playlists:
        click.echo("No playlists found.")
        return

    if liked_count > 0:
        click.echo(click.style(f"Liked Songs ({liked_count} tracks)", fg='green', bold=True))

    for playlist in user_playlists:
        line = f"{truncate_string(playlist.name, 60)} ({playlist.track_count} tracks)"
        if not playlist.is_owned_by(user_id):
            line += click.style(f"  [owned by {playlist.owner_id}]", fg='yellow')
        click.echo(line)


async def load_tracks(token: str, playlist_id=None):
    """Every track of a playlist, or of Liked Songs when no id is given"""
    settings = get_settings()
    async with SpotifyClient(token, settings=settings) as client:
        if playlist_id is None:
            url = client.liked_tracks_url()
            params = {'limit': str(settings.sync.liked_page_size)}
        else:
            url = client.playlist_tracks_url(playlist_id)
            params = {
                'limit': str(settings.sync.playlist_tracks_page_size),
                'fields': TRACK_DISPLAY_FIELDS
            }
        items = await collect_all(client.fetch_page, url, params)

    return [Song.from_spotify_data(item['track']) for item in items if item and item.get('track')]


@cli.command()
@click.argument('playlist_id', required=False)
@click.option('--liked', is_flag=True, help='Show Liked Songs instead of a playlist')
@handle_error
def tracks(playlist_id, liked):
    """Show the tracks of PLAYLIST_ID, or of Liked Songs with --liked"""
    if liked == bool(playlist_id):
        raise click.UsageError("Give either a PLAYLIST_ID or --liked")

    token = require_token()
    songs = asyncio.run(load_tracks(token, None if liked else playlist_id))

    if not songs:
        click.echo("This playlist is empty.")
        return

    for song in songs:
        click.echo(str(song))


@cli.group()
def auth():
    """Manage Spotify authentication"""
    pass


@auth.command()
@handle_error
def login():
    """
    Authenticate with Spotify

    Opens the browser on Spotify's consent page (PKCE flow, no client secret)
    and stores the resulting token for later commands.
    """
    auth_manager = get_auth()

    if auth_manager.is_authenticated():
        user_info = auth_manager.get_user_info() or {}
        click.echo(f"Already authenticated as: {user_info.get('display_name') or user_info.get('id', 'Unknown')}")
        return

    click.echo("Starting Spotify authentication...")
    auth_manager.authorize()

    user_info = auth_manager.get_user_info() or {}
    click.echo(click.style(
        f"Successfully authenticated as: {user_info.get('display_name') or user_info.get('id', 'Unknown')}",
        fg='green'
    ))


@auth.command()
@handle_error
def logout():
    """Remove stored authentication"""
    auth_manager = get_auth()
    auth_manager.revoke_token()
    reset_auth()
    click.echo("Successfully logged out")


@auth.command()
@handle_error
def status():
    """Show authentication status"""
    auth_manager = get_auth()

    if not auth_manager.is_authenticated():
        click.echo(click.style("Not authenticated", fg='red'))
        click.echo("Run 'artist-sync auth login' to authenticate")
        return

    user_info = auth_manager.get_user_info() or {}
    click.echo(click.style("Authenticated", fg='green'))
    click.echo(f"   User: {user_info.get('display_name') or 'Unknown'}")
    click.echo(f"   ID: {user_info.get('id', 'Unknown')}")


@cli.group()
def config():
    """Configuration management"""
    pass


@config.command()
@handle_error
def show():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Spotify:")
    click.echo(f"   Client ID: {'configured' if settings.spotify.client_id else 'not set'}")
    click.echo(f"   Redirect URL: {settings.spotify.redirect_url}")
    click.echo(f"   API: {settings.spotify.api_base_url}")

    click.echo("\nSync:")
    click.echo(f"   Liked songs page size: {settings.sync.liked_page_size}")
    click.echo(f"   Playlist page size: {settings.sync.playlist_page_size}")
    click.echo(f"   Playlist tracks page size: {settings.sync.playlist_tracks_page_size}")
    click.echo(f"   Batch size: {settings.sync.batch_size}")
    click.echo(f"   Concurrent playlists: {settings.sync.max_concurrent_playlists}")

    click.echo("\nStorage:")
    click.echo(f"   Config directory: {settings.get_config_directory()}")
    click.echo(f"   Token file: {settings.get_token_storage_path()}")

    problems = settings.validate()
    if problems:
        click.echo(click.style(f"\nFound {len(problems)} issues:", fg='yellow'))
        for problem in problems:
            click.echo(f"   • {problem}")


if __name__ == '__main__':
    cli()
