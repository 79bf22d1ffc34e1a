"""
Artist index construction from the user's liked songs

The artist index is the join key between liked songs and playlists: it maps a
normalized artist name to every liked song crediting that artist.
"""

from typing import Any, Dict, Iterable, List

from ..spotify.models import Song
from ..utils.helpers import normalize_name
from ..utils.logger import get_logger

ArtistIndex = Dict[str, List[Song]]

logger = get_logger(__name__)


def build_artist_index(liked_items: Iterable[Dict[str, Any]]) -> ArtistIndex:
    """
    Map normalized artist names to the liked songs crediting them

    A song with several credited artists is appended once under each artist's
    key, so every entry is self-sufficient for reconciliation. Insertion order
    follows the liked-songs order; entries are never removed or deduplicated.

    Saved-track items without track data (removed or unavailable tracks) or
    without artist data are skipped, as are artists with an empty name.

    Args:
        liked_items: Complete saved-track items (``{"added_at": ..., "track": {...}}``)

    Returns:
        Dictionary of artist key -> list of Song, in discovery order
    """
    index: ArtistIndex = {}
    skipped = 0

    for item in liked_items:
        track = (item or {}).get('track')
        if not track or not track.get('artists'):
            skipped += 1
            continue

        song = Song.from_spotify_data(track)

        for artist in track['artists']:
            artist_key = normalize_name((artist or {}).get('name'))
            if not artist_key:
                continue
            index.setdefault(artist_key, []).append(song)

    if skipped:
        logger.debug(f"Skipped {skipped} liked items without track or artist data")
    logger.debug(f"Indexed {len(index)} artists")

    return index
