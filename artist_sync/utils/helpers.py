"""
Utility functions and helpers for artist-sync
Common functions for name matching, batching, PKCE secrets and display formatting
"""

import base64
import hashlib
import secrets
import string
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar('T')

# RFC 7636 "unreserved" characters allowed in a PKCE code verifier
PKCE_VERIFIER_ALPHABET = string.ascii_letters + string.digits + '-._~'


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize an artist or playlist name into a matching key

    Lower-cases and trims surrounding whitespace. Nothing else: no accent
    folding, no "The" stripping, no inner whitespace collapsing. Artist keys
    and playlist names must go through this same function.

    Args:
        name: Display name as returned by the Web API

    Returns:
        Matching key ("" for empty or missing names)
    """
    if not name:
        return ""
    return name.lower().strip()


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """
    Split a sequence into consecutive lists of at most ``size`` items

    Args:
        items: Sequence to split, order is preserved
        size: Maximum chunk length (must be positive)

    Yields:
        Lists of items, the last one possibly shorter
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")

    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def unique_by(items: Iterable[T], key: Callable[[T], Any]) -> List[T]:
    """Keep the first item for every distinct key, preserving order"""
    seen = set()
    result = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        result.append(item)
    return result


def generate_code_verifier(length: int = 64) -> str:
    """
    Generate a high-entropy PKCE code verifier

    Args:
        length: Verifier length, RFC 7636 allows 43 to 128 characters

    Returns:
        Random string drawn from the unreserved alphabet
    """
    if not 43 <= length <= 128:
        raise ValueError(f"PKCE verifier length must be between 43 and 128, got {length}")

    return ''.join(secrets.choice(PKCE_VERIFIER_ALPHABET) for _ in range(length))


def code_challenge(verifier: str) -> str:
    """
    Derive the S256 code challenge for a verifier

    Args:
        verifier: PKCE code verifier

    Returns:
        Base64url encoded SHA-256 digest without padding
    """
    digest = hashlib.sha256(verifier.encode('ascii')).digest()
    return base64.urlsafe_b64encode(digest).decode('ascii').rstrip('=')


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Original text
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    truncate_length = max_length - len(suffix)
    if truncate_length <= 0:
        return suffix[:max_length]

    return text[:truncate_length] + suffix


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    """Format ``count`` with the right noun form, e.g. "1 song", "3 songs" """
    noun = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {noun}"
