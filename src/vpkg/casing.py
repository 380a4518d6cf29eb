"""
vpkg.casing - Text Transform Helpers
====================================

Pure string-case functions exposed to templates as Jinja2 filters.

Every helper is total: it accepts any string, including the empty string
and strings that mix separators, and never raises. Word boundaries are
spaces, hyphens, underscores, and lowercase-to-uppercase transitions::

    >>> split_words("redis-cache_HTTP clientPool")
    ['redis', 'cache', 'HTTP', 'client', 'Pool']

Usage in a template::

    type {{ package | pascal }} struct{}
    // {{ "redis-cache" | snake }}  ->  redis_cache

The helpers hold no state, so the renderer can call them from several
threads at once.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


SEPARATORS = frozenset(" -_")

# Returned by go_ident() when the input is empty
IDENT_PLACEHOLDER = "pkg"

_INVALID_IDENT_CHARS = re.compile(r"[^A-Za-z0-9_]")


def split_words(value: str) -> list[str]:
    """
    Split a string into words.

    Parameters
    ----------
    value : str
        Any string.

    Returns
    -------
    list[str]
        The words in order, with separators removed. Empty for input that
        contains no word characters.
    """
    words: list[str] = []
    current: list[str] = []
    previous = ""

    for char in value:
        if char in SEPARATORS:
            if current:
                words.append("".join(current))
                current = []
        elif previous.islower() and char.isupper():
            words.append("".join(current))
            current = [char]
        else:
            current.append(char)
        previous = char

    if current:
        words.append("".join(current))

    return words


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def title(value: str) -> str:
    """``redis-cache`` -> ``Redis Cache``"""
    return " ".join(_capitalize(w) for w in split_words(value))


def camel(value: str) -> str:
    """``redis-cache`` -> ``redisCache``"""
    words = split_words(value)
    if not words:
        return ""
    return words[0].lower() + "".join(_capitalize(w) for w in words[1:])


def pascal(value: str) -> str:
    """``redis-cache`` -> ``RedisCache``"""
    return "".join(_capitalize(w) for w in split_words(value))


def snake(value: str) -> str:
    """``RedisCache`` -> ``redis_cache``"""
    return "_".join(w.lower() for w in split_words(value))


def kebab(value: str) -> str:
    """``redis_cache`` -> ``redis-cache``"""
    return "-".join(w.lower() for w in split_words(value))


def upper(value: str) -> str:
    return value.upper()


def lower(value: str) -> str:
    return value.lower()


def go_ident(value: str) -> str:
    """
    Sanitize a string into a valid bare Go identifier.

    Characters outside ``[A-Za-z0-9_]`` become underscores, a leading digit
    gets an underscore prefix, and an empty input becomes
    :data:`IDENT_PLACEHOLDER`. Applying it twice gives the same result as
    applying it once.

    Examples
    --------
    >>> go_ident("2fast")
    '_2fast'
    >>> go_ident("redis-cache")
    'redis_cache'
    >>> go_ident("")
    'pkg'
    """
    sanitized = _INVALID_IDENT_CHARS.sub("_", value)
    if not sanitized:
        return IDENT_PLACEHOLDER
    if sanitized[0].isdigit():
        sanitized = "_" + sanitized
    return sanitized


# =============================================================================
# Helper Table
# =============================================================================

# Closed set of helpers available to templates, keyed by filter name
HELPERS: dict[str, Callable[[str], str]] = {
    "title": title,
    "camel": camel,
    "pascal": pascal,
    "snake": snake,
    "kebab": kebab,
    "upper": upper,
    "lower": lower,
    "go_ident": go_ident,
}
