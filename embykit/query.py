"""Query string encoding.

Emby parses nested parameters with bracket keys (``Fields[Name]=...``), so
the encoder escapes every reserved character, brackets included, to keep
those composite keys unambiguous on the server side.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final
from urllib.parse import quote

# Beyond the characters quote() never touches (A-Z a-z 0-9 _ . - ~).
QUERY_SAFE_CHARS: Final = "/?"


def render_scalar(value: object) -> str:
    """Render a scalar the way the server expects it.

    ``None`` becomes ``null`` and booleans become ``true``/``false``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def percent_encode(value: object) -> str:
    """Percent-encode a key or value.

    Args:
        value: Any scalar.

    Returns:
        Encoded text. ``None`` renders as the literal ``null``.
    """
    return quote(render_scalar(value), safe=QUERY_SAFE_CHARS)


def query_components(key: str, value: object) -> list[tuple[str, str]]:
    """Flatten one parameter into encoded key/value pairs.

    Mappings recurse with ``key[nested]``, sequences repeat ``key`` for each
    element in order, and scalars produce a single pair.

    Args:
        key: Parameter name.
        value: Scalar, sequence or mapping.

    Returns:
        Ordered list of (encoded key, encoded value) pairs.

    Example:
        >>> query_components("a", {"b": 1, "c": [2, 3]})
        [('a%5Bb%5D', '1'), ('a%5Bc%5D', '2'), ('a%5Bc%5D', '3')]
    """
    components: list[tuple[str, str]] = []
    if isinstance(value, Mapping):
        for nested_key, nested_value in value.items():
            components += query_components(f"{key}[{nested_key}]", nested_value)
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        for element in value:
            components += query_components(key, element)
    else:
        components.append((percent_encode(key), percent_encode(value)))
    return components


def flatten_params(
    params: Mapping[str, object],
    sort: bool = False,
) -> list[tuple[str, str]]:
    """Flatten a parameter mapping into encoded pairs.

    Args:
        params: Parameters to encode. Insertion order is preserved.
        sort: Sort top-level keys ascending first, for stable URLs.

    Returns:
        Ordered list of encoded pairs.
    """
    keys = sorted(params) if sort else list(params)
    components: list[tuple[str, str]] = []
    for key in keys:
        components += query_components(key, params[key])
    return components


def encode_query(params: Mapping[str, object], sort: bool = False) -> str:
    """Encode parameters as a query string without the leading ``?``.

    Args:
        params: Parameters to encode.
        sort: Sort top-level keys ascending first.

    Returns:
        ``key=value`` pairs joined with ``&``.
    """
    return "&".join(f"{key}={value}" for key, value in flatten_params(params, sort=sort))
