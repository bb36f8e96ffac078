"""rd:// locator model and codec.

A locator names a stored file by the hash of its representation plus the
metadata needed to present it. The textual form is::

    rd://<rep_hash>/<type>/<subtype>/<file_name>[?host=..&v=..&size=..&ts=..]
    rd://<rep_hash>/<file_name>[?...]

Each path segment is percent-encoded on its own, so a content type such as
``text/plain; charset=utf-8`` still occupies exactly two segments and a file
name may contain any character. An unknown (empty) file name leaves the final
segment empty. Only rep_hash, content_type and file_name are guaranteed to be
present; the query fields are emitted when known.

Decoding is strict: any deviation from the layout above raises a
:class:`~randomfs_cli.errors.LocatorError` instead of guessing.
"""

import urllib.parse
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .content_type import is_valid_content_type
from .errors import InvalidFieldEncoding, InvalidScheme, MalformedURL

SCHEME = "rd"
SCHEME_SEPARATOR = "://"

MAX_FILE_SIZE = 2**64 - 1
MAX_TIMESTAMP = 2**63 - 1

# query key -> Locator field
_QUERY_FIELDS = {
    "host": "host",
    "v": "version",
    "size": "file_size",
    "ts": "timestamp",
}
_INTEGER_KEYS = {"size": MAX_FILE_SIZE, "ts": MAX_TIMESTAMP}


class Locator(BaseModel):
    """Decoded form of an rd:// URL."""

    model_config = ConfigDict(frozen=True)

    scheme: Literal["rd"] = SCHEME
    host: str = Field(min_length=1)             # engine-assigned node id
    version: Optional[str] = Field(default=None, min_length=1)
    file_name: str = ""                         # base name; empty if unknown
    file_size: Optional[int] = Field(default=None, ge=0, le=MAX_FILE_SIZE)
    rep_hash: str = Field(min_length=1)         # retrieval key
    timestamp: Optional[int] = Field(default=None, ge=0, le=MAX_TIMESTAMP)
    content_type: Optional[str] = Field(default=None, min_length=1)

    @field_validator("content_type")
    @classmethod
    def validate_content_type(cls, v: Optional[str]) -> Optional[str]:
        """Content types occupy two path segments, so both halves must exist."""
        if v is not None and not is_valid_content_type(v):
            raise ValueError(f"content type must look like 'type/subtype', got {v!r}")
        return v

    def to_url(self) -> str:
        """Render as an rd:// URL string."""
        return format_locator(self)

    def __str__(self) -> str:
        return format_locator(self)

    @classmethod
    def parse(cls, url: str) -> "Locator":
        """Decode an rd:// URL string."""
        return parse_locator(url)


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


def format_locator(locator: Locator) -> str:
    """Encode a locator as a canonical rd:// URL.

    Deterministic: the same locator always yields the same string.

    Args:
        locator: Locator to render

    Returns:
        rd:// URL string
    """
    segments = []
    if locator.content_type:
        kind, _, subtype = locator.content_type.partition("/")
        segments.extend([kind, subtype])
    segments.append(locator.file_name)
    path = "/".join(_quote(s) for s in segments)

    query = []
    if locator.host != locator.rep_hash:
        query.append(("host", locator.host))
    if locator.version is not None:
        query.append(("v", locator.version))
    if locator.file_size is not None:
        query.append(("size", str(locator.file_size)))
    if locator.timestamp is not None:
        query.append(("ts", str(locator.timestamp)))

    url = f"{SCHEME}{SCHEME_SEPARATOR}{_quote(locator.rep_hash)}/{path}"
    if query:
        url += "?" + urllib.parse.urlencode(query, quote_via=urllib.parse.quote, safe="")
    return url


def _parse_query(url: str, query: str) -> Dict[str, object]:
    """Decode the metadata query into Locator keyword arguments."""
    try:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True, strict_parsing=True)
    except ValueError as e:
        raise MalformedURL(url, f"bad query string ({e})")

    fields: Dict[str, object] = {}
    seen = set()
    for key, value in pairs:
        if key not in _QUERY_FIELDS:
            raise MalformedURL(url, f"unknown metadata field '{key}'")
        if key in seen:
            raise MalformedURL(url, f"metadata field '{key}' repeated")
        seen.add(key)

        if key in _INTEGER_KEYS:
            # isdigit() alone accepts non-ASCII digits
            if not (value.isascii() and value.isdigit()):
                raise InvalidFieldEncoding(url, _QUERY_FIELDS[key], value)
            number = int(value)
            if number > _INTEGER_KEYS[key]:
                raise InvalidFieldEncoding(url, _QUERY_FIELDS[key], value)
            fields[_QUERY_FIELDS[key]] = number
        else:
            if not value:
                raise MalformedURL(url, f"metadata field '{key}' is empty")
            fields[_QUERY_FIELDS[key]] = value
    return fields


def parse_locator(url: str) -> Locator:
    """Decode an rd:// URL string.

    Args:
        url: String claiming to be an rd:// URL

    Returns:
        Locator with every field the URL carries

    Raises:
        InvalidScheme: If the scheme is missing or is not exactly 'rd'
        MalformedURL: If the hash segment or the path is missing, or the
            segment layout cannot be determined
        InvalidFieldEncoding: If size/ts are present but not non-negative integers
    """
    scheme, sep, rest = url.partition(SCHEME_SEPARATOR)
    if not sep:
        raise InvalidScheme(url, None)
    if scheme != SCHEME:
        raise InvalidScheme(url, scheme)

    if "#" in rest:
        raise MalformedURL(url, "fragments are not allowed")
    rest, has_query, query = rest.partition("?")

    host_segment, has_path, path = rest.partition("/")
    if not host_segment:
        raise MalformedURL(url, "missing representation hash segment")
    if not has_path:
        raise MalformedURL(url, "missing file name segment")

    # Only the trailing file name segment may be empty (name unknown)
    raw_segments = path.split("/")
    if any(not s for s in raw_segments[:-1]):
        raise MalformedURL(url, "empty path segment")
    segments = [urllib.parse.unquote(s) for s in raw_segments]

    if len(segments) == 1:
        content_type = None
    elif len(segments) == 3:
        kind, subtype = segments[0], segments[1]
        content_type = f"{kind}/{subtype}"
    else:
        raise MalformedURL(
            url,
            f"expected <hash>/<file> or <hash>/<type>/<subtype>/<file>, "
            f"got {len(segments)} path segments",
        )
    file_name = segments[-1]
    rep_hash = urllib.parse.unquote(host_segment)

    fields: Dict[str, object] = {}
    if has_query:
        if not query:
            raise MalformedURL(url, "empty query string")
        fields = _parse_query(url, query)
    fields.setdefault("host", rep_hash)

    try:
        return Locator(
            rep_hash=rep_hash,
            file_name=file_name,
            content_type=content_type,
            **fields,
        )
    except ValidationError as e:
        raise MalformedURL(url, f"invalid field ({e.errors()[0]['msg']})")
