"""Content type detection for files being stored.

Detection is a two-step fallback chain:

1. Exact, case-sensitive match of the file name's extension against a fixed
   table.
2. Content sniffing on the first 512 bytes, following the signature rules of
   the WHATWG MIME Sniffing standard (the same rules browsers and most HTTP
   servers apply).

If the file cannot be opened for sniffing the generic binary type is
returned. :func:`detect_content_type` never raises.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN_UTF8 = "text/plain; charset=utf-8"
SNIFF_LEN = 512


def is_valid_content_type(value: str) -> bool:
    """True if value has a non-empty type and subtype around a '/'."""
    kind, sep, subtype = value.partition("/")
    return bool(kind and sep and subtype)

# Longest suffix first so ".tar.gz" wins over any shorter match
EXTENSION_TYPES: List[Tuple[str, str]] = [
    (".tar.gz", "application/gzip"),
    (".txt", "text/plain"),
    (".html", "text/html"),
    (".htm", "text/html"),
    (".css", "text/css"),
    (".js", "application/javascript"),
    (".json", "application/json"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".gif", "image/gif"),
    (".pdf", "application/pdf"),
    (".zip", "application/zip"),
    (".tgz", "application/gzip"),
]


def content_type_from_extension(filename: Union[str, Path]) -> Optional[str]:
    """Look up a file name in the extension table.

    Args:
        filename: File name or path

    Returns:
        MIME type, or None if the extension is not in the table
    """
    name = Path(filename).name
    for suffix, mime in EXTENSION_TYPES:
        if name.endswith(suffix):
            return mime
    return None


# ---- Sniffing signatures ----------------------------------------------------

_WHITESPACE = b"\t\n\x0c\r "
_TAG_TERMINATORS = b" >"

_HTML_TAGS = [
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
]


def _html_sniffer(tag: bytes) -> Callable[[bytes, int], Optional[str]]:
    def sniff(data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(tag) + 1:
            return None
        if data[:len(tag)].upper() != tag:
            return None
        if data[len(tag)] not in _TAG_TERMINATORS:
            return None
        return "text/html; charset=utf-8"
    return sniff


def _masked_sniffer(
    pattern: bytes, mask: bytes, mime: str, skip_ws: bool = False
) -> Callable[[bytes, int], Optional[str]]:
    def sniff(data: bytes, first_non_ws: int) -> Optional[str]:
        if skip_ws:
            data = data[first_non_ws:]
        if len(data) < len(pattern):
            return None
        for d, p, m in zip(data, pattern, mask):
            if d & m != p:
                return None
        return mime
    return sniff


def _exact_sniffer(sig: bytes, mime: str) -> Callable[[bytes, int], Optional[str]]:
    def sniff(data: bytes, first_non_ws: int) -> Optional[str]:
        return mime if data.startswith(sig) else None
    return sniff


def _mp4_sniffer(data: bytes, first_non_ws: int) -> Optional[str]:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for st in range(8, box_size, 4):
        if st == 12:
            # Bytes 12-15 are the minor version
            continue
        if data[st:st + 3] == b"mp4":
            return "video/mp4"
    return None


def _text_sniffer(data: bytes, first_non_ws: int) -> Optional[str]:
    for b in data[first_non_ws:]:
        if b <= 0x08 or b == 0x0B or 0x0E <= b <= 0x1A or 0x1C <= b <= 0x1F:
            return None
    return TEXT_PLAIN_UTF8


_FF = b"\xFF"

SNIFFERS: List[Callable[[bytes, int], Optional[str]]] = [
    *[_html_sniffer(tag) for tag in _HTML_TAGS],
    _masked_sniffer(b"<?xml", _FF * 5, "text/xml; charset=utf-8", skip_ws=True),
    _exact_sniffer(b"%PDF-", "application/pdf"),
    _exact_sniffer(b"%!PS-Adobe-", "application/postscript"),
    # Byte order marks
    _masked_sniffer(b"\xFE\xFF\x00\x00", b"\xFF\xFF\x00\x00", "text/plain; charset=utf-16be"),
    _masked_sniffer(b"\xFF\xFE\x00\x00", b"\xFF\xFF\x00\x00", "text/plain; charset=utf-16le"),
    _masked_sniffer(b"\xEF\xBB\xBF\x00", b"\xFF\xFF\xFF\x00", TEXT_PLAIN_UTF8),
    # Images
    _exact_sniffer(b"\x00\x00\x01\x00", "image/x-icon"),
    _exact_sniffer(b"\x00\x00\x02\x00", "image/x-icon"),
    _exact_sniffer(b"BM", "image/bmp"),
    _exact_sniffer(b"GIF87a", "image/gif"),
    _exact_sniffer(b"GIF89a", "image/gif"),
    _masked_sniffer(
        b"RIFF\x00\x00\x00\x00WEBPVP",
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF\xFF\xFF",
        "image/webp",
    ),
    _exact_sniffer(b"\x89PNG\x0D\x0A\x1A\x0A", "image/png"),
    _exact_sniffer(b"\xFF\xD8\xFF", "image/jpeg"),
    # Audio and video
    _masked_sniffer(
        b".snd", _FF * 4, "audio/basic",
    ),
    _masked_sniffer(
        b"FORM\x00\x00\x00\x00AIFF",
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        "audio/aiff",
    ),
    _masked_sniffer(b"ID3", _FF * 3, "audio/mpeg"),
    _masked_sniffer(b"OggS\x00", _FF * 5, "application/ogg"),
    _masked_sniffer(b"MThd\x00\x00\x00\x06", _FF * 8, "audio/midi"),
    _masked_sniffer(
        b"RIFF\x00\x00\x00\x00AVI ",
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        "video/avi",
    ),
    _masked_sniffer(
        b"RIFF\x00\x00\x00\x00WAVE",
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        "audio/wave",
    ),
    _mp4_sniffer,
    _exact_sniffer(b"\x1A\x45\xDF\xA3", "video/webm"),
    # Fonts
    _masked_sniffer(
        b"\x00" * 34 + b"LP",
        b"\x00" * 34 + b"\xFF\xFF",
        "application/vnd.ms-fontobject",
    ),
    _exact_sniffer(b"\x00\x01\x00\x00", "font/ttf"),
    _exact_sniffer(b"OTTO", "font/otf"),
    _exact_sniffer(b"ttcf", "font/collection"),
    _exact_sniffer(b"wOFF", "font/woff"),
    _exact_sniffer(b"wOF2", "font/woff2"),
    # Archives
    _exact_sniffer(b"\x1F\x8B\x08", "application/x-gzip"),
    _exact_sniffer(b"PK\x03\x04", "application/zip"),
    _exact_sniffer(b"Rar!\x1A\x07\x00", "application/x-rar-compressed"),
    _exact_sniffer(b"Rar!\x1A\x07\x01\x00", "application/x-rar-compressed"),
    _exact_sniffer(b"\x00\x61\x73\x6D", "application/wasm"),
    _text_sniffer,
]


def sniff_content_type(data: bytes) -> str:
    """Guess a MIME type from the leading bytes of a file.

    Only the first 512 bytes are considered. Always returns a valid MIME type,
    falling back to application/octet-stream.

    Args:
        data: File content (or a prefix of it)

    Returns:
        MIME type string, possibly with a charset parameter
    """
    data = data[:SNIFF_LEN]

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in _WHITESPACE:
        first_non_ws += 1

    for sniffer in SNIFFERS:
        mime = sniffer(data, first_non_ws)
        if mime:
            return mime
    return OCTET_STREAM


def detect_content_type(path: Union[str, Path]) -> str:
    """Determine the MIME type of a file.

    Extension table first, then content sniffing. Unreadable files yield
    application/octet-stream; this function never raises.

    Args:
        path: Path to the file

    Returns:
        MIME type string
    """
    mime = content_type_from_extension(path)
    if mime:
        return mime

    try:
        with open(path, "rb") as f:
            head = f.read(SNIFF_LEN)
    except (OSError, ValueError) as e:
        logger.debug("Cannot sniff %s, using %s: %s", path, OCTET_STREAM, e)
        return OCTET_STREAM

    return sniff_content_type(head)
