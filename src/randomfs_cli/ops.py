"""Core operations for randomfs-cli.

Each command is a linear pipeline: validate input, optionally detect the
content type, call the engine, return a result. Any failure aborts the rest
of the pipeline. Nothing here prints or exits; the CLI renders results.

Engines are passed in as zero-argument factories so that an invocation
builds its engine only once input validation has passed.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, TypeVar

from .content_type import detect_content_type, is_valid_content_type
from .core import Statistics
from .errors import (
    EngineInitError,
    EngineRetrievalError,
    EngineStatsError,
    EngineStoreError,
    FileReadError,
    FileWriteError,
    InvalidContentType,
    RandomFSError,
)
from .locator import Locator, format_locator, parse_locator
from .service_types import CommandResult, RetrieveResult, StoreResult
from .storage import StorageEngine
from .utils import atomic_write_bytes

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], StorageEngine]
T = TypeVar("T")


# ============= Local File Helpers =============

def read_input_file(path: Path) -> bytes:
    """Read a whole file into memory.

    Raises:
        FileReadError: If the file is missing or unreadable
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise FileReadError(str(path), e)


def write_output_file(path: Path, data: bytes) -> None:
    """Write retrieved content; on failure no partial file is left behind.

    Raises:
        FileWriteError: If the file cannot be written
    """
    try:
        atomic_write_bytes(Path(path), data)
    except OSError as e:
        raise FileWriteError(str(path), e)


def open_engine(get_engine: EngineFactory) -> StorageEngine:
    """Construct the engine, normalizing failures to EngineInitError."""
    try:
        return get_engine()
    except EngineInitError:
        raise
    except Exception as e:
        raise EngineInitError(e)


def snapshot_stats(engine: StorageEngine) -> Statistics:
    """Read engine statistics, normalizing failures to EngineStatsError."""
    try:
        return engine.stats()
    except EngineStatsError:
        raise
    except Exception as e:
        raise EngineStatsError(e)


# ============= Commands =============

def store_file(
    get_engine: EngineFactory,
    path: Path,
    content_type: Optional[str] = None,
    verbose: bool = False,
) -> StoreResult:
    """Store a local file and return its locator.

    Args:
        get_engine: Engine factory
        path: File to store
        content_type: Explicit MIME type; detected from the file when None
        verbose: Also collect an engine statistics snapshot

    Raises:
        InvalidContentType: If the explicit content type is not type/subtype
        FileReadError: If the file cannot be read
        EngineInitError: If the engine cannot be constructed
        EngineStoreError: If the engine fails to store the content
    """
    if content_type is not None and not is_valid_content_type(content_type):
        raise InvalidContentType(content_type)

    path = Path(path)
    data = read_input_file(path)
    resolved_type = content_type or detect_content_type(path)
    logger.debug("Storing %s (%d bytes, %s)", path, len(data), resolved_type)

    engine = open_engine(get_engine)
    try:
        locator = engine.store(path.name, data, resolved_type)
    except EngineStoreError:
        raise
    except Exception as e:
        raise EngineStoreError(path.name, e)

    stats = snapshot_stats(engine) if verbose else None
    return StoreResult(locator=locator, url=format_locator(locator), stats=stats)


def retrieve_file(
    get_engine: EngineFactory,
    rep_hash: str,
    output_path: Path,
    verbose: bool = False,
) -> RetrieveResult:
    """Fetch content by representation hash and write it to disk.

    Raises:
        EngineInitError: If the engine cannot be constructed
        EngineRetrievalError: If the engine cannot resolve the hash
        FileWriteError: If the output file cannot be written
    """
    engine = open_engine(get_engine)
    try:
        data, rep = engine.retrieve(rep_hash)
    except EngineRetrievalError:
        raise
    except Exception as e:
        raise EngineRetrievalError(rep_hash, e)

    # Snapshot first so a stats failure leaves no output file
    stats = snapshot_stats(engine) if verbose else None
    write_output_file(output_path, data)
    return RetrieveResult(
        rep_hash=rep_hash,
        representation=rep,
        output_path=str(output_path),
        bytes_written=len(data),
        stats=stats,
    )


def download_file(
    get_engine: EngineFactory,
    rd_url: str,
    output_path: Path,
    verbose: bool = False,
) -> RetrieveResult:
    """Decode an rd:// URL, then retrieve its content.

    The URL is decoded before the engine is built, so a bad URL never
    touches the backend.

    Raises:
        LocatorError: If the URL does not decode
        EngineInitError, EngineRetrievalError, FileWriteError: As for retrieve
    """
    locator = parse_locator(rd_url)
    return retrieve_file(get_engine, locator.rep_hash, output_path, verbose=verbose)


def parse_url(rd_url: str) -> Locator:
    """Decode an rd:// URL. No engine involved.

    Raises:
        LocatorError: If the URL does not decode
    """
    return parse_locator(rd_url)


def get_stats(get_engine: EngineFactory) -> Statistics:
    """Snapshot of the engine's counters.

    Raises:
        EngineInitError: If the engine cannot be constructed
    """
    return snapshot_stats(open_engine(get_engine))


def run(operation: Callable[..., T], *args, **kwargs) -> CommandResult[T]:
    """Run an operation, capturing its failure as a result instead of raising."""
    try:
        return CommandResult(value=operation(*args, **kwargs))
    except RandomFSError as e:
        logger.debug("%s failed: %s", operation.__name__, e)
        return CommandResult(error=e)
