"""Local filesystem storage engine.

Files are split into blocks and every block is XORed with a freshly generated
random block before it is written, so no stored block on its own reveals any
file content. Both the randomizer and the randomized block are stored
content-addressed with sharding::

    <data_directory>/blocks/ab/cd/<sha256>
    <data_directory>/reps/<rep_hash>.json
    <data_directory>/stats.json

The representation hash is the SHA256 of the representation document, so a
locator pins exactly one reconstruction recipe.
"""

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import List, Tuple

import portalocker
from pydantic import ValidationError

from ..config import EngineConfig
from ..content_type import is_valid_content_type
from ..core import Representation, Statistics
from ..errors import EngineRetrievalError, EngineStoreError
from ..locator import Locator
from ..utils import atomic_write_bytes, compute_digest
from .cache import BlockCache

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "v1"
DEFAULT_NODE_ID = "local"
LOCK_TIMEOUT = 30

_HEX64 = re.compile(r"^[0-9a-f]{64}$")

# (max file size, block size), first match wins
BLOCK_SIZE_TIERS = [
    (64 * 1024, 1024),
    (64 * 1024 * 1024, 64 * 1024),
]
LARGE_BLOCK_SIZE = 1024 * 1024


def choose_block_size(file_size: int) -> int:
    """Pick a block size so small files don't pay for megabyte padding."""
    for limit, block_size in BLOCK_SIZE_TIERS:
        if file_size <= limit:
            return block_size
    return LARGE_BLOCK_SIZE


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two equal-length byte strings."""
    n = len(a)
    return (int.from_bytes(a, "big") ^ int.from_bytes(b, "big")).to_bytes(n, "big")


class LocalEngine:
    """
    Storage engine keeping all blocks under a local data directory.

    ``ipfs_endpoint`` is recorded but not contacted; this backend never
    leaves the local disk.
    """

    def __init__(self, config: EngineConfig, node_id: str = DEFAULT_NODE_ID):
        """
        Initialize the engine and create its directory layout.

        Args:
            config: Engine configuration
            node_id: Host segment assigned to locators from this engine

        Raises:
            OSError: If the data directory cannot be created
        """
        self.config = config
        self.node_id = node_id
        self.base_dir = Path(config.data_directory)
        self.blocks_dir = self.base_dir / "blocks"
        self.reps_dir = self.base_dir / "reps"
        self.stats_path = self.base_dir / "stats.json"
        self.cache = BlockCache(config.cache_size_bytes)

        self.blocks_dir.mkdir(parents=True, exist_ok=True)
        self.reps_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(
            "LocalEngine at %s (endpoint %s, cache %d bytes)",
            self.base_dir, config.ipfs_endpoint, config.cache_size_bytes,
        )

    # ---- Block storage ------------------------------------------------------

    def _block_path(self, block_hash: str) -> Path:
        return self.blocks_dir / block_hash[:2] / block_hash[2:4] / block_hash

    def _put_block(self, block: bytes) -> str:
        block_hash = compute_digest(block)
        dest = self._block_path(block_hash)

        # Idempotent: content-addressed blocks never change
        if not dest.exists():
            dest.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(dest, block, mode=0o444)
        self.cache.put(block_hash, block)
        return block_hash

    def _get_block(self, block_hash: str) -> bytes:
        block = self.cache.get(block_hash)
        if block is not None:
            return block

        path = self._block_path(block_hash)
        if not path.exists():
            raise FileNotFoundError(f"block {block_hash} not found")
        block = path.read_bytes()
        actual = compute_digest(block)
        if actual != block_hash:
            raise ValueError(f"block {block_hash} is corrupt (content hashes to {actual})")
        self.cache.put(block_hash, block)
        return block

    # ---- Statistics ---------------------------------------------------------

    def _read_stats(self) -> Statistics:
        if not self.stats_path.exists():
            return Statistics()
        return Statistics.model_validate_json(self.stats_path.read_text())

    def _update_stats(self, **deltas: int) -> None:
        """Add deltas to the persisted counters under a cross-process lock."""
        lock_path = self.stats_path.with_suffix(".lock")
        with portalocker.Lock(str(lock_path), "w", timeout=LOCK_TIMEOUT):
            current = self._read_stats().model_dump()
            for name, delta in deltas.items():
                current[name] += delta
            atomic_write_bytes(self.stats_path, json.dumps(current, indent=2).encode())

    # ---- StorageEngine ------------------------------------------------------

    def store(self, file_name: str, data: bytes, content_type: str) -> Locator:
        """Randomize, store and describe a file."""
        base_name = os.path.basename(file_name)
        # Nothing is written unless the returned Locator can be built
        if not is_valid_content_type(content_type):
            raise EngineStoreError(
                base_name, ValueError(f"content type must look like 'type/subtype', got {content_type!r}")
            )
        block_size = choose_block_size(len(data))

        try:
            block_hashes: List[str] = []
            randomizer_hashes: List[str] = []
            for offset in range(0, len(data), block_size):
                chunk = data[offset:offset + block_size].ljust(block_size, b"\x00")
                randomizer = os.urandom(block_size)
                randomizer_hashes.append(self._put_block(randomizer))
                block_hashes.append(self._put_block(xor_bytes(chunk, randomizer)))

            rep = Representation(
                file_name=base_name,
                content_type=content_type,
                file_size=len(data),
                block_hashes=block_hashes,
                randomizer_hashes=randomizer_hashes,
            )
            document = rep.model_dump_json().encode()
            rep_hash = compute_digest(document)
            atomic_write_bytes(self.reps_dir / f"{rep_hash}.json", document)

            self._update_stats(
                files_stored=1,
                blocks_generated=len(randomizer_hashes),
                total_size=len(data),
            )
        except (OSError, ValueError, portalocker.LockException) as e:
            raise EngineStoreError(base_name, e)

        logger.info("Stored %s as %s (%d blocks)", base_name, rep_hash, len(block_hashes))
        return Locator(
            host=self.node_id,
            version=PROTOCOL_VERSION,
            file_name=base_name,
            file_size=len(data),
            rep_hash=rep_hash,
            timestamp=int(time.time()),
            content_type=content_type,
        )

    def retrieve(self, rep_hash: str) -> Tuple[bytes, Representation]:
        """Load a representation and reassemble its content."""
        # Hash becomes part of a path; reject anything but hex
        if not _HEX64.fullmatch(rep_hash):
            raise EngineRetrievalError(
                rep_hash, ValueError("representation hash must be 64 lowercase hex characters")
            )

        rep_path = self.reps_dir / f"{rep_hash}.json"
        hits_before, misses_before = self.cache.hits, self.cache.misses
        try:
            if not rep_path.exists():
                raise FileNotFoundError("unknown representation hash")
            rep = Representation.model_validate_json(rep_path.read_text())

            parts = []
            for block_hash, randomizer_hash in zip(rep.block_hashes, rep.randomizer_hashes):
                parts.append(xor_bytes(self._get_block(block_hash), self._get_block(randomizer_hash)))
            data = b"".join(parts)[:rep.file_size]
            if len(data) != rep.file_size:
                raise ValueError(f"reassembled {len(data)} bytes, expected {rep.file_size}")

            self._update_stats(
                cache_hits=self.cache.hits - hits_before,
                cache_misses=self.cache.misses - misses_before,
            )
        except (OSError, ValueError, ValidationError, portalocker.LockException) as e:
            raise EngineRetrievalError(rep_hash, e)

        logger.info("Retrieved %s (%s, %d bytes)", rep_hash, rep.file_name, rep.file_size)
        return data, rep

    def stats(self) -> Statistics:
        """Current persisted counters."""
        return self._read_stats()
