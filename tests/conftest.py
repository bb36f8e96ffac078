"""Shared test fixtures and utilities."""

import hashlib
from typing import Dict, List, Tuple

import pytest

from randomfs_cli.config import EngineConfig
from randomfs_cli.core import Representation, Statistics
from randomfs_cli.errors import EngineRetrievalError
from randomfs_cli.locator import Locator


class InMemoryEngine:
    """StorageEngine fake that keeps whole files in a dict and records calls."""

    def __init__(self):
        self.files: Dict[str, Tuple[bytes, Representation]] = {}
        self.calls: List[str] = []
        self._stats = Statistics()

    def store(self, file_name: str, data: bytes, content_type: str) -> Locator:
        self.calls.append("store")
        rep_hash = hashlib.sha256(data).hexdigest()
        rep = Representation(
            file_name=file_name,
            content_type=content_type,
            file_size=len(data),
            block_hashes=[rep_hash] if data else [],
        )
        self.files[rep_hash] = (data, rep)
        self._stats = self._stats.model_copy(update={
            "files_stored": self._stats.files_stored + 1,
            "blocks_generated": self._stats.blocks_generated + len(rep.block_hashes),
            "total_size": self._stats.total_size + len(data),
        })
        return Locator(
            host="memory",
            version="v1",
            file_name=file_name,
            file_size=len(data),
            rep_hash=rep_hash,
            timestamp=1700000000,
            content_type=content_type,
        )

    def retrieve(self, rep_hash: str) -> Tuple[bytes, Representation]:
        self.calls.append("retrieve")
        if rep_hash not in self.files:
            self._stats = self._stats.model_copy(update={"cache_misses": self._stats.cache_misses + 1})
            raise EngineRetrievalError(rep_hash, KeyError("unknown representation hash"))
        self._stats = self._stats.model_copy(update={"cache_hits": self._stats.cache_hits + 1})
        return self.files[rep_hash]

    def stats(self) -> Statistics:
        self.calls.append("stats")
        return self._stats


@pytest.fixture
def engine():
    """Fresh in-memory engine."""
    return InMemoryEngine()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point config discovery at an empty tmp location and clear env overrides."""
    config_path = tmp_path / "config" / "config.yaml"
    monkeypatch.setenv("RANDOMFS_CONFIG", str(config_path))
    for var in ("RANDOMFS_IPFS", "RANDOMFS_DATA", "RANDOMFS_CACHE", "RANDOMFS_DEBUG"):
        monkeypatch.delenv(var, raising=False)
    return config_path


@pytest.fixture
def engine_config(tmp_path):
    """EngineConfig rooted in a tmp data directory."""
    return EngineConfig(data_directory=tmp_path / "data", cache_size_bytes=1024 * 1024)


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path."""
    def _write(path: str, content="test content"):
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            file_path.write_bytes(content)
        else:
            file_path.write_text(content)
        return file_path
    return _write
