"""Core data models for randomfs-cli.

The storage engine owns these records; the client only reads them and
renders them. Locators live in :mod:`randomfs_cli.locator`.
"""

from typing import List

from pydantic import BaseModel, Field, model_validator


# ============= Retrieval Metadata =============

class Representation(BaseModel):
    """How a stored file is reconstructed from its blocks."""

    file_name: str
    content_type: str
    file_size: int = Field(ge=0)
    block_hashes: List[str] = Field(default_factory=list)
    # One randomizer per block, same order as block_hashes
    randomizer_hashes: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_blocks(self) -> "Representation":
        if self.file_size > 0 and not self.block_hashes:
            raise ValueError(f"representation of {self.file_name} has no blocks")
        if self.randomizer_hashes and len(self.randomizer_hashes) != len(self.block_hashes):
            raise ValueError("randomizer_hashes must pair up with block_hashes")
        return self

    @property
    def block_count(self) -> int:
        return len(self.block_hashes)


# ============= Engine Statistics =============

class Statistics(BaseModel):
    """Snapshot of the engine's counters. All monotonically non-decreasing."""

    files_stored: int = Field(default=0, ge=0)
    blocks_generated: int = Field(default=0, ge=0)
    total_size: int = Field(default=0, ge=0)  # bytes
    cache_hits: int = Field(default=0, ge=0)
    cache_misses: int = Field(default=0, ge=0)
