"""Base protocol for storage engine implementations."""

from typing import Protocol, Tuple

from ..core import Representation, Statistics
from ..locator import Locator


class StorageEngine(Protocol):
    """
    Protocol for storage engines.

    The client depends on exactly these three operations. How an engine
    shards, randomizes or caches blocks is its own business.
    """

    def store(self, file_name: str, data: bytes, content_type: str) -> Locator:
        """
        Store file content.

        Input is checked before anything is written, so a rejected request
        leaves the engine unchanged.

        Args:
            file_name: Base name of the original file; may be empty if unknown
            data: Complete file content
            content_type: MIME type to record, in type/subtype form

        Returns:
            Locator for the stored representation

        Raises:
            EngineStoreError: If the content could not be stored
        """
        ...

    def retrieve(self, rep_hash: str) -> Tuple[bytes, Representation]:
        """
        Reassemble a stored file.

        Args:
            rep_hash: Representation hash from a Locator

        Returns:
            File content and its Representation

        Raises:
            EngineRetrievalError: If the hash cannot be resolved
        """
        ...

    def stats(self) -> Statistics:
        """
        Snapshot of the engine's counters.

        Returns:
            Statistics
        """
        ...
