"""Result types returned by command operations."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from .core import Representation, Statistics
from .errors import RandomFSError
from .locator import Locator

T = TypeVar("T")


class StoreResult(BaseModel):
    """Result of storing a file."""
    locator: Locator
    url: str
    stats: Optional[Statistics] = None  # only collected in verbose mode


class RetrieveResult(BaseModel):
    """Result of retrieve or download."""
    rep_hash: str
    representation: Representation
    output_path: str
    bytes_written: int
    stats: Optional[Statistics] = None


@dataclass
class CommandResult(Generic[T]):
    """Outcome of one command: a value or the error that stopped it."""

    value: Optional[T] = None
    error: Optional[RandomFSError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, re-raising the error if the command failed."""
        if self.error is not None:
            raise self.error
        return self.value
