"""Storage engine package."""

from .base import StorageEngine
from .factory import make_engine

__all__ = ["StorageEngine", "make_engine"]
