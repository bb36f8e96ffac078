"""Factory for creating storage engine instances."""

import logging

from ..config import EngineConfig
from ..errors import EngineInitError
from .base import StorageEngine
from .fs import LocalEngine

logger = logging.getLogger(__name__)


def make_engine(config: EngineConfig) -> StorageEngine:
    """
    Create a storage engine from configuration.

    Args:
        config: Engine configuration

    Returns:
        StorageEngine instance

    Raises:
        EngineInitError: If the backend is unknown or fails to start
    """
    logger.debug("Creating %s engine", config.backend)
    if config.backend == "local":
        try:
            return LocalEngine(config)
        except OSError as e:
            raise EngineInitError(e)

    raise EngineInitError(NotImplementedError(f"Backend {config.backend} not supported"))
