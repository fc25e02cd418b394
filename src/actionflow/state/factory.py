"""Factory for creating key-value stores."""

import logging

from actionflow.core.config import StoreConfig
from actionflow.state.store import InMemoryStore, KeyValueStore, SqliteStore

logger = logging.getLogger(__name__)


class StoreFactory:
    """Factory for creating store instances."""

    @staticmethod
    def create(config: StoreConfig) -> KeyValueStore:
        """Create a key-value store based on configuration.

        Args:
            config: Store configuration specifying the backend.

        Returns:
            Configured store instance.

        Raises:
            ValueError: If the backend is not supported.
        """
        logger.info(f"Creating store backend: {config.backend}")

        if config.backend == "memory":
            return InMemoryStore()
        elif config.backend == "sqlite":
            return SqliteStore(config.sqlite_path, timeout_seconds=config.sqlite_timeout_seconds)
        else:
            raise ValueError(f"Unsupported store backend: {config.backend}")
