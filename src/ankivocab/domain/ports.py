"""
Ports (interfaces) for persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """
    Port for durably storing opaque serialized blobs.

    Implementations:
        - JsonFileStorage: One file per key under a data directory.
        - MemoryStorage: Process-local dict, used for tests and ephemeral runs.
    """

    @abstractmethod
    async def load(self, key: str) -> str | None:
        """
        Load the blob stored under `key`.

        Returns:
            The stored text, or None if nothing was saved under `key`.
        """
        pass

    @abstractmethod
    async def save(self, key: str, value: str) -> None:
        """
        Durably replace the blob stored under `key`.

        Raises:
            StorageError: If the value could not be written.
        """
        pass
