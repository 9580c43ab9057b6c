"""
Service Factory
Centralizes the logic for selecting the storage backend and building the service.
"""

from ankivocab.application.config import AppConfig
from ankivocab.application.data_service import AnkiDataService
from ankivocab.domain.ports import KeyValueStorage
from ankivocab.infrastructure.storage.json_storage import JsonFileStorage, MemoryStorage


def get_storage(config: AppConfig) -> KeyValueStorage:
    """
    Returns the KeyValueStorage implementation selected by config.
    """
    if config.storage_backend == "memory":
        return MemoryStorage()
    return JsonFileStorage(data_dir=config.data_dir)


async def get_data_service(config: AppConfig) -> AnkiDataService:
    """
    Returns an AnkiDataService with the persisted store already loaded.
    """
    return await AnkiDataService.create(get_storage(config), storage_key=config.storage_key)
