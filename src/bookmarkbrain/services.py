"""Wiring of store, manager, summarizer, and pipeline from configuration."""

import logging
from dataclasses import dataclass

from .config import ConfigManager
from .core.batch_pipeline import BatchSummarizer
from .core.bookmark_manager import BookmarkManager
from .core.bookmark_store import BookmarkStore
from .core.kv_store import FileKeyValueStore
from .core.summarizer import create_summarizer
from .models.config import AppConfig, EnvSettings

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: AppConfig
    store: BookmarkStore
    manager: BookmarkManager
    pipeline: BatchSummarizer


def build_services(
    config_manager: ConfigManager,
    app_config: AppConfig,
    env_settings: EnvSettings,
    recover: bool = False,
) -> Services:
    """Create the service graph for one process.

    Only processes that summarize pass ``recover=True``: bookmarks left
    ``pending`` by an earlier, interrupted process are then moved to ``error``
    when ``recover_interrupted_on_start`` is set. Read-only and import commands
    never touch ``pending`` records, which may belong to a batch running in
    another process.

    Raises:
        StorageError: If the storage directory cannot be created
    """
    storage_path = config_manager.resolve_storage_path(app_config)
    backend = FileKeyValueStore(storage_path, lock_timeout=app_config.storage_lock_timeout)
    store = BookmarkStore(backend, key=app_config.storage_key)

    pipeline = BatchSummarizer(
        store=store,
        summarizer=create_summarizer(app_config, env_settings.google_api_key),
        batch_size=app_config.batch_size,
        batch_delay=app_config.batch_delay_seconds,
    )

    if recover and app_config.recover_interrupted_on_start:
        pipeline.recover_interrupted()

    logger.debug(f"Bookmark store at {storage_path} (key '{app_config.storage_key}')")

    return Services(
        config=app_config,
        store=store,
        manager=BookmarkManager(store),
        pipeline=pipeline,
    )
