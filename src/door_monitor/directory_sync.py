"""
Rebuilds the in-memory VisitorDirectory from the photo store.

Each collection has its own RefreshGuard: a refresh that arrives while the
same collection is already refreshing returns immediately without touching
storage (it is not queued). Whitelist and intruder refreshes are independent
of each other and of the entry coordinator.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from .errors import StorageError
from .visitor import Collection, Visitor, VisitorDirectory

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshGuard:
    """
    Two-state transition table: IDLE -> REFRESHING on try_begin(), back on finish().
    """

    def __init__(self) -> None:
        self.state = RefreshState.IDLE

    def try_begin(self) -> bool:
        if self.state is RefreshState.REFRESHING:
            return False
        self.state = RefreshState.REFRESHING
        return True

    def finish(self) -> None:
        self.state = RefreshState.IDLE


class DirectorySync:
    def __init__(self, directory: VisitorDirectory):
        self.directory = directory
        self._guards = {collection: RefreshGuard() for collection in Collection}
        self._listeners: list[Callable[[Collection], None]] = []

    def add_listener(self, callback: Callable[[Collection], None]) -> None:
        """Register a callback invoked after each successful refresh."""
        self._listeners.append(callback)

    def is_refreshing(self, collection: Collection) -> bool:
        return self._guards[collection].state is RefreshState.REFRESHING

    async def refresh_whitelist(self) -> bool:
        return await self._refresh(Collection.WHITELIST)

    async def refresh_intruders(self) -> bool:
        return await self._refresh(Collection.INTRUDERS)

    async def refresh_all(self) -> None:
        await asyncio.gather(self.refresh_whitelist(), self.refresh_intruders())

    async def _refresh(self, collection: Collection) -> bool:
        """
        Returns False if a refresh of the same collection was already in
        flight, True otherwise (including a refresh that failed on storage).
        """
        guard = self._guards[collection]
        if not guard.try_begin():
            logger.debug("Refresh of %s already in progress; skipping", collection.value)
            return False

        try:
            visitors = await self._load_collection(collection)
        except StorageError as e:
            # Keep the previous snapshot; observers simply see no update.
            logger.error("Failed to refresh %s: %s", collection.value, e)
            return True
        finally:
            guard.finish()

        self.directory.replace(collection, visitors)
        logger.info("Refreshed %s: %d visitor(s)", collection.value, len(visitors))
        self._notify(collection)
        return True

    async def _load_collection(self, collection: Collection) -> list[Visitor]:
        store = self.directory.store
        root = await self.directory.open_root(collection)

        visitors: list[Visitor] = []
        for folder in await store.list_subfolders(root):
            photos = await store.list_files(folder)
            if not photos:
                logger.warning("Skipping %s: folder has no photos", folder)
                continue

            visitors.append(Visitor(name=folder.name, reference_image=photos[0], storage_location=folder))

        return visitors

    def _notify(self, collection: Collection) -> None:
        for callback in list(self._listeners):
            try:
                callback(collection)
            except Exception:
                logger.exception("Directory listener failed for %s", collection.value)
