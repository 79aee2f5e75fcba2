from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .photo_store import CollisionPolicy, PhotoStore

logger = logging.getLogger(__name__)

INTRUDER_FOLDER_PREFIX = "intruder"


class Collection(str, Enum):
    WHITELIST = "whitelist"
    INTRUDERS = "intruders"


class Visitor(BaseModel):
    """
    One known person (whitelist) or one recorded intruder.

    `name` is the storage folder's name; `storage_location` points at that
    folder but the photo store owns it.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    reference_image: Path
    storage_location: Path


class DirectorySnapshot(BaseModel):
    whitelist: list[Visitor]
    intruders: list[Visitor]


class VisitorDirectory:
    """
    In-memory cache of the whitelist and intruder collections.

    The photo store is the source of truth; DirectorySync refreshes this
    cache explicitly. The directory is also the only writer of new
    intruder records.
    """

    def __init__(self, store: PhotoStore, whitelist_folder_name: str, intruder_folder_name: str):
        self.store = store
        self.root_names = {
            Collection.WHITELIST: whitelist_folder_name,
            Collection.INTRUDERS: intruder_folder_name,
        }
        self._collections: dict[Collection, tuple[Visitor, ...]] = {
            Collection.WHITELIST: (),
            Collection.INTRUDERS: (),
        }

    @property
    def whitelist(self) -> tuple[Visitor, ...]:
        return self._collections[Collection.WHITELIST]

    @property
    def intruders(self) -> tuple[Visitor, ...]:
        return self._collections[Collection.INTRUDERS]

    def get(self, collection: Collection) -> tuple[Visitor, ...]:
        return self._collections[collection]

    def replace(self, collection: Collection, visitors: Iterable[Visitor]) -> None:
        """Swap in a freshly listed collection in one step."""
        self._collections[collection] = tuple(visitors)

    def snapshot(self) -> DirectorySnapshot:
        return DirectorySnapshot(whitelist=list(self.whitelist), intruders=list(self.intruders))

    async def open_root(self, collection: Collection) -> Path:
        return await self.store.open_root(self.root_names[collection])

    async def record_intruder(self, image: Path) -> Visitor:
        """
        Store a captured photo as a new intruder record.

        The folder is named after the number of intruder folders that
        already exist (intruder0, intruder1, ...). If that name is taken
        (an earlier record was deleted, leaving a gap) the next free index
        above the count is used; existing records are never overwritten.
        There is no reservation step between counting and creating, so
        callers must not run two of these at once; the entry coordinator's
        single-flight guard is what makes that true.

        The photo is moved, not copied.
        """
        root = await self.open_root(Collection.INTRUDERS)
        existing = await self.store.list_subfolders(root)
        taken = {folder.name for folder in existing}

        index = len(existing)
        while f"{INTRUDER_FOLDER_PREFIX}{index}" in taken:
            index += 1

        name = f"{INTRUDER_FOLDER_PREFIX}{index}"
        folder = await self.store.create_folder(root, name, CollisionPolicy.FAIL_IF_EXISTS)
        stored = await self.store.move_file(image, folder)

        logger.info("Recorded intruder %s (%s)", name, stored)
        return Visitor(name=name, reference_image=stored, storage_location=folder)
