"""
Folder-per-person photo store on the local filesystem.

Layout:

    <photos_dir>/<whitelist_folder_name>/<visitor name>/<photo files>
    <photos_dir>/<intruder_folder_name>/intruder<N>/<photo files>

All operations are async; the actual filesystem calls run in a worker
thread so the event loop never blocks on disk I/O. Any OSError is
re-raised as StorageError.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from enum import Enum
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp"}


class CollisionPolicy(str, Enum):
    OPEN_IF_EXISTS = "open_if_exists"
    FAIL_IF_EXISTS = "fail_if_exists"
    REPLACE_EXISTING = "replace_existing"


class PhotoStore:
    """
    Thin async wrapper around pathlib.

    Listings are sorted by name so that "the first photo of a folder" and
    the order of visitors are the same on every run.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir).expanduser()

    async def open_root(self, name: str) -> Path:
        """Open a collection root folder under base_dir, creating it if missing."""
        return await self.create_folder(self.base_dir, name, CollisionPolicy.OPEN_IF_EXISTS)

    async def list_subfolders(self, root: Path) -> list[Path]:
        return await self._run(self._list_subfolders, root)

    async def create_folder(self, root: Path, name: str, collision: CollisionPolicy) -> Path:
        return await self._run(self._create_folder, root, name, collision)

    async def list_files(self, folder: Path) -> list[Path]:
        return await self._run(self._list_files, folder)

    async def move_file(self, file: Path, dest_folder: Path) -> Path:
        return await self._run(self._move_file, file, dest_folder)

    # ------------------------------------------------------------------
    # Blocking implementations (run in a worker thread)
    # ------------------------------------------------------------------

    @staticmethod
    async def _run(func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"{func.__name__.lstrip('_')} failed: {e}") from e

    @staticmethod
    def _list_subfolders(root: Path) -> list[Path]:
        return sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name)

    @staticmethod
    def _create_folder(root: Path, name: str, collision: CollisionPolicy) -> Path:
        folder = root / name

        if folder.exists():
            if collision is CollisionPolicy.FAIL_IF_EXISTS:
                raise StorageError(f"Folder already exists: {folder}")
            if collision is CollisionPolicy.REPLACE_EXISTING:
                logger.warning("Replacing existing folder %s", folder)
                shutil.rmtree(folder)
            else:
                return folder

        folder.mkdir(parents=True)
        return folder

    @staticmethod
    def _list_files(folder: Path) -> list[Path]:
        return sorted(
            (p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS),
            key=lambda p: p.name,
        )

    @staticmethod
    def _move_file(file: Path, dest_folder: Path) -> Path:
        target = dest_folder / file.name
        if target.exists():
            raise StorageError(f"File already exists: {target}")
        # shutil.move handles moves across filesystems (capture_dir may be on tmpfs)
        return Path(shutil.move(str(file), str(target)))
