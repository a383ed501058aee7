"""
LectureSnap Backend - Object Storage Service
==============================================

What:  Stores original page images and hands back durable reference URLs.
How:   Writes bytes under a storage root with async file I/O; URLs are
       `<url_prefix>/<object path>` and are served by GET /api/files/{path}.
Who:   LectureService (upload before generation, cleanup after failure or
       delete) and the file-serving route.

Object path convention:
    lectures/{userId}/{timestampMs}_{randomSuffix}_{originalFilename}

    storage/
    └── lectures/
        └── user-123/
            ├── 1718000000000_1a2b3c4d_board.jpg
            └── 1718000000420_5e6f7a8b_board-2.jpg

Error classification:
    - storage root missing / not a directory → StorageBucketError
    - permission denied                      → StoragePermissionError
    - any other OS error                     → StorageError
"""

import logging
import os
import re
import time
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from app.exceptions import (
    NotFoundError,
    StorageBucketError,
    StorageError,
    StoragePermissionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    """Keeps the basename only and replaces anything outside [A-Za-z0-9._-]."""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "page.jpg"


class StorageService:
    """
    Local-filesystem object store.

    Args:
        storage_root: Directory holding every stored object. Must exist;
                      the app lifespan creates it on startup.
        url_prefix:   Public URL prefix the file-serving route is mounted at.
    """

    def __init__(self, storage_root: str, url_prefix: str = "/api/files"):
        self.storage_root = Path(storage_root).resolve()
        self.url_prefix = url_prefix.rstrip("/")

    def build_path(self, user_id: str, filename: str) -> str:
        """Object path for one page: lectures/{user}/{ms}_{suffix}_{name}."""
        timestamp = int(time.time() * 1000)
        suffix = uuid.uuid4().hex[:8]
        return f"lectures/{user_id}/{timestamp}_{suffix}_{sanitize_filename(filename)}"

    def url_for(self, path: str) -> str:
        return f"{self.url_prefix}/{path}"

    def path_from_url(self, url: str) -> Optional[str]:
        """Inverse of url_for; None for URLs this store did not issue."""
        prefix = f"{self.url_prefix}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def resolve(self, path: str) -> Path:
        """
        Absolute filesystem path for an object path, confined to the root.

        Raises:
            ValidationError: the path escapes the storage root
        """
        full_path = (self.storage_root / path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        return full_path

    async def store(self, content: bytes, path: str) -> str:
        """
        Write one object and return its URL.

        Raises:
            StorageBucketError:     storage root missing or not a directory
            StoragePermissionError: the process may not write there
            StorageError:           any other I/O failure
        """
        if not self.storage_root.is_dir():
            logger.error("Storage root %s does not exist or is not a directory", self.storage_root)
            raise StorageBucketError(context={"storage_root": str(self.storage_root)})

        absolute_path = self.resolve(path)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except PermissionError as e:
            logger.error("Permission denied writing %s: %s", path, str(e))
            raise StoragePermissionError(context={"path": path, "os_error": str(e)})
        except (FileNotFoundError, NotADirectoryError) as e:
            logger.error("Storage location for %s is misconfigured: %s", path, str(e))
            raise StorageBucketError(context={"path": path, "os_error": str(e)})
        except OSError as e:
            logger.error("Failed to store %s: %s", path, str(e))
            raise StorageError(context={"path": path, "os_error": str(e)})

        logger.info("Stored %s (%d bytes)", path, len(content))
        return self.url_for(path)

    def open_for_serving(self, path: str) -> Path:
        full_path = self.resolve(path)
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=path)
        return full_path

    async def remove(self, path: str) -> None:
        """
        Best-effort delete used for cleanup after a failed lecture or on
        lecture deletion. Missing files and OS errors are logged, not raised.
        """
        try:
            full_path = self.resolve(path)
            if full_path.exists():
                os.remove(full_path)
                logger.info("Removed stored object: %s", path)
            else:
                logger.debug("Cleanup: object already gone: %s", path)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to remove stored object %s: %s", path, str(e))

    async def remove_url(self, url: str) -> None:
        path = self.path_from_url(url)
        if path is None:
            logger.warning("Not removing %s: URL was not issued by this store", url)
            return
        await self.remove(path)
