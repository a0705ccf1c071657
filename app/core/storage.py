"""
File store for uploaded attachments (assignments, submissions, materials, avatars).

Services only see the FileStore interface; the local implementation writes under
settings.upload_dir, which main.py serves at settings.files_base_url.
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional, Union
from uuid import UUID

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from app.core.clock import utcnow
from app.core.config import settings
from app.core.enums import FileKind
from app.core.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


def build_object_path(kind: FileKind, owner: Union[UUID, str], filename: Optional[str], *scope: Union[UUID, str]) -> str:
    """
    {kind}/{owner}[/{scope}...]/{timestamp_ms}.{ext}

    e.g. submissions/{student_id}/{assignment_id}/1717171717171.pdf
    """
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower() or "bin"
    stamp = int(utcnow().timestamp() * 1000)
    parts = [kind.value, str(owner), *(str(s) for s in scope), f"{stamp}.{ext}"]
    return "/".join(parts)


class FileStore(ABC):
    @abstractmethod
    async def upload(self, path: str, data: BinaryIO, content_type: Optional[str] = None) -> str:
        """Store data at path and return a URL the client can fetch it from."""


class LocalFileStore(FileStore):
    def __init__(self, root: str, base_url: str) -> None:
        self.root = root
        self.base_url = base_url.rstrip("/")

    def _write(self, path: str, data: BinaryIO) -> None:
        target = os.path.join(self.root, *path.split("/"))
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as buffer:
            shutil.copyfileobj(data, buffer)

    async def upload(self, path: str, data: BinaryIO, content_type: Optional[str] = None) -> str:
        try:
            await run_in_threadpool(self._write, path, data)
        except OSError as e:
            logger.error("Upload to %s failed: %s", path, e)
            raise UpstreamFailure("File upload failed") from e
        logger.info("Stored %s (%s)", path, content_type or "unknown type")
        return f"{self.base_url}/{path}"


async def store_upload(store: FileStore, kind: FileKind, owner: Union[UUID, str], file: UploadFile, *scope) -> str:
    path = build_object_path(kind, owner, file.filename, *scope)
    return await store.upload(path, file.file, file.content_type)


_default_store = LocalFileStore(settings.upload_dir, settings.files_base_url)


def get_file_store() -> FileStore:
    return _default_store
