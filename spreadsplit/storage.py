"""Contracts for the storage collaborators plus filesystem-backed reference implementations."""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import Protocol

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from spreadsplit.detection.scorer import SplitModel
from spreadsplit.errors import BackendUnavailable
from spreadsplit.utils.log_utils import logger


class ObjectStore(Protocol):
    """Binary object storage returning publicly dereferenceable URLs."""

    async def put(self, path: str, data: bytes, content_type: str) -> str: ...


class ModelRepository(Protocol):
    """Lookup of the active trained scorer, book scope first, then global."""

    async def find_active_model(self, book_id: str | None) -> SplitModel | None: ...


def _safe_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path.lstrip("/"))
    if not relative.parts or ".." in relative.parts:
        raise ValueError(f"Refusing to store object at unsafe path {path!r}")
    return relative


class LocalObjectStore:
    """Write objects below ``root`` and address them as ``base_url`` + path."""

    def __init__(self, root: str | Path, base_url: str | None = None) -> None:
        self.root = Path(root).resolve()
        self.base_url = (base_url or self.root.as_uri()).rstrip("/")

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        relative = _safe_relative(path)
        target = self.root.joinpath(*relative.parts)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "wb") as file_obj:
            await file_obj.write(data)
        logger.debug(f"Stored {len(data)} bytes ({content_type}) at {target}")
        return f"{self.base_url}/{relative.as_posix()}"


class FileModelRepository:
    """Read scorer descriptors from ``<directory>/<book_id>.json`` or ``global.json``."""

    GLOBAL_NAME = "global"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    async def _load(self, name: str) -> SplitModel | None:
        path = self.directory / f"{name}.json"
        if not await aiofiles.os.path.isfile(path):
            return None
        try:
            async with aiofiles.open(path, encoding="utf-8") as file_obj:
                payload = json.loads(await file_obj.read())
            return SplitModel.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise BackendUnavailable(f"Could not load split model {path}: {exc}") from exc

    async def find_active_model(self, book_id: str | None) -> SplitModel | None:
        if book_id:
            _safe_relative(book_id)
            model = await self._load(book_id)
            if model is not None:
                return model
        return await self._load(self.GLOBAL_NAME)


__all__ = ["FileModelRepository", "LocalObjectStore", "ModelRepository", "ObjectStore"]
