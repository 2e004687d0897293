import asyncio
import copy
import json
import logging
import os
import tempfile
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
from queryhub.utils.exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonDocument:
    """A single JSON file rewritten in full on every mutation.

    Mutations are serialized through one asyncio lock per document; reads
    see the last written snapshot without taking the lock.
    """

    def __init__(self, path: str, default_factory: Callable[[], Any]):
        self.path = path
        self._default_factory = default_factory
        self._lock = asyncio.Lock()

    def _default(self) -> Any:
        return self._default_factory()

    def _read_sync(self) -> Any:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                content = fh.read()
        except FileNotFoundError:
            logger.debug(f"Document {self.path} missing, using empty default")
            return self._default()
        except OSError as e:
            logger.error(f"Failed to read {self.path}, treating as empty: {str(e)}")
            return self._default()

        if not content.strip():
            return self._default()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.path}, treating as empty: {str(e)}")
            return self._default()

        if not isinstance(data, type(self._default())):
            logger.error(
                f"Unexpected {type(data).__name__} document in {self.path}, treating as empty"
            )
            return self._default()
        return data

    def _write_sync(self, data: Any) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {str(e)}")
            raise StorageError(f"Failed to write {os.path.basename(self.path)}: {str(e)}")

    async def read(self) -> Any:
        return await asyncio.to_thread(self._read_sync)

    async def write(self, data: Any) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_sync, data)

    async def mutate(self, fn: Callable[[Any], Tuple[Any, T]]) -> T:
        """Read-modify-write under the document lock.

        ``fn`` receives a private copy of the current document and returns
        ``(new_document, result)``; a ``None`` document skips the write.
        """
        async with self._lock:
            current = await asyncio.to_thread(self._read_sync)
            new_document, result = fn(copy.deepcopy(current))
            if new_document is not None:
                await asyncio.to_thread(self._write_sync, new_document)
            return result

    async def ensure_exists(self) -> bool:
        """Create the file with its default value when missing or blank"""
        async with self._lock:
            def _check() -> bool:
                if os.path.exists(self.path):
                    with open(self.path, "r", encoding="utf-8") as fh:
                        if fh.read().strip():
                            return False
                return True

            try:
                missing = await asyncio.to_thread(_check)
            except OSError as e:
                logger.error(f"Failed to inspect {self.path}: {str(e)}")
                raise StorageError(f"Failed to inspect {os.path.basename(self.path)}: {str(e)}")
            if missing:
                await asyncio.to_thread(self._write_sync, self._default())
                logger.info(f"Initialized document {self.path}")
            return missing

    async def readable(self) -> bool:
        """True when the file exists and parses as the expected JSON shape"""

        def _can_read() -> bool:
            try:
                with open(self.path, "r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, json.JSONDecodeError):
                return False
            return isinstance(data, type(self._default()))

        return await asyncio.to_thread(_can_read)


class BoundedLog:
    """Most-recent-first JSON array capped at ``limit`` entries.

    Shared by every per-partition query log; items are plain dicts and
    ``key`` names the identifier field used by ``find`` and ``remove``.
    """

    def __init__(self, path: str, limit: int, key: str = "queryId"):
        self.document = JsonDocument(path, list)
        self.limit = limit
        self.key = key

    async def prepend(self, item: Dict) -> int:
        """Insert at the head, drop the oldest beyond the cap; returns how many were dropped"""

        def _apply(items: List[Dict]):
            items.insert(0, item)
            dropped = max(0, len(items) - self.limit)
            if dropped:
                items = items[: self.limit]
            return items, dropped

        return await self.document.mutate(_apply)

    async def all(self) -> List[Dict]:
        return await self.document.read()

    async def page(self, limit: int) -> Tuple[int, List[Dict]]:
        items = await self.document.read()
        return len(items), items[: max(0, limit)]

    async def find(self, identifier: str) -> Optional[Dict]:
        for item in await self.document.read():
            if item.get(self.key) == identifier:
                return item
        return None

    async def filter(self, predicate: Callable[[Dict], bool]) -> List[Dict]:
        return [item for item in await self.document.read() if predicate(item)]

    async def remove(self, identifier: str) -> Optional[Dict]:
        """Remove by identifier; returns the removed item or None, leaving the file untouched"""

        def _apply(items: List[Dict]):
            for position, item in enumerate(items):
                if item.get(self.key) == identifier:
                    del items[position]
                    return items, item
            return None, None

        return await self.document.mutate(_apply)

    async def clear(self) -> None:
        await self.document.write([])

    async def count(self) -> int:
        return len(await self.document.read())
