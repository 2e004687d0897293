import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional
from queryhub.config import Settings, settings as default_settings
from queryhub.models.records import IndexEntry, QueryType
from queryhub.services.json_store import JsonDocument
from queryhub.utils.normalize import mask_value, normalize

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def index_field(query_type: QueryType) -> str:
    return f"{QueryType(query_type).value}Index"


def empty_index() -> Dict:
    document = {index_field(query_type): [] for query_type in QueryType}
    document["lastUpdated"] = utc_now()
    return document


class DuplicateIndex:
    """Per-type list of normalized parameters that already have a stored record.

    ``exists`` and ``record`` are deliberately separate; callers that need
    check-then-record to be atomic hold their own per-type lock around both.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.document = JsonDocument(os.path.join(config.data_dir, config.index_file), empty_index)

    async def initialize(self) -> None:
        await self.document.ensure_exists()

    async def entries(self, query_type: QueryType) -> List[IndexEntry]:
        data = await self.document.read()
        return [IndexEntry.model_validate(entry) for entry in data.get(index_field(query_type), [])]

    async def exists(self, query_type: QueryType, parameter: str) -> bool:
        query_type = QueryType(query_type)
        normalized = normalize(query_type, parameter)
        data = await self.document.read()

        for entry in data.get(index_field(query_type), []):
            stored = entry.get("normalizedParameter", entry.get("parameter", ""))
            if normalize(query_type, stored) == normalized:
                logger.debug(f"Index hit for {query_type.value}: {mask_value(query_type, parameter)}")
                return True
        return False

    async def record(self, query_type: QueryType, parameter: str, query_id: str) -> IndexEntry:
        query_type = QueryType(query_type)
        entry = IndexEntry(
            normalized_parameter=normalize(query_type, parameter),
            query_id=query_id,
            timestamp=utc_now(),
        )

        def _apply(data: Dict):
            data.setdefault(index_field(query_type), []).append(entry.to_document())
            data["lastUpdated"] = utc_now()
            return data, entry

        await self.document.mutate(_apply)
        logger.info(f"Added to {query_type.value} index: {mask_value(query_type, parameter)}")
        return entry

    async def clear(self, query_type: Optional[QueryType] = None) -> None:
        """Empty one partition, or every partition when no type is given"""
        if query_type is None:
            await self.document.write(empty_index())
            logger.info("Cleared every index partition")
            return

        def _apply(data: Dict):
            data[index_field(query_type)] = []
            data["lastUpdated"] = utc_now()
            return data, None

        await self.document.mutate(_apply)
        logger.info(f"Cleared {QueryType(query_type).value} index")

    async def counts(self) -> Dict[str, int]:
        data = await self.document.read()
        return {query_type.value: len(data.get(index_field(query_type), [])) for query_type in QueryType}

    async def last_updated(self) -> Optional[str]:
        data = await self.document.read()
        return data.get("lastUpdated")
