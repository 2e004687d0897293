import logging
import os
import secrets
import string
import time
from typing import Any, Dict, List, Optional, Union
from queryhub.config import Settings, settings as default_settings
from queryhub.models.records import QueryPage, QueryRecord, QueryType, RequestInfo
from queryhub.services.duplicate_index import DuplicateIndex, utc_now
from queryhub.services.json_store import BoundedLog
from queryhub.utils.exceptions import NotFoundError, ValidationError
from queryhub.utils.normalize import display_parameter

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_query_id(query_type: QueryType) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{QueryType(query_type).value}-{int(time.time() * 1000)}-{suffix}"


def type_from_query_id(query_id: str) -> Optional[QueryType]:
    prefix = query_id.split("-", 1)[0]
    try:
        return QueryType(prefix)
    except ValueError:
        return None


class QueryStore:
    """Per-type bounded logs of query outcomes, most recent first"""

    def __init__(self, index: DuplicateIndex, config: Optional[Settings] = None):
        config = config or default_settings
        self.index = index
        self.retention_limit = config.retention_limit
        self.partitions: Dict[QueryType, BoundedLog] = {
            query_type: BoundedLog(
                os.path.join(config.data_dir, config.query_files[query_type.value]),
                config.retention_limit,
            )
            for query_type in QueryType
        }
        logger.info("QueryStore initialized")

    async def initialize(self) -> None:
        for log in self.partitions.values():
            await log.document.ensure_exists()
        await self.index.initialize()

    def _partition(self, query_type: QueryType) -> BoundedLog:
        try:
            return self.partitions[QueryType(query_type)]
        except (KeyError, ValueError):
            raise ValidationError(f"Invalid query type: {query_type}")

    async def append(
        self,
        query_type: QueryType,
        parameter: str,
        *,
        success: bool,
        result: Any = None,
        error: Optional[str] = None,
        request_info: Optional[RequestInfo] = None,
    ) -> str:
        """Store one outcome at the head of its partition and return the new id"""
        query_type = QueryType(query_type)
        record = QueryRecord(
            query_id=new_query_id(query_type),
            type=query_type,
            parameter=display_parameter(query_type, parameter),
            original_parameter=parameter,
            result=result if success else None,
            error=None if success else (error or "Unknown error"),
            success=success,
            timestamp=utc_now(),
            request_info=request_info or RequestInfo(),
        )

        dropped = await self._partition(query_type).prepend(record.to_document())
        if dropped:
            logger.debug(f"Trimmed {dropped} oldest {query_type.value} records")

        logger.info(f"Saved {query_type.value} query: {record.query_id}")
        return record.query_id

    async def list(self, query_type: QueryType, limit: int = 100) -> QueryPage:
        total, items = await self._partition(query_type).page(limit)
        return QueryPage(
            type=QueryType(query_type),
            total=total,
            data=[QueryRecord.model_validate(item) for item in items],
        )

    async def get_by_id(self, query_id: str) -> QueryRecord:
        query_type = type_from_query_id(query_id)
        if query_type is None:
            raise NotFoundError("Query", query_id)

        item = await self._partition(query_type).find(query_id)
        if item is None:
            raise NotFoundError("Query", query_id)
        return QueryRecord.model_validate(item)

    async def search(self, query_type: QueryType, term: str) -> List[QueryRecord]:
        needle = (term or "").lower()

        def _matches(item: Dict) -> bool:
            parameter = str(item.get("parameter") or "").lower()
            original = str(item.get("originalParameter") or "").lower()
            return needle in parameter or needle in original

        items = await self._partition(query_type).filter(_matches)
        return [QueryRecord.model_validate(item) for item in items]

    async def delete(self, query_id: str) -> QueryRecord:
        query_type = type_from_query_id(query_id)
        if query_type is None:
            raise NotFoundError("Query", query_id)

        removed = await self._partition(query_type).remove(query_id)
        if removed is None:
            logger.warning(f"Query {query_id} not found for deletion")
            raise NotFoundError("Query", query_id)

        logger.info(f"Deleted query: {query_id}")
        return QueryRecord.model_validate(removed)

    async def clear(self, target: Union[QueryType, str]) -> None:
        """Empty one partition and its index, or everything for ``"all"``"""
        if target == "all":
            for log in self.partitions.values():
                await log.clear()
            await self.index.clear()
            logger.info("Cleared all query partitions")
            return

        query_type = self._parse_target(target)
        await self._partition(query_type).clear()
        await self.index.clear(query_type)
        logger.info(f"Cleared {query_type.value} query partition")

    @staticmethod
    def _parse_target(target: Union[QueryType, str]) -> QueryType:
        try:
            return QueryType(target)
        except ValueError:
            raise ValidationError(f"Invalid database type: {target}")

    async def count(self, query_type: QueryType) -> int:
        return await self._partition(query_type).count()

    async def stats(self) -> Dict:
        indexed = await self.index.counts()
        per_type = {}
        total = 0
        for query_type, log in self.partitions.items():
            count = await log.count()
            total += count
            per_type[query_type.value] = {
                "totalQueries": count,
                "indexedQueries": indexed.get(query_type.value, 0),
            }
        return {
            **per_type,
            "total": total,
            "lastUpdated": await self.index.last_updated(),
        }

    async def health_check(self) -> bool:
        for log in self.partitions.values():
            if not await log.document.readable():
                return False
        return await self.index.document.readable()
