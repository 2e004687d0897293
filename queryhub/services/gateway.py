import asyncio
import logging
import time
from typing import Dict, Optional, Tuple
from queryhub.config import Settings, settings as default_settings
from queryhub.models.records import OutcomeStatus, QueryOutcome, QueryType, RequestInfo
from queryhub.services.duplicate_index import DuplicateIndex
from queryhub.services.endpoint_status import EndpointStatus
from queryhub.services.protection_service import ProtectionRegistry
from queryhub.services.query_store import QueryStore
from queryhub.services.stats_service import StatsAggregator
from queryhub.services.upstream import NO_DATA_MESSAGE, UpstreamClient, UpstreamResult
from queryhub.utils.exceptions import (
    MaintenanceError,
    StorageError,
    TooManyRequestsError,
    ValidationError,
)
from queryhub.utils.normalize import mask_value

logger = logging.getLogger(__name__)


class QueryGateway:
    """Main service orchestrating a single lookup.

    maintenance check -> protection check -> upstream call -> protection
    re-check -> stats -> duplicate check -> persistence -> index update.
    Only successful results are deduplicated; failures are always stored
    and never indexed, so a failing parameter can be retried without limit.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        upstream: Optional[UpstreamClient] = None,
        protection: Optional[ProtectionRegistry] = None,
        index: Optional[DuplicateIndex] = None,
        store: Optional[QueryStore] = None,
        stats: Optional[StatsAggregator] = None,
        endpoints: Optional[EndpointStatus] = None,
    ):
        self.config = config or default_settings
        self.upstream = upstream or UpstreamClient(self.config)
        self.protection = protection or ProtectionRegistry(self.config)
        self.index = index or DuplicateIndex(self.config)
        self.store = store or QueryStore(self.index, self.config)
        self.stats = stats or StatsAggregator(self.config)
        self.endpoints = endpoints or EndpointStatus()

        self.max_concurrent_requests = self.config.max_concurrent_requests
        self.active_requests = 0
        self._write_locks: Dict[QueryType, asyncio.Lock] = {
            query_type: asyncio.Lock() for query_type in QueryType
        }
        logger.info("QueryGateway initialized")

    async def initialize(self) -> None:
        await self.store.initialize()
        await self.protection.initialize()
        logger.info("✓ Storage documents ready")

    async def close(self) -> None:
        await self.upstream.close()

    async def run_query(
        self, query_type: QueryType, parameter: Optional[str], request_info: Optional[RequestInfo] = None
    ) -> QueryOutcome:
        query_type = QueryType(query_type)
        if parameter is None or not str(parameter).strip():
            raise ValidationError(f"Invalid or empty {query_type.value} parameter")
        parameter = str(parameter).strip()

        if self.active_requests >= self.max_concurrent_requests:
            logger.warning(f"Rejecting {query_type.value} query: {self.active_requests} requests in flight")
            return QueryOutcome(
                status=OutcomeStatus.BUSY,
                type=query_type,
                success=False,
                error=TooManyRequestsError().message,
            )

        self.active_requests += 1
        try:
            return await self._run(query_type, parameter, request_info or RequestInfo())
        finally:
            self.active_requests -= 1

    async def _run(self, query_type: QueryType, parameter: str, request_info: RequestInfo) -> QueryOutcome:
        if not self.endpoints.is_available(query_type):
            logger.info(f"{query_type.value} query skipped: endpoint under maintenance")
            self._count_rejected(query_type, parameter, request_info)
            return QueryOutcome(
                status=OutcomeStatus.MAINTENANCE,
                type=query_type,
                success=False,
                error=MaintenanceError(query_type.value).message,
            )

        if await self.protection.is_protected(query_type, parameter):
            logger.warning(f"[Protected] {query_type.value} blocked: {mask_value(query_type, parameter)}")
            self._count_rejected(query_type, parameter, request_info)
            await self._mask_latency()
            return self._blocked(query_type)

        result = await self._call_upstream(query_type, parameter)

        # Protection may have been added while the upstream call was in flight
        if await self.protection.is_protected(query_type, parameter):
            logger.warning(
                f"[Protected] {query_type.value} protected during lookup, result discarded: "
                f"{mask_value(query_type, parameter)}"
            )
            self._count_rejected(query_type, parameter, request_info)
            return self._blocked(query_type)

        self.stats.record(query_type, parameter, result.success, request_info)

        if not result.success:
            query_id = await self._persist(query_type, parameter, result, request_info)
            return QueryOutcome(
                status=OutcomeStatus.UPSTREAM_ERROR,
                type=query_type,
                success=False,
                error=result.error,
                saved=query_id is not None,
                query_id=query_id,
            )

        saved, query_id = await self._persist_unique(query_type, parameter, result, request_info)
        return QueryOutcome(
            status=OutcomeStatus.OK if saved else OutcomeStatus.DUPLICATE,
            type=query_type,
            success=True,
            data=result.data,
            saved=saved,
            query_id=query_id,
        )

    async def _call_upstream(self, query_type: QueryType, parameter: str) -> UpstreamResult:
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(
                self.upstream.lookup(query_type, parameter),
                timeout=self.config.upstream_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Upstream {query_type.value} lookup timed out after {self.config.upstream_timeout_seconds}s"
            )
            result = UpstreamResult(success=False, error="Upstream request timed out")
        except Exception as e:
            logger.error(f"Upstream {query_type.value} lookup raised: {str(e)}")
            result = UpstreamResult(success=False, error=f"Upstream lookup failed: {str(e)}")

        self.stats.record_latency(time.monotonic() - started)
        return result

    async def _persist(
        self, query_type: QueryType, parameter: str, result: UpstreamResult, request_info: RequestInfo
    ) -> Optional[str]:
        try:
            return await self.store.append(
                query_type,
                parameter,
                success=result.success,
                result=result.data,
                error=result.error,
                request_info=request_info,
            )
        except StorageError as e:
            logger.error(f"Failed to persist {query_type.value} query: {e.message}")
            return None

    async def _persist_unique(
        self, query_type: QueryType, parameter: str, result: UpstreamResult, request_info: RequestInfo
    ) -> Tuple[bool, Optional[str]]:
        async with self._write_locks[query_type]:
            if await self.index.exists(query_type, parameter):
                logger.info(f"Duplicate detected for {query_type.value}: {mask_value(query_type, parameter)}")
                return False, None

            query_id = await self._persist(query_type, parameter, result, request_info)
            if query_id is None:
                return False, None

            try:
                await self.index.record(query_type, parameter, query_id)
            except StorageError as e:
                logger.error(f"Stored {query_id} but failed to index it: {e.message}")
            return True, query_id

    @staticmethod
    def _blocked(query_type: QueryType) -> QueryOutcome:
        return QueryOutcome(
            status=OutcomeStatus.BLOCKED,
            type=query_type,
            success=False,
            error=NO_DATA_MESSAGE,
        )

    def _count_rejected(self, query_type: QueryType, parameter: str, request_info: RequestInfo) -> None:
        if self.config.count_rejected_queries:
            self.stats.record(query_type, parameter, False, request_info)

    async def _mask_latency(self) -> None:
        if not self.config.mask_rejection_latency:
            return
        delay = min(self.stats.mean_latency(), self.config.rejection_latency_cap_seconds)
        if delay > 0:
            await asyncio.sleep(delay)

