import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional
from queryhub.config import Settings, settings as default_settings
from queryhub.models.records import QueryType, RequestInfo
from queryhub.utils.normalize import display_parameter, mask_value

logger = logging.getLogger(__name__)

_COUNTER_KEYS = {
    QueryType.IDENTITY: "identityQueries",
    QueryType.FULL_NAME: "fullNameQueries",
    QueryType.PHONE_NUMBER: "phoneNumberQueries",
}

_LATENCY_SAMPLES = 50


class StatsAggregator:
    """Process-wide counters and recent activity for polling clients.

    Nothing here is persisted: a restart (or ``reset``) starts again from
    zero counters and an empty history.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.history_size = config.history_size
        self.last_queries_size = config.last_queries_size
        self.reset()

    def reset(self) -> None:
        self.counters: Dict[str, int] = {
            "totalQueries": 0,
            "successfulQueries": 0,
            "failedQueries": 0,
            **{key: 0 for key in _COUNTER_KEYS.values()},
        }
        self.start_time = datetime.now(timezone.utc)
        self._started = time.monotonic()
        self.history: Deque[Dict] = deque(maxlen=self.history_size)
        self._latencies: Deque[float] = deque(maxlen=_LATENCY_SAMPLES)

    def record(
        self,
        query_type: QueryType,
        parameter: str,
        success: bool,
        request_info: Optional[RequestInfo] = None,
    ) -> Dict:
        query_type = QueryType(query_type)
        request_info = request_info or RequestInfo()

        self.counters["totalQueries"] += 1
        self.counters[_COUNTER_KEYS[query_type]] += 1
        if success:
            self.counters["successfulQueries"] += 1
        else:
            self.counters["failedQueries"] += 1

        entry = {
            "type": query_type.value,
            "parameter": display_parameter(query_type, parameter),
            "success": success,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "ip": request_info.ip,
            "userAgent": request_info.user_agent,
            "origin": request_info.origin,
            "endpoint": f"{request_info.path or '/v1/lookup/query'}?type={query_type.value}",
        }
        self.history.appendleft(entry)

        logger.info(
            f"[Query] {query_type.value.upper()} | IP: {entry['ip']} | Success: {success} | "
            f"Parameter: {mask_value(query_type, parameter)}"
        )
        return entry

    def record_latency(self, seconds: float) -> None:
        self._latencies.append(max(0.0, seconds))

    def mean_latency(self) -> float:
        if not self._latencies:
            return 0.0
        return sum(self._latencies) / len(self._latencies)

    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self._started)

    def public_stats(self) -> Dict:
        return {
            **self.counters,
            "startTime": self.start_time.isoformat(),
            "uptime": f"{self.uptime_seconds()}s",
        }

    def recent(self, limit: int = 100) -> List[Dict]:
        return list(self.history)[: max(0, limit)]

    def snapshot(self) -> Dict:
        return {
            **self.public_stats(),
            "lastQueries": self.recent(self.last_queries_size),
        }
