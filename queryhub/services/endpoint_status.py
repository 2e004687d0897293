import logging
from typing import Dict, Optional
from queryhub.models.records import QueryType

logger = logging.getLogger(__name__)


class EndpointStatus:
    """Administrative on/off and maintenance switches per query type"""

    def __init__(self):
        self._status: Dict[QueryType, Dict[str, bool]] = {
            query_type: {"active": True, "maintenance": False} for query_type in QueryType
        }

    def is_available(self, query_type: QueryType) -> bool:
        status = self._status[QueryType(query_type)]
        return status["active"] and not status["maintenance"]

    def set_maintenance(self, query_type: QueryType, maintenance: Optional[bool] = None) -> Dict[str, bool]:
        """Set the maintenance flag, or flip it when ``maintenance`` is None"""
        query_type = QueryType(query_type)
        status = self._status[query_type]
        status["maintenance"] = (not status["maintenance"]) if maintenance is None else maintenance
        logger.info(f"[Admin] Endpoint {query_type.value} maintenance mode: {status['maintenance']}")
        return dict(status)

    def set_active(self, query_type: QueryType, active: bool) -> Dict[str, bool]:
        query_type = QueryType(query_type)
        self._status[query_type]["active"] = active
        logger.info(f"[Admin] Endpoint {query_type.value} active: {active}")
        return dict(self._status[query_type])

    def snapshot(self) -> Dict[str, Dict[str, bool]]:
        return {query_type.value: dict(status) for query_type, status in self._status.items()}
