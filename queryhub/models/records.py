# queryhub/models/records.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional


class QueryType(str, Enum):
    IDENTITY = "identity"
    FULL_NAME = "fullName"
    PHONE_NUMBER = "phoneNumber"

    @property
    def is_numeric(self) -> bool:
        return self in (QueryType.IDENTITY, QueryType.PHONE_NUMBER)


# Query parameter values accepted by the legacy consultas endpoint
LEGACY_TYPE_ALIASES = {
    "cpf": QueryType.IDENTITY,
    "nome": QueryType.FULL_NAME,
    "numero": QueryType.PHONE_NUMBER,
}


def parse_query_type(value: str) -> QueryType:
    """Resolve a wire value or legacy alias to a QueryType, raising ValueError otherwise"""
    if value in LEGACY_TYPE_ALIASES:
        return LEGACY_TYPE_ALIASES[value]
    for query_type in QueryType:
        if query_type.value.lower() == value.lower():
            return query_type
    raise ValueError(f"Unknown query type: {value}")


class StoredModel(BaseModel):
    """Persisted documents use camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=False)


class RequestInfo(StoredModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    ip: str = Field("Unknown", description="Client IP address")
    user_agent: str = Field("Unknown", description="Client user agent")
    origin: str = Field("Unknown", description="Origin or referer header")
    method: Optional[str] = Field(None, description="HTTP method")
    path: Optional[str] = Field(None, description="Request path")


class QueryRecord(StoredModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    query_id: str = Field(..., description="Type-prefixed, time-ordered identifier")
    type: QueryType = Field(..., description="Query type partition")
    parameter: str = Field(..., description="Display form, masked for identity numbers")
    original_parameter: str = Field(..., description="Raw form used for matching")
    result: Optional[Any] = Field(None, description="Upstream payload, null on failure")
    error: Optional[str] = Field(None, description="Failure message, null on success")
    success: bool = Field(..., description="Whether the upstream lookup succeeded")
    timestamp: str = Field(..., description="Creation instant (UTC, ISO 8601)")
    request_info: RequestInfo = Field(default_factory=RequestInfo, description="Caller metadata")


class IndexEntry(StoredModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    normalized_parameter: str
    query_id: str
    timestamp: str


class ProtectionEntry(StoredModel):
    id: str = Field(..., description="Protection identifier")
    type: QueryType = Field(..., description="Query type the protection applies to")
    value: str = Field(..., description="Normalized protected value")
    original_value: str = Field(..., description="Value as entered by the admin")
    reason: str = Field("", description="Why the identity is protected")
    added_by: str = Field("admin", description="Who added the protection")
    created_at: str = Field(..., description="Creation instant")
    updated_at: Optional[str] = Field(None, description="Last update instant")


class QueryPage(BaseModel):
    type: QueryType
    total: int
    data: List[QueryRecord]


class OutcomeStatus(str, Enum):
    OK = "ok"
    DUPLICATE = "duplicate"
    BLOCKED = "blocked"
    MAINTENANCE = "maintenance"
    UPSTREAM_ERROR = "upstream_error"
    BUSY = "busy"


class QueryOutcome(BaseModel):
    status: OutcomeStatus = Field(..., description="How the lookup ended")
    type: QueryType = Field(..., description="Query type")
    success: bool = Field(..., description="True when fresh upstream data is returned")
    data: Optional[Any] = Field(None, description="Upstream payload")
    error: Optional[str] = Field(None, description="Failure message")
    saved: bool = Field(False, description="Whether a record was persisted")
    query_id: Optional[str] = Field(None, description="Id of the persisted record")
