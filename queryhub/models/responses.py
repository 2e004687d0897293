# queryhub/models/responses.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from queryhub.models.records import ProtectionEntry, QueryRecord, QueryType, RequestInfo


class BaseResponse(BaseModel):
    success: bool = Field(..., description="Response status")


class QueryResponse(BaseResponse):
    type: QueryType = Field(..., description="Query type")
    data: Optional[Any] = Field(None, description="Upstream payload")
    error: Optional[str] = Field(None, description="Failure message")
    saved: Optional[bool] = Field(None, description="Whether the result was stored (successful lookups only)")


class QueryRecordView(BaseModel):
    """Stored record as shown to admins; the unmasked parameter never leaves the store"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query_id: str
    type: QueryType
    parameter: str
    result: Optional[Any] = None
    error: Optional[str] = None
    success: bool
    timestamp: str
    request_info: RequestInfo

    @classmethod
    def from_record(cls, record: QueryRecord) -> "QueryRecordView":
        return cls.model_validate(record.model_dump(exclude={"original_parameter"}))


class QueryListResponse(BaseResponse):
    type: QueryType
    total: int = Field(..., description="Records in the partition")
    data: List[QueryRecordView]


class QuerySearchResponse(BaseResponse):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: QueryType
    search_term: str
    total_results: int
    data: List[QueryRecordView]


class QueryDetailResponse(BaseResponse):
    data: QueryRecordView


class MessageResponse(BaseResponse):
    message: str = Field(..., description="Success message")


class ProtectionResponse(BaseResponse):
    user: ProtectionEntry


class ProtectionListResponse(BaseResponse):
    total: int
    users: List[ProtectionEntry]


class StatsResponse(BaseResponse):
    stats: Dict[str, Any]


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
