# queryhub/models/requests.py
from pydantic import BaseModel, Field
from typing import Optional
from queryhub.models.records import QueryType


class LoginRequest(BaseModel):
    password: str = Field(..., description="Shared admin password")


class ProtectionCreateRequest(BaseModel):
    type: QueryType = Field(..., description="Query type to protect")
    value: str = Field(..., min_length=1, description="Identity number, name or phone number")
    reason: Optional[str] = Field("", description="Why the identity is protected")


class ProtectionUpdateRequest(BaseModel):
    reason: Optional[str] = Field(None, description="New reason")
    value: Optional[str] = Field(None, min_length=1, description="New protected value")


class MaintenanceRequest(BaseModel):
    maintenance: Optional[bool] = Field(None, description="Desired flag, omitted to toggle")
