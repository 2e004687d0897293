from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from typing import Optional
from queryhub.models.records import QueryType, parse_query_type
from queryhub.models.requests import (
    LoginRequest,
    MaintenanceRequest,
    ProtectionCreateRequest,
    ProtectionUpdateRequest,
)
from queryhub.models.responses import (
    MessageResponse,
    ProtectionListResponse,
    ProtectionResponse,
    QueryDetailResponse,
    QueryListResponse,
    QueryRecordView,
    QuerySearchResponse,
    StatsResponse,
)
from queryhub.routers.lookup import internal_error
from queryhub.services.gateway import QueryGateway
from queryhub.utils.auth import check_password, session_token, verify_admin_session
from queryhub.utils.exceptions import (
    AuthenticationError,
    QueryHubException,
    ValidationError,
    create_http_exception,
)
from queryhub.utils.request_context import get_gateway

router = APIRouter(prefix="/v1/admin", tags=["admin"])
protected_router = APIRouter(dependencies=[Depends(verify_admin_session)])


def _query_type(value: str) -> QueryType:
    try:
        return parse_query_type(value)
    except ValueError as e:
        raise create_http_exception(ValidationError(str(e)))


@router.post("/login", response_model=MessageResponse)
async def login(body: LoginRequest, request: Request, response: Response):
    """Exchange the shared admin password for a session cookie"""
    config = request.app.state.settings
    if not check_password(body.password, config.admin_password):
        raise create_http_exception(AuthenticationError("Invalid password"))

    response.set_cookie(
        key=config.session_cookie_name,
        value=session_token(config.admin_password),
        max_age=config.session_max_age_seconds,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return MessageResponse(success=True, message="Login successful")


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response):
    response.delete_cookie(key=request.app.state.settings.session_cookie_name, path="/")
    return MessageResponse(success=True, message="Logout successful")


@protected_router.get("/live")
async def live_snapshot(gateway: QueryGateway = Depends(get_gateway)):
    """
    Polling snapshot for the dashboard: counters, latest queries and endpoint switches.
    Clients poll about once a second; transient states between polls are not replayed.
    """
    return {
        "stats": gateway.stats.snapshot(),
        "endpointStatus": gateway.endpoints.snapshot(),
        "activeRequests": gateway.active_requests,
    }


@protected_router.get("/history")
async def query_history(
        limit: int = Query(100, ge=1, le=1000),
        gateway: QueryGateway = Depends(get_gateway)
):
    return gateway.stats.recent(limit)


@protected_router.get("/endpoints")
async def endpoint_status(gateway: QueryGateway = Depends(get_gateway)):
    return gateway.endpoints.snapshot()


@protected_router.post("/endpoints/{query_type}/maintenance")
async def set_maintenance(
        query_type: str,
        body: Optional[MaintenanceRequest] = None,
        gateway: QueryGateway = Depends(get_gateway)
):
    """Set or toggle maintenance mode for one query type"""
    resolved = _query_type(query_type)
    status = gateway.endpoints.set_maintenance(resolved, body.maintenance if body else None)
    return {"success": True, "type": resolved.value, "status": status}


# Stored queries

@protected_router.get("/database", response_model=QueryListResponse)
async def list_queries(
        type: str = Query(..., description="identity, fullName or phoneNumber"),
        limit: int = Query(100, ge=1, le=1000),
        gateway: QueryGateway = Depends(get_gateway)
):
    try:
        page = await gateway.store.list(_query_type(type), limit)
        return QueryListResponse(
            success=True,
            type=page.type,
            total=page.total,
            data=[QueryRecordView.from_record(record) for record in page.data]
        )
    except QueryHubException as e:
        raise create_http_exception(e)


@protected_router.get("/database/stats", response_model=StatsResponse)
async def database_stats(gateway: QueryGateway = Depends(get_gateway)):
    return StatsResponse(success=True, stats=await gateway.store.stats())


@protected_router.get("/database/search", response_model=QuerySearchResponse)
async def search_queries(
        type: str = Query(...),
        term: str = Query(..., min_length=1),
        gateway: QueryGateway = Depends(get_gateway)
):
    try:
        query_type = _query_type(type)
        records = await gateway.store.search(query_type, term)
        return QuerySearchResponse(
            success=True,
            type=query_type,
            search_term=term,
            total_results=len(records),
            data=[QueryRecordView.from_record(record) for record in records]
        )
    except QueryHubException as e:
        raise create_http_exception(e)


@protected_router.get("/database/{query_id}", response_model=QueryDetailResponse)
async def get_query(query_id: str, gateway: QueryGateway = Depends(get_gateway)):
    try:
        record = await gateway.store.get_by_id(query_id)
        return QueryDetailResponse(success=True, data=QueryRecordView.from_record(record))
    except QueryHubException as e:
        raise create_http_exception(e)


@protected_router.delete("/database/{query_id}", response_model=MessageResponse)
async def delete_query(query_id: str, gateway: QueryGateway = Depends(get_gateway)):
    try:
        await gateway.store.delete(query_id)
        return MessageResponse(success=True, message="Query deleted successfully")
    except QueryHubException as e:
        raise create_http_exception(e)
    except Exception as e:
        raise internal_error(e)


@protected_router.delete("/database", response_model=MessageResponse)
async def clear_queries(
        type: str = Query(..., description="A query type or 'all'"),
        gateway: QueryGateway = Depends(get_gateway)
):
    """Empty one partition (and its index), or every partition and the whole index"""
    try:
        if type == "all":
            await gateway.store.clear("all")
            return MessageResponse(success=True, message="All databases cleared")

        query_type = _query_type(type)
        await gateway.store.clear(query_type)
        return MessageResponse(success=True, message=f"{query_type.value} database cleared successfully")
    except QueryHubException as e:
        raise create_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(e)


# Protected users

@protected_router.get("/protected", response_model=ProtectionListResponse)
async def list_protected(
        search: Optional[str] = Query(None),
        gateway: QueryGateway = Depends(get_gateway)
):
    users = await gateway.protection.search(search)
    return ProtectionListResponse(success=True, total=len(users), users=users)


@protected_router.get("/protected/stats", response_model=StatsResponse)
async def protected_stats(gateway: QueryGateway = Depends(get_gateway)):
    return StatsResponse(success=True, stats=await gateway.protection.stats())


@protected_router.post("/protected", response_model=ProtectionResponse)
async def add_protected(body: ProtectionCreateRequest, gateway: QueryGateway = Depends(get_gateway)):
    try:
        user = await gateway.protection.add(body.type, body.value, body.reason or "", "admin")
        return ProtectionResponse(success=True, user=user)
    except QueryHubException as e:
        raise create_http_exception(e)


@protected_router.put("/protected/{entry_id}", response_model=ProtectionResponse)
async def update_protected(
        entry_id: str,
        body: ProtectionUpdateRequest,
        gateway: QueryGateway = Depends(get_gateway)
):
    try:
        user = await gateway.protection.update(entry_id, reason=body.reason, value=body.value)
        return ProtectionResponse(success=True, user=user)
    except QueryHubException as e:
        raise create_http_exception(e)


@protected_router.delete("/protected/{entry_id}", response_model=ProtectionResponse)
async def delete_protected(entry_id: str, gateway: QueryGateway = Depends(get_gateway)):
    try:
        user = await gateway.protection.delete(entry_id)
        return ProtectionResponse(success=True, user=user)
    except QueryHubException as e:
        raise create_http_exception(e)


router.include_router(protected_router)
