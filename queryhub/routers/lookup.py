from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
from queryhub.models.records import OutcomeStatus, QueryType, parse_query_type
from queryhub.models.responses import QueryResponse
from queryhub.services.gateway import QueryGateway
from queryhub.utils.exceptions import (
    MaintenanceError,
    QueryHubException,
    TooManyRequestsError,
    ValidationError,
    create_http_exception,
)
from queryhub.utils.request_context import build_request_info, get_gateway

router = APIRouter(prefix="/v1/lookup", tags=["lookup"])


def internal_error(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "details": str(e)
            }
        }
    )


def resolve_query_type(value: Optional[str]) -> QueryType:
    if not value:
        raise ValidationError(
            f"Query type not specified. Available types: {', '.join(t.value for t in QueryType)}"
        )
    try:
        return parse_query_type(value)
    except ValueError as e:
        raise ValidationError(str(e))


@router.get("/query", response_model=QueryResponse, response_model_exclude_none=True)
async def run_query(
        request: Request,
        type: Optional[str] = Query(None, description="identity, fullName or phoneNumber"),
        q: Optional[str] = Query(None, description="Value to look up"),
        tipo: Optional[str] = Query(None, description="Legacy alias of type (cpf, nome, numero)"),
        cpf: Optional[str] = Query(None, description="Legacy identity parameter"),
        gateway: QueryGateway = Depends(get_gateway)
):
    """
    Look up an identity number, full name or phone number.
    Protected identities and upstream failures answer with the same shape.
    """
    try:
        query_type = resolve_query_type(type or tipo)
        parameter = q if q is not None else cpf

        outcome = await gateway.run_query(query_type, parameter, build_request_info(request))

        if outcome.status == OutcomeStatus.BUSY:
            raise TooManyRequestsError()
        if outcome.status == OutcomeStatus.MAINTENANCE:
            raise MaintenanceError(query_type.value)

        if outcome.success:
            return QueryResponse(
                success=True,
                type=outcome.type,
                data=outcome.data,
                saved=outcome.saved
            )

        return QueryResponse(success=False, type=outcome.type, error=outcome.error)

    except QueryHubException as e:
        raise create_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(e)


@router.get("/stats")
async def public_stats(gateway: QueryGateway = Depends(get_gateway)):
    """Process-wide query counters; reset when the service restarts"""
    return gateway.stats.public_stats()
