from fastapi import Request
from queryhub.models.records import RequestInfo
from queryhub.services.gateway import QueryGateway


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        host = request.client.host
        return host[len("::ffff:"):] if host.startswith("::ffff:") else host
    return "Unknown"


def build_request_info(request: Request) -> RequestInfo:
    """Capture caller metadata stored alongside every query record"""
    return RequestInfo(
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent") or "Unknown",
        origin=request.headers.get("origin") or request.headers.get("referer") or "Unknown",
        method=request.method,
        path=request.url.path,
    )


def get_gateway(request: Request) -> QueryGateway:
    return request.app.state.gateway
