import hashlib
import hmac
from fastapi import Request
from typing import Optional
from queryhub.config import settings
from queryhub.utils.exceptions import AuthenticationError, create_http_exception

_SESSION_LABEL = b"queryhub-admin-session"


def session_token(password: str) -> str:
    """Cookie value proving the holder knew the admin password"""
    return hmac.new(password.encode("utf-8"), _SESSION_LABEL, hashlib.sha256).hexdigest()


def check_password(candidate: str, password: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), password.encode("utf-8"))


async def verify_admin_session(request: Request) -> str:
    """Verify the admin session cookie"""
    config = getattr(request.app.state, "settings", settings)
    cookie: Optional[str] = request.cookies.get(config.session_cookie_name)
    try:
        if not cookie:
            raise AuthenticationError("Missing admin session")

        if not hmac.compare_digest(cookie, session_token(config.admin_password)):
            raise AuthenticationError("Invalid admin session")

        return cookie

    except AuthenticationError as e:
        raise create_http_exception(e)
