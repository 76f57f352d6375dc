from __future__ import annotations
import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import jwt
from ..observability.logging import get_request_id, request_id_var
from ..config import get_settings
from ..auth.jwt import session_token, verify_jwt

S = get_settings()
log = logging.getLogger("app.request")


def _caller_id(request: Request) -> str:
    # access-log only; authorization happens in the route dependency
    token = session_token(request)
    if token:
        try:
            return str(verify_jwt(token).get("sub") or "anonymous")
        except jwt.PyJWTError:
            pass
    return "anonymous"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = get_request_id(request)
        ctx_token = request_id_var.set(rid)
        start = time.perf_counter()
        fields = {
            "path": request.url.path,
            "method": request.method,
            "user_id": _caller_id(request),
        }
        try:
            try:
                response = await call_next(request)
            except Exception:
                fields["ms"] = int((time.perf_counter() - start) * 1000)
                log.exception("unhandled_error", extra=fields)
                raise

            fields["ms"] = int((time.perf_counter() - start) * 1000)
            fields["status"] = response.status_code
            response.headers[S.REQUEST_ID_HEADER] = rid
            log.info("request", extra=fields)
            return response
        finally:
            request_id_var.reset(ctx_token)
