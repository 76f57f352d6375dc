import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .config import get_settings
from .db import lifespan_db
from .api.routers import health as health_router
from .api.routers import account as account_router
from .domain.errors import AccountError, NotificationError
from .observability.logging import setup_logging
from .middleware.request_context import RequestContextMiddleware
from .observability.metrics import MetricsHTTPMiddleware, metrics_app

settings = get_settings()
setup_logging()
log = logging.getLogger("app")


@asynccontextmanager
async def lifespan(_: FastAPI):
    async with lifespan_db():
        yield


async def account_error_handler(_: Request, exc: AccountError) -> JSONResponse:
    # every rejection keeps the not-found status existing clients rely on
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message, "code": exc.kind.value},
    )


async def notification_error_handler(_: Request, exc: NotificationError) -> JSONResponse:
    log.warning("notification_failed", extra={"error": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Failed to send verification code"},
    )


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[settings.REQUEST_ID_HEADER],
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(MetricsHTTPMiddleware)

    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(NotificationError, notification_error_handler)

    app.include_router(health_router.router)
    app.include_router(account_router.router)
    app.add_api_route("/metrics", metrics_app(), methods=["GET"], include_in_schema=False, tags=["metrics"])

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("app.main:app", host=settings.APP_HOST, port=settings.APP_PORT, reload=settings.DEBUG)
