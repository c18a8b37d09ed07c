# backend/herbanet/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from herbanet.core.config import settings
from herbanet.core.errors import (
    Conflict,
    InsufficientBalance,
    InvalidState,
    NetworkError,
    NotFound,
    UpstreamFailure,
    ValidationError,
)
from herbanet.core.logging_config import configure_logging
import herbanet.models  # noqa: F401  # force model registration

from herbanet.api.v1.agents import router as agents_router
from herbanet.api.v1.commissions import router as commissions_router
from herbanet.api.v1.rewards import router as rewards_router
from herbanet.api.v1.transactions import router as transactions_router
from herbanet.api.v1.users import router as users_router
from herbanet.api.v1.withdrawals import router as withdrawals_router

logger = logging.getLogger(__name__)

# Most specific first; AlreadyClaimed is a Conflict.
_STATUS_BY_ERROR = (
    (NotFound, 404),
    (Conflict, 409),
    (InvalidState, 409),
    (InsufficientBalance, 422),
    (ValidationError, 422),
    (UpstreamFailure, 502),
)


def status_for(exc: NetworkError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def network_error_handler(request: Request, exc: NetworkError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed upstream: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=status_code, content={"detail": exc.detail, "code": exc.code})


def create_application() -> FastAPI:
    configure_logging()
    app = FastAPI(title="HERBANET API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            # Local development (Vite frontend)
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            # Production domains
            "https://herbamart.id",
            "https://www.herbamart.id",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NetworkError, network_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "herbanet", "environment": settings.ENVIRONMENT}

    # Routers
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(agents_router, prefix="/api/v1")
    app.include_router(transactions_router, prefix="/api/v1")
    app.include_router(commissions_router, prefix="/api/v1")
    app.include_router(withdrawals_router, prefix="/api/v1")
    app.include_router(rewards_router, prefix="/api/v1")

    return app


app = create_application()
