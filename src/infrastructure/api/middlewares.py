from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from src.config import get_settings
from src.domain.errors import ProcessingError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "invalid_parameter": 400,
    "unknown_operation": 400,
    "not_found": 404,
    "forbidden": 403,
    "corrupt_chain": 500,
    "persistence_failure": 503,
}


async def processing_error_handler(request: Request, exc: ProcessingError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "kind": exc.kind})


def add_default_middlewares(app: FastAPI) -> None:
    # CORS configuration
    # In development/demo mode, allow common frontend origins
    if get_settings().env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:3001",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3001",
            "http://127.0.0.1:5173",
        ]
    else:
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ProcessingError, processing_error_handler)
