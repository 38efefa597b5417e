from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.config import get_settings
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.history_routes import router as history_router
from src.infrastructure.api.routes.image_routes import router as image_router
from src.infrastructure.api.routes.processing_routes import router as processing_router
from src.infrastructure.logging_setup import configure_logging

SERVICE_NAME = "chromakit-derivation"


def create_app() -> FastAPI:
    configure_logging(get_settings().log_level)
    app = FastAPI(
        title="ChromaKit Derivation Service",
        version="0.2.0",
        description="""
        ## ChromaKit Derivation Service

        Batch image editing with NumPy. Every edit is applied to the original upload,
        never to a previous edit, so quality does not degrade across versions.

        ### Features
        - **Image Management**: Upload, list, download, version listing and delete
        - **Batch Processing**: Apply an ordered list of operations in one request,
          all-or-nothing
        - **Single Operations**: Convenience endpoints for each operation plus reset
        - **Histogram**: Per-channel intensity counts of any image
        - **History Tracking**: One ledger entry per successful batch

        ### Authentication
        All endpoints (except root and health) require authentication via Bearer token
        in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        Processing errors carry a stable `kind` next to `detail`:
        - **400 Bad Request**: `invalid_parameter`, `unknown_operation`
        - **401 Unauthorized**: Missing or invalid authentication token
        - **403 Forbidden**: `forbidden`
        - **404 Not Found**: `not_found`
        - **422 Unprocessable Entity**: Validation error in request body
        - **500 Internal Server Error**: `corrupt_chain`
        - **503 Service Unavailable**: `persistence_failure`, nothing was saved
        """,
        contact={
            "name": "ChromaKit Team",
            "email": "support@chromakit.com",
        },
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the ChromaKit derivation API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": SERVICE_NAME, "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(image_router)
    app.include_router(processing_router)
    app.include_router(history_router)
    return app


app = create_app()
