# FILE: backend/lumendocs/main.py
# 1. Router assembly under /api/v1.
# 2. Lifecycle errors map onto status codes here and nowhere else.

import logging

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .api.endpoints.corpora import router as corpora_router
from .api.endpoints.documents import router as documents_router
from .api.endpoints.health import router as health_router
from .core.config import settings
from .core.exceptions import (
    CorpusNotFoundError,
    DocumentNotFoundError,
    ExternalServiceError,
    ImmutableFieldError,
    IngestionError,
    ValidationError,
)
from .core.lifespan import lifespan

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(ImmutableFieldError)
    async def immutable_field_handler(request: Request, exc: ImmutableFieldError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(DocumentNotFoundError)
    async def document_not_found_handler(request: Request, exc: DocumentNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(CorpusNotFoundError)
    async def corpus_not_found_handler(request: Request, exc: CorpusNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(request: Request, exc: ExternalServiceError):
        logger.error(f"--- [API] {exc.store} failure on {request.method} {request.url.path}: {exc} ---")
        # Uploads never echo raw store errors.
        if request.method == "POST" and request.url.path.rstrip("/").endswith("/documents"):
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Document upload failed."})
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": f"Upstream {exc.store} is unavailable."},
        )

    @app.exception_handler(IngestionError)
    async def ingestion_error_handler(request: Request, exc: IngestionError):
        logger.error(f"--- [API] Ingestion failed: {exc} ---")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Document upload failed."})


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan if with_lifespan else None)

    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    api_v1_router = APIRouter(prefix=settings.API_V1_STR)
    api_v1_router.include_router(documents_router, prefix="/documents", tags=["Documents"])
    api_v1_router.include_router(corpora_router)
    app.include_router(api_v1_router)
    app.include_router(health_router, prefix="/health")

    @app.get("/health", status_code=status.HTTP_200_OK, tags=["Health Check"])
    def health_check(request: Request):
        context = getattr(request.app.state, "context", None)
        checks = context.health() if context is not None else {}
        return {"status": "ok", "version": "1.0.0", "checks": checks}

    return app


app = create_app()
