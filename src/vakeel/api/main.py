from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import Settings
from ..errors import VakeelError
from ..infrastructure.store import PersistenceGateway, build_store
from ..observability.metrics import metrics_middleware_factory
from ..services.ai_gateway import AIGateway
from .routers.chat import router as chat_router
from .routers.documents import router as documents_router
from .routers.users import router as users_router

load_dotenv()  # Load environment variables from .env if present (MONGO_URL, VAKEEL_AI_API_KEY, etc.)

logger = logging.getLogger(__name__)

SERVICE_NAME = "VakeelGPT API"
VERSION = "2.0.0"
API_PREFIX = "/api"


async def _vakeel_error_handler(request: Request, exc: VakeelError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[PersistenceGateway] = None,
    ai_gateway: Optional[AIGateway] = None,
) -> FastAPI:
    """Build the API with its store and AI gateway fixed for the lifetime of the app."""
    settings = settings or Settings.from_env()
    app = FastAPI(title=SERVICE_NAME, version=VERSION)
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)
    app.state.ai_gateway = ai_gateway if ai_gateway is not None else AIGateway(settings)

    # Observability: request latency histogram
    app.middleware("http")(metrics_middleware_factory())

    app.add_exception_handler(VakeelError, _vakeel_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(chat_router, prefix=API_PREFIX)
    app.include_router(documents_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)

    # CORS (for the Next.js dev server on localhost:3000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"name": SERVICE_NAME, "version": VERSION}

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": VERSION,
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "components": {
                "api": "ok",
                "store": app.state.store.backend,
                "ai": "upstream" if app.state.ai_gateway.configured else "mock",
            },
        }

    @app.get("/metrics")
    def metrics() -> Response:
        data = generate_latest(REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
