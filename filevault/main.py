import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from filevault.core import errors
from filevault.core.config import get_settings
from filevault.core.logging import setup_logging
from filevault.routers import buckets, files, system

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# catégorie d'erreur -> (code HTTP, message exposé ou None pour le message de l'exception)
ERROR_RESPONSES = {
    errors.VALIDATION: (400, None),
    errors.SECURITY: (400, None),
    errors.CONFLICT: (409, None),
    errors.NOT_FOUND: (404, None),
    errors.TIMEOUT: (504, "request timed out"),
    errors.UNEXPECTED: (500, "an unexpected error occurred"),
}


async def storage_error_handler(request: Request, exc: errors.StorageError) -> JSONResponse:
    status_code, message = ERROR_RESPONSES.get(exc.category, ERROR_RESPONSES[errors.UNEXPECTED])
    if status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": message or str(exc)})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # même enveloppe {"error": ...} que les erreurs de stockage, en 400
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "form"))
    message = f"valid {field} is required" if field else "invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000

    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"

    logger.info(
        "incoming request method=%s path=%s status=%d latency=%.1fms ip=%s user_agent=%s",
        request.method,
        path,
        response.status_code,
        elapsed_ms,
        request.client.host if request.client else "-",
        request.headers.get("user-agent", "-"),
    )
    return response


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="API de gestion de fichiers et de buckets sur stockage objet (S3)",
    )

    # Middleware CORS
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],  # fallback si mal configuré
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(errors.StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Routers
    app.include_router(system.router, prefix=API_PREFIX)
    app.include_router(files.router, prefix=API_PREFIX)
    app.include_router(buckets.router, prefix=API_PREFIX)

    # Redirect root → docs
    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    logger.info(
        "server started env=%s region=%s endpoint=%s",
        settings.APP_ENV,
        settings.AWS_REGION,
        settings.S3_ENDPOINT_URL or "aws",
    )
    return app


app = create_app()
