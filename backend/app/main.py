"""
FastAPI application entry point
"""
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.database import engine, init_db
from app.core.exceptions import ServiceError
from app.api.v1 import api_router
from app.core.logging import setup_logging
from app.core.health import check_db, check_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan"""
    setup_logging()
    await init_db()
    logger.info("%s started", settings.PROJECT_NAME)

    yield

    await engine.dispose()


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Subscription plans, limits and usage for NoteMeet",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Propagate or generate X-Request-ID and keep it on request.state"""
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


def _error_response(error: str, request_id: str | None = None) -> dict:
    body = {"error": error}
    if request_id:
        body["request_id"] = request_id
    return body


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Service errors: status from the error kind"""
    rid = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        logger.error("Service error [%s]: %s", rid, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_response(exc.message, request_id=rid),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Uniform body for HTTP errors"""
    rid = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_response(
            exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            request_id=rid,
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation errors are reported as 400"""
    rid = getattr(request.state, "request_id", None)
    errs = exc.errors()
    error = errs[0].get("msg", "Invalid request") if errs else "Invalid request"
    body = _error_response(error, request_id=rid)
    body["errors"] = jsonable_encoder(errs)
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything uncaught: generic 500, traceback to the log"""
    rid = getattr(request.state, "request_id", None)
    logger.exception("Unhandled error [%s] %s %s", rid, request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_response("Internal server error", request_id=rid),
    )


# Routes
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    """Root"""
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check: connectivity of each dependency"""
    db_ok, db_msg = await check_db()
    redis_ok, redis_msg = check_redis()
    all_ok = db_ok and redis_ok
    return JSONResponse(
        content={
            "status": "healthy" if all_ok else "degraded",
            "service": "notemeet-api",
            "dependencies": {
                "database": {"ok": db_ok, "message": db_msg},
                "redis": {"ok": redis_ok, "message": redis_msg},
            },
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_excludes=["**/__pycache__/**", "**/*.pyc"],
    )
