"""
Main FastAPI application
Fretboard quiz sessions and mastery analytics
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from fretboard_quiz.config import settings
from fretboard_quiz.database import init_db
from fretboard_quiz.api import quiz_sessions, analytics
from fretboard_quiz.utils.errors import QuizError
from fretboard_quiz.utils.rate_limiter import rate_limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

UNTHROTTLED_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Quiz-session lifecycle and fretboard mastery analytics",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def throttle_and_time(request: Request, call_next):
    """Rate-limit API calls, then log method, path, status and duration"""

    started = time.perf_counter()

    if settings.RATE_LIMIT_ENABLED and request.url.path not in UNTHROTTLED_PATHS:
        try:
            await rate_limiter.check_rate_limit(request)
        except HTTPException as e:
            logger.info(f"{request.method} {request.url.path} - Status: {e.status_code} (throttled)")
            return JSONResponse(status_code=e.status_code, content=e.detail)

    response = await call_next(request)

    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.3f}"
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {elapsed:.3f}s"
    )
    return response


# Error rendering: every body carries a machine-readable "error" code


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Bad query, path or body parameters are reported like command validation failures"""

    errors = exc.errors()
    first = errors[0] if errors else {}
    # loc starts with the parameter source ("query", "body", ...)
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None

    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": first.get("msg", "Invalid request"),
            "kind": "invalid_field",
            "field": field,
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


@app.get("/health")
async def health_check():
    """Liveness probe"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


@app.get("/")
async def root():
    """Service information and entry points"""
    return {
        "message": "Fretboard Quiz & Mastery Analytics API",
        "version": settings.APP_VERSION,
        "endpoints": {
            "quiz_sessions": quiz_sessions.router.prefix,
            "stats": analytics.router.prefix,
        },
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(quiz_sessions.router)
app.include_router(analytics.router)


@app.on_event("startup")
async def startup_event():
    """Create tables before serving"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info(
        f"Ready: rate limiting {'on' if settings.RATE_LIMIT_ENABLED else 'off'}, "
        f"expired-session auto-abandon {'on' if settings.AUTO_ABANDON_EXPIRED_SESSIONS else 'off'}"
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "fretboard_quiz.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
