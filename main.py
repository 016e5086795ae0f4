from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
import structlog
import time
from app.api.routes import api_router
from app.config.settings import settings
from app.core.dependencies import container
from app.core.errors import (
    AppError,
    ConfigurationError,
    NoProviderConfigured,
    PayloadTooLarge,
    TooManyRequests,
    ValidationError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def _error_response(error: AppError, include_details: bool = False) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict(include_details=include_details))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    app = FastAPI(
        title="Test Case Generator API",
        description="AI-assisted test case generation for GitHub repositories",
        version="1.0.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc"
    )

    # Per-IP limit shared by every route
    limiter = Limiter(
        key_func=get_remote_address,
        application_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_urls,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.max_request_body_bytes:
            logger.warning("Request body too large", url=str(request.url), content_length=int(content_length))
            return _error_response(
                PayloadTooLarge(f"Request body exceeds {settings.max_request_body_bytes} bytes")
            )
        return await call_next(request)

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        # Log request
        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        process_time = time.time() - start_time

        # Log response
        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time=process_time
        )

        return response

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request failed",
            method=request.method,
            url=str(request.url),
            status_code=exc.status_code,
            error_code=exc.error_code,
            error=exc.message
        )
        return _error_response(exc, include_details=settings.is_development)

    # Called synchronously by SlowAPIMiddleware
    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded", url=str(request.url), limit=str(exc.detail))
        return _error_response(TooManyRequests("Too many requests from this IP, please try again later."))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.warning("Request validation failed", url=str(request.url), errors=details)
        return _error_response(ValidationError("Request validation failed", details=details), include_details=True)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        error_code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        return _error_response(AppError(str(exc.detail), status_code=exc.status_code, error_code=error_code))

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            method=request.method,
            url=str(request.url),
            error=str(exc),
            exc_info=True
        )

        message = str(exc) if settings.is_development else "Something went wrong"
        return _error_response(AppError(message))

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


# Create the application instance
app = create_app()


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Application starting up", environment=settings.environment)

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required configuration", missing=missing)
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    providers = container.ai_providers()
    if not providers:
        logger.error("No AI provider configured")
        raise NoProviderConfigured("Set OPENAI_API_KEY or GEMINI_API_KEY to enable test generation")

    logger.info(
        "Application startup completed",
        ai_providers=[provider.name for provider in providers],
        frontend_urls=settings.frontend_urls
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Application shutting down")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
