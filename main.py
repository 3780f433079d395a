"""
FastAPI Application Entry Point

Integrates:
  - Twilio WhatsApp webhook handler
  - Health checks
  - Middleware for security headers, logging & error handling
  - Rate-limit sweep task and media job draining in the lifespan

Run: uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agent.errors import AppError, handle_error
from config import Config
from infra.bootstrap import InfraBootstrap
from transport.whatsapp import router as whatsapp_router
from transport.whatsapp.rate_limit import run_sweeper

# Setup logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan: startup and shutdown handlers.
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Mummy health assistant starting up...")
    logger.info(f"Environment: {Config.ENVIRONMENT}")
    logger.info(f"LLM Backend: {Config.LLM_BACKEND}")
    logger.info("=" * 60)

    Config.validate()
    runtime = InfraBootstrap.get_instance()
    logger.info(f"Infrastructure: {runtime!r}")

    sweeper = asyncio.create_task(
        run_sweeper(runtime.rate_limiter, runtime.config.rate_limit_sweep_interval_s)
    )

    yield

    # Shutdown
    logger.info("Mummy health assistant shutting down...")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await runtime.media_pipeline.drain()


# Create FastAPI app
app = FastAPI(
    title="Mummy Health Assistant API",
    description="WhatsApp personal health assistant",
    version="1.0.0",
    lifespan=lifespan,
)


# Middleware for logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    logger.info(
        f"{request.method} {request.url.path}",
        extra={
            "ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        },
    )
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"Request error: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


@app.middleware("http")
async def security_headers(request: Request, call_next):
    """Attach security headers to every response."""
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    handle_error(exc)
    detail = exc.message if exc.is_operational else "Internal server error"
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


# Include routers
app.include_router(whatsapp_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "message": "Mummy - WhatsApp Health Bot is running!",
        "status": "healthy",
        "version": "1.0.0",
        "endpoints": {
            "whatsapp_webhook": "POST /webhook/whatsapp",
            "whatsapp_status": "GET /webhook/whatsapp",
            "test_send": "POST /test/send",
            "health_live": "GET /health/live",
            "health_ready": "GET /health/ready",
        },
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "database": "connected"}


# Health check endpoints
@app.get("/health/live")
async def health_live():
    """Live health check (Kubernetes liveness probe)."""
    return {"status": "alive"}


@app.get("/health/ready")
async def health_ready():
    """Readiness health check (Kubernetes readiness probe)."""
    problems = Config.problems()
    if problems:
        return {"status": "not_ready", "reason": "; ".join(problems)}
    return {"status": "ready"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=Config.AGENT_PORT,
        reload=Config.ENVIRONMENT == "development",
    )
