import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from keygate.common.config import settings
from keygate.common.database import database
from keygate.common.exceptions import AppException
from keygate.common.responses import error_response
from keygate.common.startup import start_issuer_bot


# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await database.init()
    app.state.database = database

    bot = start_issuer_bot(settings, database)
    logger.info(f"Key server listening http://{settings.host}:{settings.port}{settings.base_path}")

    try:
        yield
    finally:
        # Shutdown
        try:
            if bot:
                await bot.stop()
        finally:
            await database.close()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(error=exc.error, message=exc.message),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are client errors, like a missing token."""
    errors = exc.errors()
    message = errors[0].get("msg") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(error="invalid_input", message=message),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.exception(f"{request.method} {request.url.path} error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            error="server_error",
            message=str(exc) if settings.debug else None,
        ),
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


@app.get(settings.base_path + "/health")
async def health():
    """Health check endpoint."""
    return {"ok": True, "ts": int(time.time() * 1000)}


# Import and include routers
from keygate.api.v1 import validate

app.include_router(validate.router, prefix=settings.base_path, tags=["validate"])


def run():
    """Console entry point: serve the app with uvicorn."""
    import uvicorn
    uvicorn.run(
        "keygate.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
    )


if __name__ == "__main__":
    run()
