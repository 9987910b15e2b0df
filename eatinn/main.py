# main.py
# Main application file for the FastAPI recipe service.

import logging.config
import os
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

# Import the CORS middleware
from fastapi.middleware.cors import CORSMiddleware

# Rate limiting
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

# Import local modules
from eatinn.db.session import engine
from eatinn import models
from eatinn.api import healthcheck, recipes
from eatinn.core.config import settings
from eatinn.core.logging_middleware import StructuredLoggingMiddleware

# Load logging configuration, when the service is started from the project root
if os.path.exists("logging.ini"):
    logging.config.fileConfig("logging.ini", disable_existing_loggers=False)

# Get the logger instance
logger = logging.getLogger(__name__)

# Initialize rate limiter - uses client IP address for rate limit key
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Create all database tables
# Alembic migrations are the source of truth; this keeps a fresh SQLite file usable.
models.Base.metadata.create_all(bind=engine)

# Initialize the FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for storing, searching and editing recipes.",
    version=settings.VERSION,
    root_path=settings.ROOT_PATH,
)

# Add rate limiter to app state and register exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(StructuredLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
    expose_headers=["Location"],
)


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    """
    Log unexpected failures and answer with a generic message that does not
    leak internal details.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "the server encountered a problem and could not process your request"},
    )


# Include API routers
app.include_router(healthcheck.router, tags=["Health"])
app.include_router(recipes.router, prefix="/recipes", tags=["Recipes"])


if __name__ == "__main__":
    # Development server; run behind a process manager in production.
    uvicorn.run("eatinn.main:app", host="0.0.0.0", port=8000, reload=True)
