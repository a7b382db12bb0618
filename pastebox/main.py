"""
Pastebox - Main FastAPI application.
"""
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pastebox.config import settings
from pastebox.exceptions import PasteValidationError, StorageError
from pastebox.routes import health, pastes
from pastebox.store import get_store

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Pastebox",
    description="Share text that expires after a time limit or a number of views",
    version="1.0.0",
    debug=settings.DEBUG,
)

# Add CORS middleware (optional, for cross-origin requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include route modules
app.include_router(health.router)
app.include_router(pastes.router)


@app.exception_handler(PasteValidationError)
async def paste_validation_error_handler(request: Request, exc: PasteValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies in the same 400 shape as store validation errors."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ())]
    field = loc[-1] if len(loc) > 1 else None
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"
    return JSONResponse(status_code=400, content={"error": message, "field": field})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info("Pastebox application starting...")

    backend = get_store().backend
    if backend.name == "memory":
        logger.warning("DATABASE: Using IN-MEMORY storage")
        logger.warning("   Data will NOT persist across server restarts!")
    else:
        logger.info("DATABASE: Connected to Redis")

    if settings.TEST_MODE:
        logger.warning("TEST_MODE is on: x-test-now-ms header overrides the clock")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info("Pastebox application shutting down...")


@app.get("/", response_class=FileResponse)
async def root():
    """Serve the create paste HTML page."""
    return FileResponse(TEMPLATES_DIR / "create.html", media_type="text/html")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pastebox.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
