from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from docunest.config import get_settings
from docunest.database import engine, Base
from docunest.errors import AuthorizationDenied, DecryptionError, EncryptionError
from docunest.routes import auth, files, search
from docunest.storage.encryption import get_file_encryptor
from docunest.utils.rate_limit import limiter

# Import event handlers to register them with the event bus
from docunest.events.handlers import activity  # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables (alembic migrations manage production schemas)
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the master key at startup so a bad ENCRYPT_KEY fails the process, not a request."""
    get_file_encryptor()
    logger.info("DocuNest API started")

    yield

    logger.info("DocuNest API stopped")


app = FastAPI(
    title="DocuNest API",
    version="1.0.0",
    description="Personal document vault with per-file envelope encryption and PIN-protected downloads",
    lifespan=lifespan,
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


@app.exception_handler(AuthorizationDenied)
async def authorization_denied_handler(request: Request, exc: AuthorizationDenied):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(DecryptionError)
async def decryption_error_handler(request: Request, exc: DecryptionError):
    return JSONResponse(status_code=500, content={"detail": "File decryption failed"})


@app.exception_handler(EncryptionError)
async def encryption_error_handler(request: Request, exc: EncryptionError):
    logger.error(f"Upload aborted: {exc}")
    return JSONResponse(status_code=500, content={"detail": "File encryption failed"})


# Configure CORS with specific origins from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(files.router, prefix="/api/files", tags=["Files"])
app.include_router(search.router, prefix="/api/search", tags=["Search"])


@app.get("/")
def read_root():
    return {
        "message": "DocuNest API",
        "version": "1.0.0",
        "endpoints": {
            "auth": {
                "register": "POST /api/auth/register",
                "login": "POST /api/auth/login",
                "me": "GET /api/auth/me",
                "set_pin": "POST /api/auth/set-pin",
            },
            "files": {
                "upload": "POST /api/files/upload",
                "list": "GET /api/files?category=X&tag=Y",
                "info": "GET /api/files/{id}",
                "download": "GET /api/files/{id}/download?pin=X",
                "preview": "GET /api/files/{id}/preview?pin=X",
                "delete": "DELETE /api/files/{id}",
            },
            "search": {
                "search": "GET /api/search?q=X&category=Y&tag=Z",
                "categories": "GET /api/search/categories",
                "tags": "GET /api/search/tags",
            },
        },
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
