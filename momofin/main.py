from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from momofin.auth.router import router as auth_router
from momofin.auth.users import init_default_organization
from momofin.base_microservice import BaseMicroservice, create_tables
from momofin.integrity.router import router as document_router

# Create shared base microservice instance
base_service = BaseMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Creates tables and the bootstrap organization on startup.
    """
    base_service.log_event("service.startup", {"service": "main"})
    if not base_service.settings.signing_secret:
        base_service.logger.warning("JWT_SECRET_KEY is not set; token operations will fail")
    try:
        await create_tables()
        await init_default_organization()
    except Exception as e:
        base_service.log_error(e, context="Startup")
        raise
    yield
    base_service.log_event("service.shutdown", {"service": "main"})


# Create main FastAPI app with lifespan
app = FastAPI(
    title="Momofin Core API",
    description="Organization-scoped authentication and document integrity",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render ``{errorMessage}`` details as the response body itself."""
    content = exc.detail if isinstance(exc.detail, dict) else {"errorMessage": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


# Include routers with prefixes
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(document_router, prefix="/documents", tags=["documents"])


@app.get("/health", tags=["health"])
async def health_check():
    """Overall system health check."""
    return {
        "status": "ok",
        "services": {
            "auth": "online",
            "documents": "online"
        }
    }
