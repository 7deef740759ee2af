"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from auth import seed_admin_user
from config import get_settings
from database import AsyncSessionLocal, Base, engine
from routers import auth, contacts, content, dashboard, products, quotes
from services.gamification import seed_default_achievements

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Use memory storage for local development, Redis for production
storage_uri = settings.redis_url if not settings.debug else "memory://"
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=storage_uri,
    default_limits=["200/day", "50/hour"],
    enabled=settings.rate_limit_enabled,
)

LOCATION_PREFIXES = ("body", "query", "path", "header", "cookie")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting application...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

    async with AsyncSessionLocal() as session:
        await seed_admin_user(session)
        await seed_default_achievements(session)

    yield
    logger.info("Shutting down application...")
    await engine.dispose()


app = FastAPI(
    title="DripTech Irrigation Solutions",
    description="Irrigation quote intake, catalog and back-office API",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Trusted hosts middleware (prevent host header attacks)
if not settings.debug:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["driptech.co.ke", "www.driptech.co.ke", "api.driptech.co.ke"],
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else ["https://driptech.co.ke", "https://www.driptech.co.ke"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

    if not settings.debug:
        # Quote documents embed their own stylesheet
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: https:; "
            "font-src 'self';"
        )
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains; preload"
        )

    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests for monitoring and debugging."""
    if request.url.path == "/health":
        return await call_next(request)

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} - Status: {response.status_code}")
    return response


app.include_router(auth.router, prefix="/api", tags=["Authentication"])
app.include_router(quotes.router, prefix="/api", tags=["Quotes"])
app.include_router(products.router, prefix="/api", tags=["Products"])
app.include_router(content.router, prefix="/api", tags=["Content"])
app.include_router(contacts.router, prefix="/api", tags=["Contacts"])
app.include_router(dashboard.router, prefix="/api", tags=["Dashboard"])


@app.get("/health")
@limiter.exempt
async def health_check():
    """Health check endpoint for monitoring (exempt from rate limiting)."""
    return {"status": "healthy", "version": "1.0.0"}


def format_validation_errors(errors) -> list[dict[str, str]]:
    """Flatten pydantic errors to ``{field, message}`` pairs keyed by wire name."""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in LOCATION_PREFIXES and len(loc) > 1:
            loc = loc[1:]
        message = error.get("msg", "Invalid value").removeprefix("Value error, ")
        formatted.append({"field": ".".join(loc), "message": message})
    return formatted


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report invalid payloads as 400 with a per-field error list."""
    errors = format_validation_errors(exc.errors())
    logger.info(f"Validation failed on {request.url.path}: {[e['field'] for e in errors]}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to prevent stack trace leakage."""
    logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
