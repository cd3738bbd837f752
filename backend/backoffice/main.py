"""
Back-office ledger - FastAPI application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from backoffice.core.config import settings
from backoffice.core.database import init_db, AsyncSessionLocal
from backoffice.core.errors import LedgerError
from backoffice.api.v1.router import api_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup / shutdown"""
    await init_db()

    # bootstrap admin account
    await create_initial_admin()

    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Payment allocation and balance reconciliation for a trading back office",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# exception handlers
# ============================================================================

@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Ledger rule violations"""
    logger.info(f"[API] {request.method} {request.url.path} -> {exc.code}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTPException in the common error envelope"""
    detail = exc.detail
    if isinstance(detail, dict) and "code" in detail and "message" in detail:
        error = {"code": detail["code"], "message": detail["message"], "details": detail.get("details")}
    else:
        error = {"code": "HTTP_ERROR", "message": str(detail), "details": None}
    return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation errors"""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": errors}
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Anything else"""
    logger.exception(f"[API] unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "details": {"error": str(exc)} if settings.DEBUG else None
            }
        }
    )


# API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check"""
    return {"status": "healthy", "version": settings.APP_VERSION}


async def create_initial_admin():
    """Create the bootstrap admin if no admin exists"""
    from sqlalchemy import select
    from backoffice.models.user import User
    from backoffice.models.enums import UserRole
    from backoffice.core.security import get_password_hash

    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(User).where(User.role == UserRole.ADMIN).limit(1)
        )
        if result.scalar_one_or_none():
            return

        admin_user = User(
            email=settings.ADMIN_EMAIL,
            password_hash=get_password_hash(settings.ADMIN_PASSWORD),
            name="Administrator",
            role=UserRole.ADMIN,
        )
        session.add(admin_user)
        await session.commit()
        logger.info(f"[Startup] created initial admin {settings.ADMIN_EMAIL}")
