import asyncio
from fastapi import FastAPI, Request, APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from eventhub.api.v1.routes import (
    auth as auth_router,
    events as events_router,
    organizers as organizers_router,
    registrations as registrations_router,
    organizations as organizations_router,
    users as users_router,
    health as health_router,
)
from eventhub.api.v1.limiter import limiter
from eventhub.cache.redis_client import cache
from eventhub.core.config import settings
from eventhub.core.errors import DomainError, ErrorCode, TransientError
from eventhub.core.logging import logger
from eventhub.db.session import engine, Base
from eventhub.events import publisher
from eventhub.middleware.security_headers import SecurityHeadersMiddleware

app = FastAPI(title="EventHub")

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(exc: DomainError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()), headers=headers)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path}: {exc}")
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request",
            "code": ErrorCode.INVALID_INPUT.value,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
@app.exception_handler(asyncio.TimeoutError)
async def transient_error_handler(request: Request, exc: Exception):
    logger.error(f"Storage unavailable during {request.method} {request.url.path}: {exc}")
    return error_response(TransientError())


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error during {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth_router.router)
api_router.include_router(events_router.router)
api_router.include_router(organizers_router.router)
api_router.include_router(registrations_router.router)
api_router.include_router(organizations_router.router)
api_router.include_router(users_router.router)
api_router.include_router(users_router.admin_router)
api_router.include_router(health_router.router)

app.include_router(api_router)


@app.on_event("startup")
async def on_startup():
    # Migrations are the source of truth in deployed environments; create_all covers local runs
    if settings.ENVIRONMENT != "production":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info(f"EventHub started ({settings.ENVIRONMENT})")


@app.on_event("shutdown")
async def on_shutdown():
    await publisher.close()
    cache.close()
    await engine.dispose()
