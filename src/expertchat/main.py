"""Expert Chat

FastAPI application that answers each conversation turn by routing it to
specialized experts, gathering their findings and streaming one synthesized
reply.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .api.deps import get_conversation_service, get_storage_service
from .api.routers import conversation_router, health_router
from .config import settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown logic"""
    logfire.configure(
        service_name=settings.app_name,
        service_version=settings.app_version,
        environment=settings.environment,
        token=settings.logfire_token,
        send_to_logfire="if-token-present",
    )
    logfire.instrument_pydantic_ai()

    # Missing credentials are fatal here, before any turn is accepted
    service = get_conversation_service()
    logfire.info("starting {app_name} v{version}", app_name=settings.app_name, version=settings.app_version)
    yield
    logfire.info("shutting down")
    await service.drain()
    await get_storage_service().close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    debug=settings.environment == "development",
    lifespan=lifespan,
)

# Add CORS middleware
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods.split(","),
        allow_headers=settings.cors_headers.split(","),
    )

app.include_router(health_router)
app.include_router(conversation_router)


@app.get("/")
async def root() -> RedirectResponse:
    """Redirect root to API docs"""
    return RedirectResponse(url="/docs")
