from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_access.core.database import engine, init_db
from crm_access.domains.permissions.routes import router as permissions_router
from crm_access.shared.permissions import PermissionResolver


def create_server_resolver() -> PermissionResolver:
    """
    Resolver guarding the API's own endpoints.

    Seeded from canonical defaults only, so a bad saved matrix can never lock
    administrators out of the screen used to fix it.
    """
    resolver = PermissionResolver()
    resolver.refresh()
    return resolver


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="CRM Access API",
    description="Role-based permissions API for the CRM",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.permission_resolver = create_server_resolver()

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(permissions_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "CRM Access API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
