"""
Storefront CMS - promotional content API with object-store asset lifecycle

Run with: uvicorn storefront_cms.main:app --port 8080
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from storefront_cms.config import StorageConfigError, StorageSettings, settings
from storefront_cms.db import init_db
from storefront_cms.errors import register_exception_handlers
from storefront_cms.lifecycle import build_policies, describe_policies
from storefront_cms.object_store import ObjectStoreClient
from storefront_cms.routes import admin, auth, health, public, uploads

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


def build_object_store():
    """Object store from settings, or None when storage is not configured."""
    try:
        return ObjectStoreClient(StorageSettings.from_settings(settings))
    except StorageConfigError as e:
        logger.warning(f"Object storage disabled: {e}")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database, policies and object store on startup"""
    init_db()
    app.state.policies = build_policies(settings)
    for line in describe_policies(app.state.policies):
        logger.info(f"Content policy {line}")
    app.state.object_store = build_object_store()
    logger.info(f"Storefront CMS started (auth mode: {settings.AUTH_MODE})")
    yield


app = FastAPI(
    title="Storefront CMS",
    description="Promotional content management with object-store asset lifecycle",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(public.router)
app.include_router(auth.router)
app.include_router(uploads.router)
for admin_router in admin.routers:
    app.include_router(admin_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Storefront CMS",
        "version": "1.0.0",
        "status": "running"
    }
