# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.backend import get_backend
from app.core.config import get_settings
from app.core.errors import register_error_handlers

# Routers
from app.routers.admin_auth import router as admin_auth_router
from app.routers.admin_orders import router as admin_orders_router
from app.routers.admin_stats import router as admin_stats_router
from app.routers.books import admin_router as admin_books_router
from app.routers.books import router as books_router
from app.routers.cart import router as cart_router
from app.routers.integrations import router as integrations_router
from app.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Resolve the backend mode (supabase / demo).
      - In supabase mode, verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    mode = get_settings().resolved_backend_mode
    if mode == "supabase":
        from app.database import create_db_and_tables

        logger.info("🔄 Startup: Connecting to Supabase Postgres...")
        try:
            create_db_and_tables()
            logger.info("✅ Startup: DB connection OK, tables verified.")
        except Exception as e:
            logger.error(f"❌ Startup: DB connection FAILED: {e}")
            raise
        if not get_settings().ADMIN_JWT_SECRET:
            logger.warning("⚠️ Startup: ADMIN_JWT_SECRET is not set, admin API is disabled.")
    else:
        logger.info("🧪 Startup: no backend configured, running in demo mode.")

    get_backend()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(books_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(admin_auth_router, prefix=settings.API_V1_STR)
app.include_router(admin_orders_router, prefix=settings.API_V1_STR)
app.include_router(admin_books_router, prefix=settings.API_V1_STR)
app.include_router(admin_stats_router, prefix=settings.API_V1_STR)
app.include_router(integrations_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "pop-playground-backend",
        "mode": get_settings().resolved_backend_mode,
    }
