import logging
import os

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from backoffice_common.errors import register_exception_handlers
from . import crud, database, models
from .routers import addresses, companies, customers, reference

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger("customer-service")

SERVICE_NAME = "customer-service"
SERVICE_VERSION = "1.0.0"

# Startup: tables + reference data (dev)
async def lifespan(app: FastAPI):
    await database.db_manager.create_all(models.Base.metadata)
    async with database.AsyncSessionLocal() as db:
        added = await crud.seed_countries(db)
        if added:
            logger.info(f"Seeded {added} reference countries")
    logger.info(f"{SERVICE_NAME} ready")
    yield
    await database.db_manager.dispose()

app = FastAPI(
    title="Customer Service",
    description="Back-office microservice for customers, their addresses and companies.",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

# Admin UI in dev plus FRONTEND_URL in production
origins = ["http://localhost:3000"]
frontend_url = os.getenv("FRONTEND_URL", "").strip()
if frontend_url:
    origins.append(frontend_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- ENDPOINTS ---

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness plus a database round-trip."""
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        db_status = "disconnected"

    return {
        "status": "ok" if db_status == "connected" else "error",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "database": db_status,
    }

app.include_router(customers.router)
app.include_router(addresses.router)
app.include_router(companies.router)
app.include_router(reference.router)
