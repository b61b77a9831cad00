from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .config import settings
from .database import engine, Base
from .routers import cart, orders, parcel

logger = logging.getLogger("parcel_booking")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)


def _run_migrations():
    """Run pending Alembic migrations on startup.

    Migrations are written to be idempotent, so databases first created by
    Base.metadata.create_all() upgrade cleanly.
    """
    try:
        from alembic.config import Config
        from alembic import command

        alembic_ini = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        if not os.path.exists(alembic_ini):
            logger.info("alembic.ini not found, skipping migrations")
            return

        alembic_cfg = Config(alembic_ini)
        alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

        logger.info("Running pending Alembic migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception as e:
        # Never let migration errors prevent app startup
        logger.warning(f"Alembic migration warning: {e}")


app = FastAPI(
    title="Parcel Booking",
    description="Weight/volume tier pricing for parcel bookings, wired into cart and checkout",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(parcel.router, prefix="/api")
app.include_router(cart.router, prefix="/api")
app.include_router(orders.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "parcel-booking"}


@app.on_event("startup")
def auto_migrate():
    """Run pending Alembic migrations on startup."""
    _run_migrations()


@app.on_event("startup")
def auto_seed():
    """Make sure the parcel product exists."""
    from .database import SessionLocal
    from . import models
    db = SessionLocal()
    try:
        existing = db.query(models.Product).filter(
            models.Product.id == settings.TARGET_PRODUCT_ID
        ).first()
        if not existing:
            db.add(models.Product(
                id=settings.TARGET_PRODUCT_ID,
                name=settings.TARGET_PRODUCT_NAME,
                price=0,
            ))
            logger.info(f"Seeded parcel product {settings.TARGET_PRODUCT_ID}")
        db.commit()
    finally:
        db.close()
