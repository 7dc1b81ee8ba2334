import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import (
    ADMIN_EMAIL,
    ADMIN_NAME,
    ADMIN_PASSWORD,
    AUTO_ASSIGN_ENABLED,
    AUTO_ASSIGN_INTERVAL_SECONDS,
    LOG_LEVEL,
)
from app.core.exceptions import BookingError
from app.core.security import hash_password
from app.db.base import Base, SessionLocal, engine

# Import all model modules so Base.metadata knows every table
from app.db.models import booking, notification, provider, service, user  # noqa: F401
from app.db.models.user import Role, User

from app.api.routes import auth
from app.api.routes import admin as admin_router
from app.api.routes import providers as providers_router
from app.api.routes import services as services_router
from app.api.routes import bookings as bookings_router
from app.api.routes import search as search_router
from app.api.routes import notifications as notifications_router
from app.services.auto_assign import run_auto_assignment_loop

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def seed_admin():
    if not (ADMIN_EMAIL and ADMIN_PASSWORD):
        return
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == ADMIN_EMAIL).first():
            return
        db.add(User(email=ADMIN_EMAIL, name=ADMIN_NAME, role=Role.ADMIN.value, password_hash=hash_password(ADMIN_PASSWORD)))
        db.commit()
        logger.info(f"Seeded admin account {ADMIN_EMAIL}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    Base.metadata.create_all(bind=engine)
    seed_admin()

    sweeper = None
    if AUTO_ASSIGN_ENABLED:
        sweeper = asyncio.create_task(run_auto_assignment_loop(AUTO_ASSIGN_INTERVAL_SECONDS))
    else:
        logger.info("Auto-assignment loop disabled")

    yield

    if sweeper:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    logger.info("Application shutting down...")


app = FastAPI(title="LocalBookr API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
def root():
    return {"message": "LocalBookr API running"}


app.include_router(auth.router, prefix="/api/auth")
app.include_router(admin_router.router)
app.include_router(providers_router.router)
app.include_router(services_router.router)
app.include_router(bookings_router.router)
app.include_router(search_router.router)
app.include_router(notifications_router.router)
