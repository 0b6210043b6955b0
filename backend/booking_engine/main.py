import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import ReadSessionLocal
from .dependencies import build_lifecycle
from .middleware.audit import audit_middleware
from .redis_client import redis_client
from .routers import bookings, slots
from .services.errors import BookingEngineError, InfrastructureError
from .services.lifecycle_checker import LifecycleSweeper, lifecycle_checker_loop
from .services.repositories import BookingRepository

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    checker_task = None
    if settings.lifecycle_checker_enabled:
        sweeper = LifecycleSweeper(ReadSessionLocal, BookingRepository(), build_lifecycle())
        checker_task = asyncio.create_task(
            lifecycle_checker_loop(sweeper, settings.lifecycle_check_interval)
        )

    yield

    if checker_task is not None:
        checker_task.cancel()
        try:
            await checker_task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Booking Engine API", lifespan=lifespan)

app.middleware("http")(audit_middleware)

app.include_router(slots.router)
app.include_router(bookings.router)


@app.exception_handler(InfrastructureError)
async def infrastructure_error_handler(request: Request, exc: InfrastructureError):
    # Cause already logged where it was wrapped
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind.value},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Unhandled database error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health():
    if redis_client is None:
        return {"redis": "disabled"}
    try:
        return {"redis": redis_client.ping()}
    except RedisError:
        return {"redis": False}
