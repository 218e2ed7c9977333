from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from . import auth, bookings, resources
from .config import FRONTEND_URL
from .database import engine
from .logger import RequestIdMiddleware, setup_logging
from .responses import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    SQLModel.metadata.create_all(engine)
    yield


setup_logging()

app = FastAPI(
    lifespan=lifespan,
    title="SchedulePro API",
    description="API to manage people, vehicles, equipment and bookings for multi-tenant resource scheduling.",
    version="1.0.0",
)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(resources.people_router)
app.include_router(resources.vehicles_router)
app.include_router(resources.equipment_router)
app.include_router(bookings.router)


@app.get("/health", summary="Liveness check", tags=["Health"])
def health_check():
    return {
        "status": "ok",
        "message": "SchedulePro API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
