# barberbook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from barberbook.config import settings
from barberbook.db import create_db_and_tables
from barberbook.routers.appointments_routes import router as appointments_router
from barberbook.routers.auth_routes import router as auth_router
from barberbook.routers.availability_routes import router as availability_router
from barberbook.routers.barbers_routes import router as barbers_router
from barberbook.routers.blockouts_routes import router as blockouts_router

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("%s started", settings.APP_NAME)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(barbers_router)
app.include_router(availability_router)
app.include_router(appointments_router)
app.include_router(blockouts_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
