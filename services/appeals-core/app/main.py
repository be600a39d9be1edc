"""
Appeals Core - appeal lifecycle service
"""
import contextlib
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import Database
from app.core.exceptions import StorageError
from app.api.v1 import appeals

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    database = Database.from_settings(settings)
    if settings.AUTO_CREATE_SCHEMA:
        database.create_all()
        logger.info("Database schema ensured")
    app.state.database = database
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.APP_ENV)
    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.APP_NAME)
        database.dispose()


app = FastAPI(
    title="Appeals Core API",
    description="Appeal intake and lifecycle: submit, take, complete, cancel",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=500, content={"detail": "Storage error, the operation was not applied"})


# API routes
app.include_router(appeals.router, prefix="/v1/appeals", tags=["appeals"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }
