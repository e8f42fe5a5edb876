from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import create_tables
from app.dependencies import verify_api_key
from app.routers.analyze import router as analyze_router
from app.routers.auth import router as auth_router
from app.routers.history import router as history_router
from app.routers.pills import router as pills_router
from app.utils.exceptions import register_exception_handlers

SERVICE_NAME = "pill-detect-api"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(
    title="PillDetect API",
    description="Pill identification from photos, detection history and pill catalog",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    # browsers reject credentialed requests against a wildcard origin
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_api_key_dep = [Depends(verify_api_key)]

app.include_router(analyze_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(history_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(pills_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(auth_router, prefix="/api/v1", dependencies=_api_key_dep)


@app.get("/health")
async def health_check():
    return {"success": True, "data": {"service": SERVICE_NAME, "version": VERSION}}
