from fastapi import APIRouter

from feedsync.api.routes import health, sync

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(sync.router, prefix="/sync", tags=["Sync"])
