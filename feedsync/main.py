import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from feedsync.api.router import api_router
from feedsync.config import get_settings
from feedsync.services.scheduler import start_scheduler

logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    scheduler = start_scheduler(settings) if settings.ENABLE_SCHEDULER else None
    yield
    if scheduler:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Merchant feed → Shopify Sync", lifespan=lifespan)

app.include_router(api_router)


@app.get("/")
def root():
    return {"status": "running", "message": "Merchant feed → Shopify Sync"}
