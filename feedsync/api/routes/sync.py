from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from feedsync.config import Settings, get_settings
from feedsync.exceptions import ConfigurationError, EmptyFeedError, FeedFormatError
from feedsync.feed.models import FieldMap
from feedsync.normalizer.grouping import GroupStrategy
from feedsync.services.shopify_sync import ImportOptions
from feedsync.services.sync_manager import run_import, run_stock_sync

router = APIRouter()


class ImportRequest(BaseModel):
    source: str
    group: GroupStrategy = GroupStrategy.AUTO
    id_separator: str = "-"
    id_parts: int = 2
    id_regex: Optional[str] = None
    field_map: dict[str, Any] = Field(default_factory=dict)
    dry_run: bool = False


@router.post("/import")
async def sync_import(body: ImportRequest, settings: Settings = Depends(get_settings)):
    try:
        options = ImportOptions(
            group=body.group,
            id_separator=body.id_separator,
            id_parts=body.id_parts,
            id_regex=body.id_regex,
            field_map=FieldMap.from_json(body.field_map),
            dry_run=body.dry_run,
        )
        summary = await run_import(body.source, settings, options)
    except (ConfigurationError, EmptyFeedError, FeedFormatError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Feed import completed", "result": summary.as_dict()}


@router.post("/stock")
async def sync_stock(
    since_minutes: Optional[int] = None,
    full: bool = False,
    dry_run: bool = False,
    settings: Settings = Depends(get_settings),
):
    try:
        summary = await run_stock_sync(settings, since_minutes=since_minutes, full=full, dry_run=dry_run)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Stock sync completed", "result": summary.as_dict()}
