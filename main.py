"""FastAPI application serving the news document and triggering refreshes."""
import logging
import threading
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import JSONResponse

import config
from ai_processor import create_summarizer
from config import ConfigurationError, load_settings
from feed_store import FeedStore
from models import RunStats
from pipeline import AggregationPipeline

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Recaplet News Feed")

store = FeedStore(config.DATA_PATH, config.MIRROR_PATH)

# Only one pipeline run at a time; the summarizer is rate limited
_run_lock = threading.Lock()
_last_run: Optional[RunStats] = None
_last_error: Optional[str] = None


def process_news_pipeline():
    """Run the aggregation pipeline; used as a background task."""
    global _last_run, _last_error

    if not _run_lock.acquire(blocking=False):
        logger.warning("Pipeline already running, skipping refresh")
        return
    try:
        settings = load_settings()
        settings.validate_for_run()
        pipeline = AggregationPipeline(settings, create_summarizer(settings), store=store)
        _, _last_run = pipeline.run()
        _last_error = None
    except Exception as e:
        _last_error = str(e)
        logger.error(f"Error in news pipeline: {e}", exc_info=True)
    finally:
        _run_lock.release()


@app.get("/data/news.json")
async def get_news_document():
    """The full document, as consumed by the list UI."""
    return JSONResponse(store.load().model_dump(by_alias=True, exclude_none=True))


@app.get("/api/news")
async def get_news(source: Optional[str] = None, limit: int = 50):
    """Get news items, optionally filtered by feed name."""
    if limit < 1:
        raise HTTPException(status_code=400, detail="limit must be positive")
    items = store.load().items
    if source:
        items = [item for item in items if item.source == source]
    return {"items": [item.model_dump(by_alias=True, exclude_none=True) for item in items[:limit]]}


@app.post("/api/refresh")
async def refresh(background_tasks: BackgroundTasks):
    """Trigger a pipeline run in the background."""
    if _run_lock.locked():
        return {"status": "running", "message": "A refresh is already in progress"}
    try:
        load_settings().validate_for_run()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))

    background_tasks.add_task(process_news_pipeline)
    return {"status": "started", "message": "News refresh started"}


@app.get("/api/status")
async def get_status():
    """Get system status."""
    document = store.load()
    return {
        "status": "running" if _run_lock.locked() else "idle",
        "generatedAt": document.generated_at,
        "items_count": len(document.items),
        "sources": sorted({item.source for item in document.items}),
        "last_run": _last_run.model_dump() if _last_run else None,
        "last_error": _last_error,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
