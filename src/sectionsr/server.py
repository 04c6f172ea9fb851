import logging
import time
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel

from sectionsr.application.review_service import ItemNotFoundError, ReviewService
from sectionsr.consts import VERSION
from sectionsr.domain.constants import ALL_RATINGS
from sectionsr.domain.models import QueueEntry, SectionState

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("sectionsr.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"sectionsr server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("sectionsr server shutting down...")


app = FastAPI(
    title="sectionsr",
    description="Review queues and ratings for study sections.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


@lru_cache(maxsize=1)
def get_service() -> ReviewService:
    """One service (and config cache) per process."""
    from sectionsr.application.config import resolve_config
    from sectionsr.application.factory import get_review_service

    return get_review_service(resolve_config())


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class QueueEntryResponse(BaseModel):
    item_id: str
    section: str
    label: str
    due: int
    phase: str
    category: str


class SectionRequest(BaseModel):
    item_id: str
    section: str
    now: int | None = None


class RateRequest(SectionRequest):
    rating: str


def _entry(entry: QueueEntry) -> QueueEntryResponse:
    return QueueEntryResponse(
        item_id=entry.item_id,
        section=entry.section_key,
        label=entry.section_label,
        due=entry.due,
        phase=entry.phase,
        category=entry.category,
    )


def _state(state: SectionState | None) -> dict:
    if state is None:
        raise HTTPException(status_code=400, detail="Missing item or section")
    return state.to_dict()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/queue/due", response_model=list[QueueEntryResponse])
async def due_queue(
    mode: str | None = None,
    priorities: list[str] | None = Query(None),
    now: int | None = None,
    service: ReviewService = Depends(get_service),
):
    ordering = None
    if mode or priorities:
        ordering = {"mode": mode, "priorities": priorities or []}
    return [_entry(e) for e in await service.due_queue(ordering, now)]


@app.get("/queue/upcoming", response_model=list[QueueEntryResponse])
async def upcoming_queue(
    limit: int = 50,
    now: int | None = None,
    service: ReviewService = Depends(get_service),
):
    return [_entry(e) for e in await service.upcoming_queue(limit, now)]


@app.post("/review/rate")
async def rate_section(req: RateRequest, service: ReviewService = Depends(get_service)):
    """Apply a rating and persist the new state."""
    if req.rating not in ALL_RATINGS:
        raise HTTPException(status_code=422, detail=f"Unknown rating: {req.rating}")
    try:
        return _state(await service.rate(req.item_id, req.section, req.rating, req.now))
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@app.post("/review/preview")
async def preview_section(req: SectionRequest, service: ReviewService = Depends(get_service)):
    """Projected state for every rating. Nothing is saved."""
    try:
        projections = await service.preview_all(req.item_id, req.section, req.now)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {rating: state.to_dict() for rating, state in projections.items()}


@app.post("/review/suspend")
async def suspend_section(req: SectionRequest, service: ReviewService = Depends(get_service)):
    try:
        return _state(await service.suspend(req.item_id, req.section, req.now))
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@app.post("/review/resume")
async def resume_section(req: SectionRequest, service: ReviewService = Depends(get_service)):
    try:
        return _state(await service.resume(req.item_id, req.section, req.now))
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@app.post("/settings/invalidate")
async def invalidate_settings(service: ReviewService = Depends(get_service)):
    """Drop the cached review config so the next request re-reads settings."""
    service.config_cache.invalidate()
    return {"ok": True}
