import threading
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src import config
from src.application.event_handlers import ProviderEventHandler
from src.application.projection_maintainer import ProjectionMaintainer
from src.application.search_service import ProviderSearchService
from src.domain.criteria import DEFAULT_PAGE_SIZE, SearchCriteria
from src.domain.errors import SearchEngineError
from src.domain.geo import GeoPoint
from src.domain.models import ProviderHit, SearchableProviderRecord
from src.infrastructure.store_factory import build_provider_store

# ── Error kind → HTTP status ─────────────────────────────────────────────────
STATUS_BY_KIND = {
    "validation_error":    400,
    "record_not_found":    404,
    "duplicate_record":    409,
    "storage_unavailable": 503,
    "search_cancelled":    504,
}

# ── API Models ───────────────────────────────────────────────────────────────
class SearchRequest(BaseModel):
    latitude: float
    longitude: float
    radius_km: float
    service_ids: Optional[List[str]] = None
    min_rating: Optional[float] = None
    tiers: Optional[List[str]] = None
    term: Optional[str] = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

class SearchResponse(BaseModel):
    total_matches: int
    page: int
    page_size: int
    total_pages: int
    results: List[dict]  # Provider fields + distance_km

class ProviderCreateRequest(BaseModel):
    provider_id: str
    name: str
    latitude: float
    longitude: float
    tier: str = "free"
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

class ProviderSnapshotRequest(BaseModel):
    name: str
    latitude: float
    longitude: float
    tier: str = "free"
    service_ids: List[str] = []
    average_rating: Optional[float] = None
    review_count: int = 0
    is_active: bool = True
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

class LocationUpdate(BaseModel):
    latitude: float
    longitude: float

class ServicesUpdate(BaseModel):
    service_ids: List[str]

class RatingUpdate(BaseModel):
    average_rating: Optional[float] = None
    review_count: int

class TierUpdate(BaseModel):
    tier: str

class ProfileUpdate(BaseModel):
    name: str
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

# ── App Initialization ───────────────────────────────────────────────────────
app = FastAPI(
    title="Provider Discovery API",
    description="Radius search over service providers, ranked by tier, rating and distance.",
    version="1.0.0"
)

# ── CORS Middleware ──────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize infrastructure (global scope for singleton behavior)
store = build_provider_store()
maintainer = ProjectionMaintainer(store)
search_service = ProviderSearchService(store)
event_handler = ProviderEventHandler(maintainer)

if store.is_ready():
    print(f"[API] Provider store holds {store.count()} records. Service is READY.")
else:
    print("[API] WARNING: Provider store is empty. Run main.py or POST /providers to seed it.")


@app.exception_handler(SearchEngineError)
async def handle_engine_error(request: Request, error: SearchEngineError):
    status = STATUS_BY_KIND.get(error.kind, 500)
    print(f"[API] {request.method} {request.url.path} → {status} {error.kind}")
    return JSONResponse(status_code=status, content={"error": error.to_dict()})

# ── Endpoints ────────────────────────────────────────────────────────────────
@app.get("/")
def read_root():
    return {
        "message": "Provider Discovery API is running.",
        "status": "ready" if store.is_ready() else "empty",
        "providers_indexed": store.count(),
    }

@app.get("/status")
def get_status():
    """Store readiness, health probe result and per-tier counts."""
    return {
        "is_ready": store.is_ready(),
        "is_available": search_service.is_available(),
        "providers_indexed": store.count(),
        "backend": config.STORE_BACKEND,
        "tiers": store.get_tier_stats(),
    }

@app.post("/search", response_model=SearchResponse)
def search(request: SearchRequest):
    criteria = SearchCriteria.build(
        origin=GeoPoint(request.latitude, request.longitude),
        radius_km=request.radius_km,
        service_ids=request.service_ids,
        min_rating=request.min_rating,
        tiers=request.tiers,
        page=request.page,
        page_size=request.page_size,
        term=request.term,
    )

    cancel_event = threading.Event()
    timer = threading.Timer(config.SEARCH_TIMEOUT_SECONDS, cancel_event.set)
    timer.start()
    try:
        result = search_service.search(criteria, cancel_event=cancel_event)
    finally:
        timer.cancel()

    return SearchResponse(
        total_matches=result.total_matches,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        results=[_hit_to_dict(hit) for hit in result.hits],
    )

@app.get("/providers/{provider_id}")
def get_provider(provider_id: str):
    record = store.get(provider_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Provider '{provider_id}' is not indexed")
    return _record_to_dict(record)

@app.post("/providers", status_code=201)
def create_provider(body: ProviderCreateRequest):
    record = maintainer.create(
        provider_id=body.provider_id,
        display_name=body.name,
        location=GeoPoint(body.latitude, body.longitude),
        tier=body.tier,
        description=body.description,
        city=body.city,
        state=body.state,
    )
    return _record_to_dict(record)

@app.put("/providers/{provider_id}")
def index_provider(provider_id: str, body: ProviderSnapshotRequest):
    """Create or fully replace a provider from a complete snapshot."""
    record = maintainer.index_provider(SearchableProviderRecord(
        provider_id=provider_id,
        display_name=body.name,
        location=GeoPoint(body.latitude, body.longitude),
        subscription_tier=body.tier,
        service_ids=body.service_ids,
        average_rating=body.average_rating,
        review_count=body.review_count,
        is_active=body.is_active,
        description=body.description,
        city=body.city,
        state=body.state,
    ))
    return _record_to_dict(record)

@app.put("/providers/{provider_id}/location")
def update_location(provider_id: str, body: LocationUpdate):
    record = maintainer.update_location(provider_id, GeoPoint(body.latitude, body.longitude))
    return _record_to_dict(record)

@app.put("/providers/{provider_id}/services")
def update_services(provider_id: str, body: ServicesUpdate):
    return _record_to_dict(maintainer.update_services(provider_id, body.service_ids))

@app.put("/providers/{provider_id}/rating")
def update_rating(provider_id: str, body: RatingUpdate):
    record = maintainer.update_rating(provider_id, body.average_rating, body.review_count)
    return _record_to_dict(record)

@app.put("/providers/{provider_id}/tier")
def update_tier(provider_id: str, body: TierUpdate):
    return _record_to_dict(maintainer.update_tier(provider_id, body.tier))

@app.put("/providers/{provider_id}/profile")
def update_profile(provider_id: str, body: ProfileUpdate):
    record = maintainer.update_basic_info(
        provider_id,
        display_name=body.name,
        description=body.description,
        city=body.city,
        state=body.state,
    )
    return _record_to_dict(record)

@app.post("/providers/{provider_id}/deactivate")
def deactivate_provider(provider_id: str):
    maintainer.deactivate(provider_id)
    return {"message": f"Provider '{provider_id}' removed from search results"}

@app.delete("/providers/{provider_id}")
def delete_provider(provider_id: str):
    maintainer.delete(provider_id)
    return {"message": f"Provider '{provider_id}' deleted from the search index"}

@app.post("/events", status_code=202)
def receive_event(payload: dict):
    """Apply one provider domain event (see ProviderEventHandler)."""
    event_handler.handle(payload)
    return {"accepted": True, "type": payload.get("type")}

# ── Serialization ────────────────────────────────────────────────────────────
def _record_to_dict(record: SearchableProviderRecord) -> dict:
    return {
        "provider_id": record.provider_id,
        "name": record.display_name,
        "location": {
            "latitude": record.location.latitude,
            "longitude": record.location.longitude,
        },
        "service_ids": sorted(record.service_ids),
        "average_rating": record.average_rating,
        "review_count": record.review_count,
        "subscription_tier": record.subscription_tier.value,
        "is_active": record.is_active,
        "description": record.description,
        "city": record.city,
        "state": record.state,
    }

def _hit_to_dict(hit: ProviderHit) -> dict:
    return {**_record_to_dict(hit.record), "distance_km": round(hit.distance_km, 4)}

if __name__ == "__main__":
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
