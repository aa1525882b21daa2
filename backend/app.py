"""
Trip aggregation API — FastAPI application.

Resolves destinations, gathers lodging and activities, asks the language
model for a structured day-by-day plan and repairs whatever comes back.
Exposes a REST API under ``/api/*``.

Run:
    python backend/app.py          # starts uvicorn with reload
    uvicorn app:app --reload       # (from the backend/ directory)

Auto-generated API docs:
    http://localhost:8000/docs      (Swagger UI)
    http://localhost:8000/redoc     (ReDoc)
"""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

# ---------------------------------------------------------------------------
# Path setup: allow short imports like ``from config.settings import …``
# ---------------------------------------------------------------------------
sys.path.insert(0, os.path.dirname(__file__))

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from config.settings import redact_api_key, settings
from clients.gemini_client import ExternalAPIError, GeminiClient
from clients.groq_client import GroqClient
from clients.places_client import GooglePlacesClient
from models.trip_request import TripRequest
from schemas.api_models import (
    HealthResponse,
    PlanRequest,
    PlanResponse,
    SavePlanRequest,
    SavePlanResponse,
    TravelEstimateResponse,
)
from services.enrichment_service import EnrichmentResolver
from services.gazetteer import Gazetteer
from services.itinerary_planner import ItineraryPlanner
from services.location_service import GeocodeError, LocationResolver
from services.plan_store_service import PlanStore, PlanStoreError
from services.venue_service import VenueService
from utils.id_generator import generate_request_id

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level service instances (set during lifespan startup)
# ---------------------------------------------------------------------------
resolver: Optional[LocationResolver] = None
planner: Optional[ItineraryPlanner] = None
plan_store: Optional[PlanStore] = None
places_client: Optional[GooglePlacesClient] = None
gemini_client: Optional[GeminiClient] = None
groq_client: Optional[GroqClient] = None


# ---------------------------------------------------------------------------
# Lifespan: initialise and tear down services
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Build the service graph on startup; clean up on shutdown."""
    global resolver, planner, plan_store, places_client, gemini_client, groq_client

    try:
        gemini_client = GeminiClient()
        logger.info(
            "Gemini client initialized (%s, key %s)",
            settings.GEMINI_MODEL,
            redact_api_key(settings.GEMINI_KEY),
        )
    except ValueError as exc:
        logger.warning("Gemini client unavailable: %s", exc)

    try:
        groq_client = GroqClient()
    except ValueError as exc:
        logger.warning("Groq client unavailable: %s", exc)

    try:
        places_client = GooglePlacesClient()
    except ValueError as exc:
        logger.warning("Google Places client unavailable: %s", exc)

    resolver = LocationResolver(Gazetteer())
    planner = ItineraryPlanner(
        resolver=resolver,
        venue_service=VenueService(places_client=places_client),
        enrichment=EnrichmentResolver(client=places_client),
        gemini_client=gemini_client,
        groq_client=groq_client,
    )

    try:
        plan_store = PlanStore()
    except Exception as exc:
        logger.error("Plan store unavailable: %s", exc)

    yield  # ── application runs here ──

    logger.info("Shutting down trip aggregation API")


# ---------------------------------------------------------------------------
# App creation
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Trip Aggregation API",
    version="0.3.0",
    description="Resilient travel-data aggregation and itinerary synthesis for Malaysia.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
@app.exception_handler(GeocodeError)
async def _geocode_error(request: Request, exc: GeocodeError):
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(ExternalAPIError)
async def _external_api_error(request: Request, exc: ExternalAPIError):
    return JSONResponse(
        status_code=502,
        content={
            "success": False,
            "error": f"{exc.service} API failed: {exc.error}",
        },
    )


@app.exception_handler(PlanStoreError)
async def _plan_store_error(request: Request, exc: PlanStoreError):
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": f"Plan store unavailable: {exc}"},
    )


@app.exception_handler(ValueError)
async def _value_error(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": str(exc)},
    )


def _service_unavailable(name: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": f"{name} not initialized"},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

# ── Health check ────────────────────────────────────────────────

@app.get("/api/health", response_model=HealthResponse, tags=["system"])
async def health_check():
    """Return service health and which providers are configured."""
    if gemini_client:
        model_info = f"Gemini ({settings.GEMINI_MODEL})"
    elif groq_client:
        model_info = f"Groq ({settings.GROQ_MODEL})"
    else:
        model_info = "Not initialized"

    return HealthResponse(
        status="healthy" if planner else "starting",
        service="Trip Aggregation API",
        model=model_info,
        maps_available=bool(resolver and resolver.is_available()),
        places_available=places_client is not None,
        gemini_ready=gemini_client is not None,
        groq_ready=groq_client is not None,
        config_errors=settings.validate(),
    )


# ── Plan a trip ────────────────────────────────────────────────

@app.post("/api/plan", response_model=PlanResponse, tags=["planning"])
async def plan_trip(body: PlanRequest):
    """
    Plan a multi-day itinerary.

    ``ok`` with ``plan: null`` means the model answered but no itinerary
    could be recovered from it; transport failures are 502 instead.
    """
    if not planner:
        return _service_unavailable("Planner")

    trip = TripRequest.from_dict(body.model_dump(by_alias=True, exclude_none=True))
    request_id = generate_request_id()
    logger.info(
        "Planning request",
        extra={"request_id": request_id, "destination": trip.destination},
    )
    result = await planner.plan(trip, request_id=request_id)
    return PlanResponse(**result.to_dict())


# ── Travel estimate ────────────────────────────────────────────

@app.get("/api/travel-estimate", response_model=TravelEstimateResponse, tags=["planning"])
async def travel_estimate(
    destination: str = Query(..., min_length=1, description="Place name or 'lat,lng'"),
    origin: Optional[str] = Query(None, description="Place name or 'lat,lng'; defaults to the country centre"),
    mode: str = Query("driving"),
):
    """Door-to-door distance and duration between two places."""
    if not resolver:
        return _service_unavailable("Location resolver")

    loop = asyncio.get_running_loop()
    dest = await loop.run_in_executor(None, resolver.resolve, destination)
    start = (
        await loop.run_in_executor(None, resolver.resolve, origin)
        if origin else resolver.default_origin()
    )
    estimate = await loop.run_in_executor(None, resolver.estimate_travel, start, dest, mode)
    return TravelEstimateResponse(
        success=True,
        origin=start.to_dict(),
        destination=dest.to_dict(),
        estimate=estimate.to_dict(),
    )


# ── Saved plans (persistence boundary) ─────────────────────────

@app.post("/api/plans", response_model=SavePlanResponse, tags=["plans"])
async def save_plan(body: SavePlanRequest):
    """Store a composed itinerary payload and return its id."""
    if not plan_store:
        return _service_unavailable("Plan store")
    loop = asyncio.get_running_loop()
    plan_id = await loop.run_in_executor(None, plan_store.save, body.itinerary)
    return SavePlanResponse(success=True, plan_id=plan_id)


@app.get("/api/plans/{plan_id}", tags=["plans"])
async def get_plan(plan_id: str):
    """Return a stored itinerary payload."""
    if not plan_store:
        return _service_unavailable("Plan store")
    loop = asyncio.get_running_loop()
    payload = await loop.run_in_executor(None, plan_store.get, plan_id)
    if payload is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": f"Plan {plan_id} not found"},
        )
    return {"success": True, "itinerary": payload}


# ── Places photo proxy ─────────────────────────────────────────

@app.get("/api/photo", tags=["media"])
async def place_photo(
    ref: str = Query(..., min_length=1),
    maxwidth: int = Query(400, ge=1, le=1600),
):
    """Proxy a Google Places photo so the API key never reaches the client."""
    if not places_client:
        return _service_unavailable("Google Places client")
    loop = asyncio.get_running_loop()
    try:
        content, content_type = await loop.run_in_executor(
            None, places_client.fetch_photo, ref, maxwidth
        )
    except Exception as exc:
        logger.warning("Photo fetch failed: %s", exc)
        return JSONResponse(
            status_code=502,
            content={"success": False, "error": "Photo unavailable"},
        )
    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    errors = settings.validate()
    for err in errors:
        print(f"⚠️  Configuration warning: {err}")
    if not settings.GEMINI_KEY and not settings.GROQ_API_KEY:
        print("\n📝 Setup Instructions:")
        print("1. Copy backend/.env.example to backend/.env")
        print("2. Add your Gemini API key from https://aistudio.google.com/apikey")
        print("3. (Optional) Add Google Maps, RapidAPI Booking.com and Groq keys")
        print("4. Run the server again")
        sys.exit(1)

    print(f"🌐 Starting server on http://{settings.HOST}:{settings.PORT}")
    print(f"📖 API docs at http://{settings.HOST}:{settings.PORT}/docs")

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
