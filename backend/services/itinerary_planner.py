"""
Itinerary Planner: runs one planning request end to end.

    1. Start the language-model call (it only needs the request).
    2. Resolve the destination; an unresolvable destination is the one fatal
       case, so the model call is cancelled and GeocodeError propagates.
    3. Concurrently estimate travel and collect venues, then enrich the
       incomplete venues through the throttled queue.
    4. Await the model, recover the plan and assemble the payload.

Gemini with a forced ``deliver_itinerary`` call is the primary model; when it
fails after retries, Groq is asked for the same plan as JSON text and its
answer goes through the same repair stages. Only when both fail does the
request fail.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from clients.gemini_client import ExternalAPIError, GeminiClient
from clients.groq_client import GroqClient
from config.settings import settings
from models.geo import ResolvedLocation, TravelEstimate
from models.itinerary import ItineraryPayload, StructuredItineraryPlan
from models.trip_request import TripRequest
from services.enrichment_service import EnrichmentResolver
from services.itinerary_assembler import assemble
from services.location_service import GeocodeError, LocationResolver
from services.plan_repair import RecoveryExhausted, recover_plan
from services.prompt_builder import DELIVER_ITINERARY_FUNCTION, ITINERARY_SCHEMA, build_prompt
from services.venue_service import VenueCollection, VenueService
from utils.id_generator import utc_timestamp

logger = logging.getLogger(__name__)

GROQ_SYSTEM_INSTRUCTION = (
    "Return the itinerary as a JSON object with the keys summary and days, "
    "following this JSON schema: "
)


@dataclass
class PlanningResult:
    """Outcome of one planning request.

    ``ok`` is True whenever the model answered; ``plan`` is None when the
    answer could not be turned into an itinerary.
    """

    ok: bool
    plan: Optional[StructuredItineraryPlan]
    raw: Any
    itinerary: ItineraryPayload

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "plan": self.plan.to_dict() if self.plan else None,
            "raw": self.raw,
            "itinerary": self.itinerary.to_dict(),
        }


class ItineraryPlanner:
    """Wires resolver, venues, enrichment, model and repair per request."""

    def __init__(
        self,
        resolver: LocationResolver,
        venue_service: VenueService,
        enrichment: EnrichmentResolver,
        gemini_client: Optional[GeminiClient] = None,
        groq_client: Optional[GroqClient] = None,
    ):
        self.resolver = resolver
        self.venue_service = venue_service
        self.enrichment = enrichment
        self.gemini_client = gemini_client
        self.groq_client = groq_client
        logger.info(
            "ItineraryPlanner initialised: maps=%s gemini=%s groq=%s places=%s",
            resolver.is_available(),
            gemini_client is not None,
            groq_client is not None,
            enrichment.is_available(),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def plan(self, request: TripRequest, request_id: Optional[str] = None) -> PlanningResult:
        """
        Plan one trip.

        Raises:
            GeocodeError: the destination cannot be resolved at all.
            ExternalAPIError: no language model produced a response.
            ValueError: required request fields are missing.
        """
        missing = request.missing_required()
        if missing:
            raise ValueError(f"{', '.join(missing)} required")
        duration = request.resolved_duration()
        if duration > settings.MAX_TRIP_DURATION_DAYS:
            raise ValueError(
                f"Trip is {duration} days; at most {settings.MAX_TRIP_DURATION_DAYS} days can be planned"
            )

        loop = asyncio.get_running_loop()
        prompt = build_prompt(request)
        llm_task = asyncio.ensure_future(self._call_llm(prompt, request_id))

        try:
            destination = await loop.run_in_executor(None, self.resolver.resolve, request.destination)
        except GeocodeError:
            llm_task.cancel()
            logger.warning(
                "Destination could not be resolved",
                extra={"request_id": request_id, "destination": request.destination},
            )
            raise

        try:
            origin = await self._resolve_origin(loop, request, request_id)
            estimate, collection = await asyncio.gather(
                loop.run_in_executor(
                    None, self.resolver.estimate_travel, origin, destination, request.mode
                ),
                self._collect_venues(loop, destination, request, request_id),
            )
        except BaseException:
            llm_task.cancel()
            raise

        raw = await llm_task
        try:
            plan, stage = recover_plan(raw)
        except RecoveryExhausted as e:
            logger.warning(
                "Itinerary recovery failed",
                extra={"request_id": request_id, "error": str(e)},
            )
            plan, stage = None, None

        payload = self._assemble(request, destination, origin, estimate, collection, plan, stage)
        logger.info(
            "Itinerary planned",
            extra={
                "request_id": request_id,
                "repair_stage": stage,
                "days": len(plan.days) if plan else 0,
                "degraded": payload.degraded,
            },
        )
        return PlanningResult(ok=True, plan=plan, raw=raw, itinerary=payload)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _resolve_origin(
        self,
        loop: asyncio.AbstractEventLoop,
        request: TripRequest,
        request_id: Optional[str],
    ) -> ResolvedLocation:
        """Origin failures are not fatal: fall back to the country centroid."""
        if not request.origin:
            return self.resolver.default_origin()
        try:
            return await loop.run_in_executor(None, self.resolver.resolve, request.origin)
        except GeocodeError as e:
            logger.info(
                "Origin unresolved, using default origin",
                extra={"request_id": request_id, "error": str(e)},
            )
            return self.resolver.default_origin()

    async def _collect_venues(
        self,
        loop: asyncio.AbstractEventLoop,
        destination: ResolvedLocation,
        request: TripRequest,
        request_id: Optional[str],
    ) -> VenueCollection:
        """Venue and enrichment failures degrade the payload, never the plan."""
        try:
            collection = await loop.run_in_executor(
                None, self.venue_service.collect, destination, request
            )
        except Exception as e:
            logger.warning(
                "Venue collection failed",
                extra={"request_id": request_id, "error": str(e)},
            )
            collection = VenueCollection()
            collection.mark_degraded("booking")
            collection.mark_degraded("places")
            return collection

        try:
            await self.enrichment.enrich_all(collection.venues, request_id=request_id)
        except Exception as e:
            logger.warning(
                "Venue enrichment failed",
                extra={"request_id": request_id, "error": str(e)},
            )
        return collection

    async def _call_llm(self, prompt: str, request_id: Optional[str]) -> Any:
        """Gemini structured call, then Groq JSON text. Fatal if both fail."""
        last_error: Optional[Exception] = None

        if self.gemini_client is not None:
            try:
                return await self.gemini_client.generate_structured(
                    prompt=prompt,
                    function_declaration=DELIVER_ITINERARY_FUNCTION,
                    request_id=request_id,
                )
            except ExternalAPIError as exc:
                last_error = exc
                logger.warning(
                    "Gemini itinerary call failed, trying Groq",
                    extra={"request_id": request_id, "error": str(exc)},
                )

        if self.groq_client is not None:
            loop = asyncio.get_running_loop()
            try:
                text = await loop.run_in_executor(
                    None,
                    lambda: self.groq_client.generate_json_content(
                        prompt=prompt,
                        system_instruction=GROQ_SYSTEM_INSTRUCTION + json.dumps(ITINERARY_SCHEMA),
                    ),
                )
                return {"candidates": [{"content": {"parts": [{"text": text}]}}]}
            except Exception as exc:
                last_error = exc
                logger.error(
                    "Groq itinerary call also failed",
                    extra={"request_id": request_id, "error": str(exc)},
                )

        raise ExternalAPIError(
            service="LLM",
            error=str(last_error) if last_error else "no language model configured",
        )

    @staticmethod
    def _assemble(
        request: TripRequest,
        destination: ResolvedLocation,
        origin: ResolvedLocation,
        estimate: TravelEstimate,
        collection: VenueCollection,
        plan: Optional[StructuredItineraryPlan],
        stage: Optional[str],
    ) -> ItineraryPayload:
        return assemble(
            plan,
            estimate,
            collection.venues,
            destination=destination,
            origin=origin,
            requested_days=request.resolved_duration(),
            start_date=request.start_date,
            end_date=request.end_date,
            repair_stage=stage,
            degraded_providers=collection.degraded_providers,
            created_at=utc_timestamp(),
        )
