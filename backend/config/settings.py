"""
Centralized configuration management for the trip aggregation backend.

Loads environment variables from .env file and provides typed settings
to all backend modules. Includes validation for required configuration.

Usage:
    from config.settings import settings
    api_key = settings.GOOGLE_MAPS_API_KEY
"""

import os
import logging
from typing import List
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory
_backend_dir = Path(__file__).resolve().parent.parent
load_dotenv(_backend_dir / ".env")

logger = logging.getLogger(__name__)


class Settings:
    """Centralized configuration singleton for all backend services."""

    # ===== FastAPI Configuration =====
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"
    # Public base URL used to build photo-proxy thumbnail links
    SERVER_URL: str = os.getenv("SERVER_URL", "http://localhost:8000")

    # ===== Gemini API Configuration (structured itinerary call) =====
    GEMINI_KEY: str = os.getenv("GEMINI_KEY", os.getenv("GEMINI_API_KEY", ""))
    GEMINI_MODEL: str = os.getenv("GEMINI_ITINERARY_MODEL", "gemini-2.0-flash")
    GEMINI_ITINERARY_TEMPERATURE: float = float(
        os.getenv("ITINERARY_TEMPERATURE", "0.55")
    )
    GEMINI_ITINERARY_MAX_TOKENS: int = int(
        os.getenv("ITINERARY_MAX_TOKENS", "8192")
    )
    GEMINI_TIMEOUT: int = int(os.getenv("GEMINI_TIMEOUT", "60"))
    GEMINI_MAX_RETRIES: int = int(os.getenv("GEMINI_MAX_RETRIES", "2"))

    # ===== Groq API Configuration (free-text fallback LLM) =====
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TEMPERATURE: float = float(os.getenv("GROQ_TEMPERATURE", "0.4"))
    GROQ_MAX_TOKENS: int = int(os.getenv("GROQ_MAX_TOKENS", "8192"))
    GROQ_TIMEOUT: int = int(os.getenv("GROQ_TIMEOUT", "30"))

    # ===== Google Maps / Places Configuration =====
    GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    GOOGLE_PLACES_API_KEY: str = os.getenv(
        "GOOGLE_PLACES_API_KEY", os.getenv("GOOGLE_MAPS_API_KEY", "")
    )
    ROUTING_TIMEOUT: int = int(os.getenv("ROUTING_TIMEOUT", "25"))
    PLACES_TIMEOUT: int = int(os.getenv("PLACES_TIMEOUT", "15"))

    # ===== Booking.com via RapidAPI =====
    RAPIDAPI_BOOKING_KEY: str = os.getenv(
        "RAPIDAPI_BOOKING_KEY", os.getenv("BOOKING_RAPIDAPI_KEY", "")
    )
    RAPIDAPI_BOOKING_HOST: str = os.getenv(
        "RAPIDAPI_BOOKING_HOST", "booking-com.p.rapidapi.com"
    )
    BOOKING_TIMEOUT: int = int(os.getenv("BOOKING_TIMEOUT", "20"))
    BOOKING_MAX_RESULTS: int = int(os.getenv("BOOKING_MAX_RESULTS", "30"))

    # ===== Persistence boundary =====
    PLAN_DB_URL: str = os.getenv(
        "PLAN_DB_URL",
        f"sqlite:///{_backend_dir / 'data' / 'plans.db'}",
    )

    # ===== Region defaults (Malaysia MVP) =====
    DEFAULT_COUNTRY: str = os.getenv("DEFAULT_COUNTRY", "Malaysia")
    DEFAULT_REGION_CODE: str = os.getenv("DEFAULT_REGION_CODE", "MY")
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "MYR")
    VALID_TRAVEL_MODES: List[str] = ["driving", "walking", "bicycling", "transit"]

    # ===== Aggregation rules =====
    DEFAULT_BUDGET: float = 1500.0          # MYR, used when no budget given
    DEFAULT_GROUP_SIZE: int = 2
    HAVERSINE_AVG_SPEED_KMH: float = 70.0   # conservative driving speed
    PRICE_SEARCH_MAX_DEPTH: int = int(os.getenv("PRICE_SEARCH_MAX_DEPTH", "6"))
    ENRICHMENT_DELAY_SECONDS: float = float(
        os.getenv("ENRICHMENT_DELAY_SECONDS", "0.12")
    )
    ENRICHMENT_BUDGET: int = int(os.getenv("ENRICHMENT_BUDGET", "10"))
    ENRICHMENT_RADIUS_METERS: int = 200
    ACTIVITY_SEARCH_RADIUS_METERS: int = 10000
    REPAIR_MAX_ITERATIONS: int = 4000
    MAX_TRIP_DURATION_DAYS: int = 14

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> List[str]:
        """Validate required configuration. Returns list of errors (empty = valid)."""
        errors = []

        if not cls.GEMINI_KEY and not cls.GROQ_API_KEY:
            errors.append(
                "At least one of GEMINI_KEY or GROQ_API_KEY is required — "
                "set it in backend/.env"
            )

        if not cls.GOOGLE_MAPS_API_KEY:
            errors.append(
                "GOOGLE_MAPS_API_KEY is missing — geocoding will rely on the "
                "built-in gazetteer and distances on haversine estimates"
            )

        if not 0 <= cls.GEMINI_ITINERARY_TEMPERATURE <= 2:
            errors.append(
                f"ITINERARY_TEMPERATURE must be 0-2, got {cls.GEMINI_ITINERARY_TEMPERATURE}"
            )

        if cls.ENRICHMENT_DELAY_SECONDS < 0:
            errors.append(
                f"ENRICHMENT_DELAY_SECONDS must be >= 0, got {cls.ENRICHMENT_DELAY_SECONDS}"
            )

        if not 1 <= cls.PORT <= 65535:
            errors.append(f"PORT must be 1-65535, got {cls.PORT}")

        return errors


def redact_api_key(key: str) -> str:
    """Redact API key to show only last 4 characters."""
    if not key or len(key) < 8:
        return "***INVALID***"
    return f"***...{key[-4:]}"


# Singleton instance, import this everywhere
settings = Settings()
