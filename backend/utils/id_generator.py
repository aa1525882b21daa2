"""ID generation utilities."""
import uuid
from datetime import datetime, timezone


def generate_plan_id() -> str:
    """
    Generate a unique itinerary plan ID.

    Format: plan_{timestamp}_{uuid_short}
    Example: plan_20260208_a3f2d1c4

    Returns:
        str: A unique plan identifier
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    uuid_short = str(uuid.uuid4())[:8]
    return f"plan_{timestamp}_{uuid_short}"


def generate_request_id() -> str:
    """
    Generate a unique request ID for log correlation.

    Returns:
        str: A unique request identifier
    """
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
