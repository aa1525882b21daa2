"""
Plan store: keeps composed itinerary payloads keyed by plan id.

The payload is stored as JSON text in a single table; this service has no
opinion on its shape beyond ``planId``, ``createdAt`` and the destination
name used for listing. SQLite by default (``PLAN_DB_URL``).

Usage:
    from services.plan_store_service import PlanStore

    store = PlanStore()
    plan_id = store.save(payload.to_dict())
    store.get(plan_id)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from utils.id_generator import generate_plan_id, utc_timestamp

logger = logging.getLogger(__name__)


class PlanStoreError(Exception):
    """Raised when the plan database cannot be read or written."""


class PlanStore:
    """Read/write access to the saved-plans table."""

    def __init__(self, db_url: Optional[str] = None):
        url = db_url or settings.PLAN_DB_URL
        if url.startswith("sqlite:///") and ":memory:" not in url:
            Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_engine(url, pool_pre_ping=True)
        self._Session = sessionmaker(bind=self._engine)
        self._create_table()

    def _create_table(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("""
                CREATE TABLE IF NOT EXISTS saved_plans (
                    plan_id     VARCHAR(64) PRIMARY KEY,
                    created_at  VARCHAR(40) NOT NULL,
                    destination VARCHAR(255),
                    payload     TEXT NOT NULL
                )
            """))

    def save(self, payload: Dict[str, Any]) -> str:
        """
        Store a payload and return its plan id.

        A payload without ``planId`` gets a new one; saving an existing id
        replaces the stored payload.
        """
        payload = dict(payload)
        plan_id = payload.get("planId") or generate_plan_id()
        payload["planId"] = plan_id
        payload["createdAt"] = payload.get("createdAt") or utc_timestamp()
        destination = payload.get("destination")
        destination_name = destination.get("formattedName") if isinstance(destination, dict) else None

        session = self._Session()
        try:
            session.execute(text("DELETE FROM saved_plans WHERE plan_id = :plan_id"), {"plan_id": plan_id})
            session.execute(
                text("""
                    INSERT INTO saved_plans (plan_id, created_at, destination, payload)
                    VALUES (:plan_id, :created_at, :destination, :payload)
                """),
                {
                    "plan_id": plan_id,
                    "created_at": payload["createdAt"],
                    "destination": destination_name,
                    "payload": json.dumps(payload, default=str),
                },
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Saving plan {plan_id} failed: {e}")
            raise PlanStoreError(str(e)) from e
        finally:
            session.close()

        logger.info("Plan saved", extra={"plan_id": plan_id, "destination": destination_name})
        return plan_id

    def get(self, plan_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored payload, or None when the id is unknown."""
        session = self._Session()
        try:
            row = session.execute(
                text("SELECT payload FROM saved_plans WHERE plan_id = :plan_id"),
                {"plan_id": plan_id},
            ).fetchone()
        except SQLAlchemyError as e:
            logger.error(f"Loading plan {plan_id} failed: {e}")
            raise PlanStoreError(str(e)) from e
        finally:
            session.close()
        return json.loads(row[0]) if row else None
