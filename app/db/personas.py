"""Database operations for the user_personas table (one row per session)."""

from datetime import UTC, datetime

from app.core.logging import get_logger
from app.core.schemas_persona import (
    DETECTION_DIMENSIONS,
    DetectionVector,
    PainPoint,
    PersonaScoreVector,
)
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "user_personas"

_SCALAR_FIELDS = (
    "supplier_score",
    "distributor_score",
    "craft_score",
    "mid_sized_score",
    "large_score",
    "sales_focus_score",
    "marketing_focus_score",
    "operations_focus_score",
    "compliance_focus_score",
    "overall_confidence",
    "total_interactions",
    "vectors_updated_at",
)


def persona_to_row(session_id: str, persona: PersonaScoreVector) -> dict:
    """Flatten a persona into a user_personas row."""
    row: dict = {"session_id": session_id}
    for dimension in DETECTION_DIMENSIONS:
        vector = persona.vector(dimension)
        row[dimension.value] = vector.value
        row[f"{dimension.value}_confidence"] = vector.confidence
        row[f"{dimension.value}_history"] = list(vector.history)

    for field in _SCALAR_FIELDS:
        row[field] = getattr(persona, field)

    row["pain_points_detected"] = [p.value for p in persona.pain_points_detected]
    row["pain_points_confidence"] = {p.value: c for p, c in persona.pain_points_confidence.items()}
    row["last_updated"] = datetime.now(UTC).isoformat()
    return row


def row_to_persona(row: dict) -> PersonaScoreVector:
    """Rebuild a persona from a stored row, ignoring unknown pain points."""
    data: dict = {}
    for dimension in DETECTION_DIMENSIONS:
        name = dimension.value
        data[name] = DetectionVector(
            value=row.get(name),
            confidence=row.get(f"{name}_confidence") or 0.0,
            history=(row.get(f"{name}_history") or [])[-5:],
        )

    for field in _SCALAR_FIELDS:
        if row.get(field) is not None:
            data[field] = row[field]

    known = {p.value for p in PainPoint}
    detected = [PainPoint(p) for p in row.get("pain_points_detected") or [] if p in known]
    confidence = {
        PainPoint(k): v for k, v in (row.get("pain_points_confidence") or {}).items() if k in known
    }
    # Keep the detected list and confidence map consistent
    detected = list(dict.fromkeys(detected + list(confidence)))
    for pain_point in detected:
        confidence.setdefault(pain_point, 0.0)
    data["pain_points_detected"] = detected
    data["pain_points_confidence"] = confidence
    return PersonaScoreVector(**data)


def get_persona(session_id: str) -> PersonaScoreVector | None:
    """
    Load the stored persona for a session.

    Args:
        session_id: Visitor session id

    Returns:
        PersonaScoreVector or None if the session has no row yet
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("session_id", session_id)
        .maybe_single()
        .execute()
    )

    if not response or not response.data:
        return None
    return row_to_persona(response.data)


def upsert_persona(session_id: str, persona: PersonaScoreVector) -> dict:
    """
    Insert or replace the persona row for a session.

    Concurrent requests for one session are not locked: the last upsert wins.

    Returns:
        Stored row
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .upsert(persona_to_row(session_id, persona), on_conflict="session_id")
        .execute()
    )

    if not response.data:
        raise ValueError(f"Persona upsert returned no data for session {session_id}")
    return response.data[0]
