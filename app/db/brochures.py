"""Database operations for the generated_brochures table."""

from app.core.brochure import Brochure
from app.core.logging import get_logger
from app.core.schemas_persona import PersonaScoreVector
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "generated_brochures"


def save_brochure(session_id: str, brochure: Brochure, persona: PersonaScoreVector) -> dict:
    """
    Store a generated brochure with the persona it was built from.

    Returns:
        Inserted row
    """
    supabase = get_supabase()

    row = {
        "session_id": session_id,
        "brochure_content": brochure.model_dump(mode="json"),
        "persona_context": persona.model_dump(mode="json"),
        "pain_points_addressed": [p.value for p in brochure.pain_points_addressed],
    }
    response = supabase.table(TABLE).insert(row).execute()

    if not response.data:
        raise ValueError(f"Brochure insert returned no data for session {session_id}")

    logger.info(f"Saved brochure for session {session_id}", extra={"session_id": session_id})
    return response.data[0]


def get_latest_brochure(session_id: str) -> dict | None:
    """Most recent brochure row for a session, or None."""
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("session_id", session_id)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )

    return response.data[0] if response.data else None
