"""Session-level data lifecycle: privacy erasure and expiry."""

from datetime import UTC, datetime, timedelta

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

# Child tables first, persona row last
SESSION_TABLES = ("generated_brochures", "persona_signals", "conversation_history", "user_personas")


def erase_session(session_id: str) -> bool:
    """
    Delete every stored row for a session.

    Returns:
        True if a persona row existed
    """
    supabase = get_supabase()

    existed = False
    for table in SESSION_TABLES:
        response = supabase.table(table).delete().eq("session_id", session_id).execute()
        if table == "user_personas":
            existed = bool(response.data)

    logger.info(f"Erased session data for {session_id}", extra={"session_id": session_id})
    return existed


def list_expired_sessions(max_age_days: int) -> list[str]:
    """Session ids whose persona was last updated before the cutoff."""
    supabase = get_supabase()

    cutoff = (datetime.now(UTC) - timedelta(days=max_age_days)).isoformat()
    response = (
        supabase.table("user_personas")
        .select("session_id")
        .lt("last_updated", cutoff)
        .execute()
    )

    return [row["session_id"] for row in response.data or []]


def purge_expired_sessions(max_age_days: int) -> int:
    """Erase all sessions older than max_age_days. Returns count erased."""
    expired = list_expired_sessions(max_age_days)
    for session_id in expired:
        erase_session(session_id)
    return len(expired)
