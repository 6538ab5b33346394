"""Database operations for the conversation_history table."""

from app.core.logging import get_logger
from app.core.schemas_page import ConversationTurn
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "conversation_history"


def add_message(
    session_id: str,
    role: str,
    content: str,
    persona_snapshot: dict | None = None,
    pain_points_inferred: list[str] | None = None,
    generation_mode: str | None = None,
    ui_specification: dict | None = None,
) -> dict:
    """
    Append one conversation turn.

    Args:
        session_id: Visitor session id
        role: "user" or "assistant"
        content: Message text
        persona_snapshot: Flattened persona at the time of the message
        pain_points_inferred: Pain points detected so far
        generation_mode: fresh, returning or data_connected
        ui_specification: Generated page payload, if any

    Returns:
        Inserted row
    """
    supabase = get_supabase()

    row = {
        "session_id": session_id,
        "message_role": role,
        "message_content": content,
        "persona_snapshot": persona_snapshot,
        "pain_points_inferred": pain_points_inferred or [],
        "generation_mode": generation_mode,
        "ui_specification": ui_specification,
    }
    response = supabase.table(TABLE).insert(row).execute()

    if not response.data:
        raise ValueError(f"Conversation insert returned no data for session {session_id}")
    return response.data[0]


def list_messages(session_id: str, limit: int = 10) -> list[dict]:
    """
    Most recent messages for a session, oldest first.

    Returns:
        List of conversation_history rows
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select("message_role, message_content, created_at")
        .eq("session_id", session_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )

    return list(reversed(response.data or []))


def to_turns(rows: list[dict]) -> list[ConversationTurn]:
    return [
        ConversationTurn(role=row["message_role"], content=row["message_content"] or "")
        for row in rows
        if row.get("message_role") in ("user", "assistant")
    ]


def count_user_messages(session_id: str) -> int:
    """Number of visitor messages stored for a session."""
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select("id", count="exact")
        .eq("session_id", session_id)
        .eq("message_role", "user")
        .execute()
    )

    return response.count or 0
