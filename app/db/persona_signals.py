"""Database operations for the persona_signals audit log."""

from app.core.logging import get_logger
from app.core.schemas_persona import Signal, SignalDimension
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "persona_signals"


def record_signals(
    session_id: str,
    signals: list[Signal],
    confidence_before: float,
    confidence_after: float,
) -> int:
    """
    Write one audit row per signal.

    Args:
        session_id: Visitor session id
        signals: Signals applied in this interaction
        confidence_before: overall_confidence before applying
        confidence_after: overall_confidence after applying

    Returns:
        Number of rows written
    """
    if not signals:
        return 0

    supabase = get_supabase()

    rows = [
        {
            "session_id": session_id,
            "signal_type": signal.dimension.value,
            "signal_text": signal.evidence,
            "signal_strength": signal.strength.value,
            "pain_points_inferred": (
                [signal.value] if signal.dimension == SignalDimension.PAIN_POINT else []
            ),
            "score_updates": {signal.value: signal.confidence},
            "confidence_before": confidence_before,
            "confidence_after": confidence_after,
        }
        for signal in signals
    ]
    response = supabase.table(TABLE).insert(rows).execute()
    return len(response.data or [])
