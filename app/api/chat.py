"""Chat endpoints: visitor messages, navigation interactions and session data."""

import uuid

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field, ValidationError

from app.core.config import ConfigurationError, Settings, get_settings, validate_generation_config
from app.core.logging import get_logger
from app.services.chat_pipeline import ChatResult, get_chat_pipeline

logger = get_logger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    message: str = Field(..., description="Visitor message (1-5000 chars)")
    interaction_context: str | None = Field(
        default=None,
        alias="interactionContext",
        description="Text of the page element the visitor clicked, if any",
    )

    model_config = {"populate_by_name": True}


class InteractionRequest(BaseModel):
    """Request body for POST /chat/interaction."""

    context: str = Field(..., description="Text of the clicked navigation element")
    source: str = Field(default="navigation", description="Where the interaction happened")


def _max_message_chars() -> int:
    # Input limits are enforced even when settings cannot load
    try:
        return get_settings().MAX_MESSAGE_CHARS
    except ValidationError:
        return Settings.model_fields["MAX_MESSAGE_CHARS"].default


def _session_id(request: Request) -> str | None:
    return request.cookies.get(get_settings().SESSION_COOKIE_NAME)


def _set_session_cookie(response: Response, session_id: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        session_id,
        max_age=settings.SESSION_MAX_AGE_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.BEVGENIE_ENV == "prod",
    )


def _chat_payload(result: ChatResult) -> dict:
    payload = {
        "success": True,
        "message": result.reply,
        "session": {
            "sessionId": result.session_id,
            "persona": result.persona.model_dump(mode="json"),
            "messageCount": result.message_count,
        },
        "signals": result.signals,
        "generationMode": result.generation_mode,
        "knowledgeDocuments": len(result.knowledge),
    }
    page_result = result.page_result
    if page_result and page_result.success and result.intent:
        payload["generatedPage"] = {
            "page": page_result.page.to_payload(),
            "intent": result.intent.intent.value,
            "intentConfidence": result.intent.confidence,
            "strategy": page_result.strategy,
        }
    return payload


@router.post("/chat")
async def post_chat(
    body: ChatRequest,
    request: Request,
    response: Response,
) -> dict:
    """
    Process a visitor message and return the reply plus an optional page.

    Raises:
        HTTPException 400: Empty or oversized message
        HTTPException 503: Generation service not configured
        HTTPException 500: Unexpected failure
    """
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required and must be a non-empty string")
    max_chars = _max_message_chars()
    if len(body.message) > max_chars:
        raise HTTPException(status_code=400, detail=f"Message is too long (max {max_chars} characters)")

    try:
        validate_generation_config(get_settings())
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Chat unavailable, configuration error: {e}")
        raise HTTPException(status_code=503, detail="AI service not configured") from e

    session_id = _session_id(request) or str(uuid.uuid4())

    try:
        result = await get_chat_pipeline().process(session_id, message, body.interaction_context)
    except HTTPException:
        raise
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail="AI service not configured") from e
    except Exception as e:
        logger.exception(f"Failed to process chat message: {e}", extra={"session_id": session_id})
        raise HTTPException(status_code=500, detail="Failed to process chat message") from e

    _set_session_cookie(response, session_id)
    return _chat_payload(result)


@router.get("/chat")
async def get_chat(request: Request) -> dict:
    """
    Return the current session snapshot.

    Raises:
        HTTPException 404: No session cookie or no stored persona
    """
    session_id = _session_id(request)
    if not session_id:
        raise HTTPException(status_code=404, detail="No active session")

    try:
        snapshot = await get_chat_pipeline().snapshot(session_id)
    except Exception as e:
        logger.exception(f"Failed to load session: {e}", extra={"session_id": session_id})
        raise HTTPException(status_code=500, detail="Failed to load session") from e

    if snapshot is None:
        raise HTTPException(status_code=404, detail="No active session")
    return snapshot


@router.post("/chat/interaction")
async def post_interaction(
    body: InteractionRequest,
    request: Request,
    response: Response,
) -> dict:
    """Record a navigation click as persona evidence."""
    context = body.context.strip()
    if not context:
        raise HTTPException(status_code=400, detail="Interaction context is required")

    session_id = _session_id(request) or str(uuid.uuid4())
    try:
        persona = await get_chat_pipeline().record_interaction(session_id, context)
    except Exception as e:
        logger.exception(f"Failed to record interaction: {e}", extra={"session_id": session_id})
        raise HTTPException(status_code=500, detail="Failed to record interaction") from e

    _set_session_cookie(response, session_id)
    return {"sessionId": session_id, "persona": persona.model_dump(mode="json")}


@router.post("/chat/brochure")
async def post_brochure(request: Request) -> dict:
    """
    Build a brochure from the session's detected pain points.

    Raises:
        HTTPException 404: No session cookie or no stored persona
    """
    session_id = _session_id(request)
    if not session_id:
        raise HTTPException(status_code=404, detail="No active session")

    try:
        brochure = await get_chat_pipeline().brochure(session_id)
    except Exception as e:
        logger.exception(f"Failed to generate brochure: {e}", extra={"session_id": session_id})
        raise HTTPException(status_code=500, detail="Failed to generate brochure") from e

    if brochure is None:
        raise HTTPException(status_code=404, detail="No active session")
    return {"sessionId": session_id, "brochure": brochure.model_dump(mode="json")}


@router.get("/chat/brochure")
async def get_brochure(request: Request) -> dict:
    """Return the most recently stored brochure for the session."""
    session_id = _session_id(request)
    if not session_id:
        raise HTTPException(status_code=404, detail="No active session")

    try:
        row = await get_chat_pipeline().latest_brochure(session_id)
    except Exception as e:
        logger.exception(f"Failed to load brochure: {e}", extra={"session_id": session_id})
        raise HTTPException(status_code=500, detail="Failed to load brochure") from e

    if row is None:
        raise HTTPException(status_code=404, detail="No brochure for this session")
    return {
        "sessionId": session_id,
        "brochure": row["brochure_content"],
        "createdAt": row.get("created_at"),
    }


@router.delete("/chat")
async def delete_chat(
    request: Request,
    response: Response,
) -> dict:
    """Erase all data for the current session and clear the cookie."""
    session_id = _session_id(request)
    if not session_id:
        return {"deleted": False}

    try:
        deleted = await get_chat_pipeline().erase(session_id)
    except Exception as e:
        logger.exception(f"Failed to erase session: {e}", extra={"session_id": session_id})
        raise HTTPException(status_code=500, detail="Failed to delete session data") from e

    response.delete_cookie(get_settings().SESSION_COOKIE_NAME)
    return {"deleted": deleted}
