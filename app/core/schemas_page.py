"""Pydantic schemas for generated landing pages and generation requests."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from app.core.intent_classifier import PageType
from app.core.schemas_persona import PersonaScoreVector

# =======================
# Generated page
# =======================


class Insight(BaseModel):
    text: str


class Stat(BaseModel):
    value: str
    label: str


class VisualContent(BaseModel):
    type: Literal["case_study", "highlight_box", "example"]
    title: str
    content: str


class CallToAction(BaseModel):
    text: str
    type: Literal["primary", "secondary"] = "primary"
    action: Literal["form", "new_section", "external"]
    form_id: str | None = Field(default=None, alias="formId")
    context: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}


class SingleScreenSection(BaseModel):
    """The one supported page section shape."""

    type: Literal["single_screen"] = "single_screen"
    headline: str
    subtitle: str
    insights: list[Insight]
    stats: list[Stat]
    visual_content: VisualContent = Field(alias="visualContent")
    how_it_works: list[str] = Field(alias="howItWorks")
    ctas: list[CallToAction]

    model_config = {"populate_by_name": True}


class GeneratedPage(BaseModel):
    """Structured landing-page variant returned to the caller."""

    type: PageType
    title: str
    description: str
    sections: list[SingleScreenSection]

    def to_payload(self) -> dict[str, Any]:
        """Serialize with the wire field names (visualContent, howItWorks, formId)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =======================
# Generation request / result
# =======================


class KnowledgeSnippet(BaseModel):
    """One ranked knowledge-base document."""

    id: str | None = None
    content: str
    source_type: str = "document"
    source_url: str | None = None
    similarity_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class PageGenerationRequest(BaseModel):
    """Input for one page generation."""

    message: str
    page_type: PageType
    persona: PersonaScoreVector = Field(default_factory=PersonaScoreVector)
    knowledge: list[KnowledgeSnippet] | None = Field(
        default=None, description="Ranked snippets; None means retrieve on demand"
    )
    history: list[ConversationTurn] = Field(default_factory=list)
    interaction_context: str | None = None
    session_id: str | None = None


class PageGenerationResult(BaseModel):
    """Outcome of one page generation."""

    success: bool
    page: GeneratedPage | None = None
    error: str | None = None
    errors: list[str] = Field(default_factory=list)
    retry_count: int = 0
    elapsed_ms: int = 0
    strategy: Literal["template", "full", "cached", "none"] = "none"
