"""Personalized brochure assembled from the visitor's top pain points.

The brochure is plain structured content (title plus sections). Rendering to
PDF or slides is not done here.
"""

from pydantic import BaseModel, Field

from app.core.persona_accumulator import primary_persona_class
from app.core.schemas_page import KnowledgeSnippet
from app.core.schemas_persona import PainPoint, PersonaScoreVector

BROCHURE_TITLE = "Your Personalized BevGenie Solution"

_AUDIENCE_SUFFIX = {"supplier": " for Beverage Producers", "retailer": " for Distributors"}
_AUDIENCE_LABEL = {"supplier": "supplier", "retailer": "distributor"}


class BrochureSection(BaseModel):
    heading: str
    content: str


class Brochure(BaseModel):
    title: str
    sections: list[BrochureSection]
    pain_points_addressed: list[PainPoint] = Field(default_factory=list)


def _pain_point_label(pain_point: PainPoint) -> str:
    return pain_point.value.replace("_", " ")


def build_brochure(
    persona: PersonaScoreVector,
    documents: dict[PainPoint, list[KnowledgeSnippet]],
) -> Brochure:
    """
    Build a brochure for a persona.

    Args:
        persona: Accumulated persona
        documents: Knowledge snippets tagged with each pain point

    Returns:
        One section per top pain point, or generic sections when none is detected
    """
    summary = primary_persona_class(persona)
    org_type = summary["org_type"]
    pain_points = [PainPoint(p) for p in summary["top_pain_points"]]

    sections = []
    for pain_point in pain_points:
        content = "\n\n".join(doc.content for doc in documents.get(pain_point, []))
        sections.append(
            BrochureSection(
                heading=_pain_point_label(pain_point).upper(),
                content=content or f"Solutions for {_pain_point_label(pain_point)}",
            )
        )

    if not sections:
        audience = _AUDIENCE_LABEL.get(org_type, "beverage professional")
        sections.append(
            BrochureSection(
                heading="How We Can Help",
                content=(
                    f"Based on your profile as a {audience} focused on {summary['primary_focus']}, "
                    "we offer solutions tailored to your industry challenges."
                ),
            )
        )
        if org_type == "supplier":
            sections.append(
                BrochureSection(
                    heading="For Beverage Producers",
                    content=(
                        "We help producers like you optimize sales effectiveness, measure field ROI, "
                        "and position your brand in competitive markets."
                    ),
                )
            )

    return Brochure(
        title=BROCHURE_TITLE + _AUDIENCE_SUFFIX.get(org_type, ""),
        sections=sections,
        pain_points_addressed=pain_points,
    )
