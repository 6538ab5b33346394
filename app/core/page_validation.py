"""Structural validation for generated landing pages.

validate_page() is pure: it returns a list of violated-rule descriptions,
and an empty list means the page can be parsed into a GeneratedPage.
"""

import re
from typing import Any

from pydantic import ValidationError

from app.core.schemas_page import GeneratedPage

HEADLINE_RANGE = (20, 80)
SUBTITLE_RANGE = (15, 60)
INSIGHT_COUNT = (3, 5)
INSIGHT_RANGE = (50, 250)
STAT_COUNT = 3
STAT_VALUE_MAX = 15
STAT_LABEL_MAX = 40
STEP_COUNT = (3, 5)
STEP_RANGE = (20, 100)
CTA_COUNT = (2, 3)
CTA_TEXT_MAX = 40

VISUAL_TYPES = {"case_study", "highlight_box", "example"}
CTA_ACTIONS = {"form", "new_section", "external"}
CTA_TYPES = {"primary", "secondary"}

_UNRESOLVED_SLOT = re.compile(r"\{\{\s*\w+\s*\}\}")


def _insight_text(insight: Any) -> str | None:
    if isinstance(insight, str):
        return insight
    if isinstance(insight, dict) and isinstance(insight.get("text"), str):
        return insight["text"]
    return None


def normalize_insights(page: dict) -> dict:
    """Wrap raw insight strings into {"text": ...} records, in place."""
    for section in page.get("sections") or []:
        if isinstance(section, dict) and isinstance(section.get("insights"), list):
            section["insights"] = [
                {"text": item} if isinstance(item, str) else item for item in section["insights"]
            ]
    return page


def _check_length(errors: list[str], label: str, value: Any, bounds: tuple[int, int]) -> None:
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{label} is missing")
        return
    low, high = bounds
    if not low <= len(value) <= high:
        errors.append(f"{label} must be {low}-{high} characters (got {len(value)})")


def _find_unresolved(node: Any, path: str, errors: list[str]) -> None:
    if isinstance(node, str):
        if _UNRESOLVED_SLOT.search(node):
            errors.append(f"{path} contains an unresolved placeholder")
    elif isinstance(node, dict):
        for key, value in node.items():
            _find_unresolved(value, f"{path}.{key}", errors)
    elif isinstance(node, list):
        for i, value in enumerate(node):
            _find_unresolved(value, f"{path}[{i}]", errors)


def _validate_section(section: dict, errors: list[str]) -> None:
    _check_length(errors, "headline", section.get("headline"), HEADLINE_RANGE)
    _check_length(errors, "subtitle", section.get("subtitle"), SUBTITLE_RANGE)

    insights = section.get("insights")
    if not isinstance(insights, list):
        errors.append("insights must be a list")
    else:
        if not INSIGHT_COUNT[0] <= len(insights) <= INSIGHT_COUNT[1]:
            errors.append(f"insights must have {INSIGHT_COUNT[0]}-{INSIGHT_COUNT[1]} items (got {len(insights)})")
        for i, insight in enumerate(insights):
            _check_length(errors, f"insights[{i}]", _insight_text(insight), INSIGHT_RANGE)

    stats = section.get("stats")
    if not isinstance(stats, list):
        errors.append("stats must be a list")
    else:
        if len(stats) != STAT_COUNT:
            errors.append(f"stats must have exactly {STAT_COUNT} items (got {len(stats)})")
        for i, stat in enumerate(stats):
            if not isinstance(stat, dict):
                errors.append(f"stats[{i}] must be an object")
                continue
            value, label = stat.get("value"), stat.get("label")
            if not isinstance(value, str) or not value.strip() or len(value) > STAT_VALUE_MAX:
                errors.append(f"stats[{i}].value must be 1-{STAT_VALUE_MAX} characters")
            if not isinstance(label, str) or not label.strip() or len(label) > STAT_LABEL_MAX:
                errors.append(f"stats[{i}].label must be 1-{STAT_LABEL_MAX} characters")

    visual = section.get("visualContent")
    if not isinstance(visual, dict):
        errors.append("visualContent is missing")
    else:
        if visual.get("type") not in VISUAL_TYPES:
            errors.append(f"visualContent.type must be one of {sorted(VISUAL_TYPES)}")
        if not visual.get("title") or not visual.get("content"):
            errors.append("visualContent must have title and content")

    steps = section.get("howItWorks")
    if not isinstance(steps, list):
        errors.append("howItWorks must be a list")
    else:
        if not STEP_COUNT[0] <= len(steps) <= STEP_COUNT[1]:
            errors.append(f"howItWorks must have {STEP_COUNT[0]}-{STEP_COUNT[1]} steps (got {len(steps)})")
        for i, step in enumerate(steps):
            _check_length(errors, f"howItWorks[{i}]", step, STEP_RANGE)

    ctas = section.get("ctas")
    if not isinstance(ctas, list):
        errors.append("ctas must be a list")
    else:
        if not CTA_COUNT[0] <= len(ctas) <= CTA_COUNT[1]:
            errors.append(f"ctas must have {CTA_COUNT[0]}-{CTA_COUNT[1]} items (got {len(ctas)})")
        for i, cta in enumerate(ctas):
            if not isinstance(cta, dict):
                errors.append(f"ctas[{i}] must be an object")
                continue
            text = cta.get("text")
            if not isinstance(text, str) or not text.strip() or len(text) > CTA_TEXT_MAX:
                errors.append(f"ctas[{i}].text must be 1-{CTA_TEXT_MAX} characters")
            if cta.get("action") not in CTA_ACTIONS:
                errors.append(f"ctas[{i}].action must be one of {sorted(CTA_ACTIONS)}")
            if cta.get("type", "primary") not in CTA_TYPES:
                errors.append(f"ctas[{i}].type must be primary or secondary")


def validate_page(page: Any) -> list[str]:
    """
    Check a raw page object against the single-screen page rules.

    Args:
        page: Parsed page object (dict with type/title/description/sections)

    Returns:
        List of violation descriptions (empty list = valid)
    """
    if not isinstance(page, dict):
        return ["page must be an object"]

    errors: list[str] = []
    if not page.get("title"):
        errors.append("title is missing")

    sections = page.get("sections")
    if not isinstance(sections, list) or not sections:
        return errors + ["page must have exactly one single_screen section"]

    single_screens = [s for s in sections if isinstance(s, dict) and s.get("type") == "single_screen"]
    if len(sections) != 1 or len(single_screens) != 1:
        errors.append("page must have exactly one single_screen section")
    if not single_screens:
        return errors

    _validate_section(single_screens[0], errors)
    _find_unresolved(page, "page", errors)

    if not errors:
        try:
            GeneratedPage.model_validate(page)
        except ValidationError as e:
            errors.extend(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )

    return errors


def parse_page(page: dict) -> GeneratedPage:
    """Build the typed page from a raw object that already passed validate_page."""
    return GeneratedPage.model_validate(page)
