"""Pre-authored single-screen page templates.

Templates provide the page structure and the model fills only the
{{slot}} placeholders. Filling walks the template tree and substitutes
inside each string, so values containing braces or quotes are inserted
verbatim with no re-serialization.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Any

from app.core.intent_classifier import PageType

SLOT_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
UNFILLED_SENTINEL = "[Content]"


@dataclass(frozen=True)
class TemplateVariant:
    id: str
    name: str
    description: str
    best_for: tuple[str, ...]
    section: dict[str, Any]


@dataclass(frozen=True)
class PlaceholderSlot:
    """A {{name}} placeholder with the field it sits in and its length budget."""

    name: str
    kind: str
    max_chars: int


# field kind -> max characters of the containing field
_FIELD_LIMITS: dict[str, int] = {
    "headline": 80,
    "subtitle": 60,
    "insight": 250,
    "stat_value": 15,
    "stat_label": 40,
    "visual_title": 80,
    "visual_content": 400,
    "step": 100,
    "cta": 40,
}


def _cta_demo(text: str) -> dict:
    return {"text": text, "type": "primary", "action": "form", "formId": "demo"}


def _cta_section(text: str, topic: str) -> dict:
    return {"text": text, "type": "secondary", "action": "new_section", "context": {"topic": topic}}


def _stats(prefix: str) -> list[dict]:
    return [
        {"value": f"{{{{{prefix}{i}_value}}}}", "label": f"{{{{{prefix}{i}_label}}}}"}
        for i in (1, 2, 3)
    ]


# =======================
# Solution brief
# =======================

SOLUTION_BRIEF_TEMPLATES: list[TemplateVariant] = [
    TemplateVariant(
        id="solution_brief_roi_tracking",
        name="ROI & Measurement Focus",
        description="Emphasizes measurement, tracking and proving field execution value",
        best_for=("roi", "track", "measure", "prove", "effectiveness", "results", "impact"),
        section={
            "type": "single_screen",
            "headline": "Prove {{solution_area}} ROI with Data-Driven Insights",
            "subtitle": "{{specific_capability}}",
            "insights": [
                "Velocity Shift Detection: {{insight_mechanism}} surfaces {{percentage}}% more opportunities hidden in {{data_source}}.",
                "Real-Time Visibility: {{tracking_capability}} shows {{tracked_metric}} as it happens, so you can act {{timeframe}} sooner.",
                "Automated ROI Calculation: AI converts {{input_data}} into {{output_metric}} your leadership can sign off on.",
            ],
            "stats": _stats("roi_stat"),
            "visualContent": {
                "type": "case_study",
                "title": "Real-World Impact",
                "content": "{{case_study_story}}",
            },
            "howItWorks": [
                "Connect your {{data_source_1}} and {{data_source_2}} in minutes",
                "AI analyzes {{analysis_subject}} across every account",
                "Receive {{delivery_format}} with clear next steps",
                "Track ROI on every {{tracked_item}} you fund",
            ],
            "ctas": [
                _cta_demo("Schedule ROI Analysis"),
                _cta_section("View Case Studies", "success_stories"),
                _cta_section("Explore Implementation", "implementation"),
            ],
        },
    ),
    TemplateVariant(
        id="solution_brief_sales_enablement",
        name="Sales Team Enablement",
        description="Focuses on empowering sales teams and field execution",
        best_for=("sales", "field", "team", "enablement", "territory", "reps", "execution"),
        section={
            "type": "single_screen",
            "headline": "Empower Your {{team_type}} to {{performance_goal}}",
            "subtitle": "{{enablement_capability}}",
            "insights": [
                "Smart Territory Optimization: {{optimization_method}} puts reps in front of {{opportunity_type}}, lifting {{efficiency_metric}}.",
                "Real-Time Coaching: {{coaching_feature}} gives {{team_members}} the right guidance at the moment of the sale.",
                "Performance Visibility: {{tracking_system}} shows managers {{tracked_activities}} without chasing spreadsheets.",
            ],
            "stats": _stats("sales_stat"),
            "visualContent": {
                "type": "example",
                "title": "Sales Team Success",
                "content": "{{sales_example_scenario}}",
            },
            "howItWorks": [
                "Integrate with {{sales_systems}} you already use",
                "AI analyzes {{sales_data_points}} for every territory",
                "Deliver recommendations via {{delivery_channels}}",
                "Track {{performance_metrics}} in real time",
            ],
            "ctas": [
                _cta_demo("Transform Your Sales Team"),
                _cta_section("See Success Stories", "testimonials"),
                _cta_section("Explore Features", "features"),
            ],
        },
    ),
    TemplateVariant(
        id="solution_brief_compliance_risk",
        name="Compliance & Risk Management",
        description="Focuses on regulatory compliance and risk mitigation",
        best_for=("compliance", "regulatory", "risk", "audit", "regulation", "legal", "governance"),
        section={
            "type": "single_screen",
            "headline": "Stay Ahead of {{compliance_area}} Requirements",
            "subtitle": "{{compliance_capability}}",
            "insights": [
                "Automated Compliance Monitoring: {{monitoring_system}} tracks {{compliance_areas}} and flags {{risk_types}} early.",
                "Audit Trail Management: {{documentation_system}} keeps {{documentation_type}} ready for every audit request.",
                "Risk Assessment: {{risk_feature}} scores {{risk_dimensions}} continuously and recommends {{mitigation_step}}.",
            ],
            "stats": _stats("compliance_stat"),
            "visualContent": {
                "type": "case_study",
                "title": "Compliance Success",
                "content": "{{compliance_story}}",
            },
            "howItWorks": [
                "Configure {{compliance_requirements}} once",
                "The system monitors {{monitoring_scope}} daily",
                "Receive alerts whenever {{alert_conditions}}",
                "Export {{reporting_outputs}} for regulators",
            ],
            "ctas": [
                _cta_demo("Ensure Compliance"),
                _cta_section("View Compliance Features", "compliance"),
            ],
        },
    ),
]

# =======================
# Feature showcase
# =======================

FEATURE_SHOWCASE_TEMPLATES: list[TemplateVariant] = [
    TemplateVariant(
        id="feature_showcase_analytics",
        name="Analytics Capabilities",
        description="Highlights dashboards, reporting and data capabilities",
        best_for=("dashboard", "report", "analytics", "data", "insight", "visibility"),
        section={
            "type": "single_screen",
            "headline": "See {{analytics_scope}} in One Place",
            "subtitle": "{{analytics_capability}}",
            "insights": [
                "Unified Dashboards: {{dashboard_feature}} combines {{data_sources}} into a single view of performance.",
                "Depletion Analytics: {{depletion_feature}} spots {{velocity_pattern}} by account, SKU and region.",
                "Custom Reporting: {{reporting_feature}} lets your team answer {{question_type}} without waiting on analysts.",
            ],
            "stats": _stats("analytics_stat"),
            "visualContent": {
                "type": "highlight_box",
                "title": "What You Get",
                "content": "{{analytics_highlight}}",
            },
            "howItWorks": [
                "Connect {{connected_systems}} with guided setup",
                "BevGenie normalizes {{normalized_data}} automatically",
                "Explore {{explored_views}} with plain-language questions",
            ],
            "ctas": [
                _cta_demo("See It Live"),
                _cta_section("Browse All Features", "features"),
            ],
        },
    ),
    TemplateVariant(
        id="feature_showcase_ai_assistant",
        name="AI Assistant Capabilities",
        description="Highlights the conversational AI and recommendations",
        best_for=("ai", "assistant", "recommend", "automate", "predict", "genie"),
        section={
            "type": "single_screen",
            "headline": "Ask {{assistant_scope}} Questions, Get Answers",
            "subtitle": "{{assistant_capability}}",
            "insights": [
                "Natural Language Answers: {{nl_feature}} turns questions about {{question_subject}} into clear, sourced answers.",
                "Proactive Recommendations: {{recommendation_feature}} suggests {{recommended_action}} before opportunities slip.",
                "Always-On Monitoring: {{monitoring_feature}} watches {{monitored_metric}} and alerts the right people.",
            ],
            "stats": _stats("ai_stat"),
            "visualContent": {
                "type": "example",
                "title": "Example Conversation",
                "content": "{{assistant_example}}",
            },
            "howItWorks": [
                "Ask about {{ask_topic}} in plain English",
                "AI searches {{searched_data}} and your market data",
                "Get {{answer_format}} with recommended next steps",
            ],
            "ctas": [
                _cta_demo("Try the AI Assistant"),
                _cta_section("How the AI Works", "ai"),
            ],
        },
    ),
]

# =======================
# Case study
# =======================

CASE_STUDY_TEMPLATES: list[TemplateVariant] = [
    TemplateVariant(
        id="case_study_supplier_growth",
        name="Supplier Growth Story",
        description="A supplier or producer growing distribution and velocity",
        best_for=("supplier", "brand", "growth", "distribution", "velocity", "craft"),
        section={
            "type": "single_screen",
            "headline": "How {{customer_name}} Grew {{growth_metric}}",
            "subtitle": "{{story_summary}}",
            "insights": [
                "The Challenge: {{customer_name}} struggled with {{challenge_detail}} across {{challenge_scope}}.",
                "The Approach: Using {{solution_used}}, the team focused reps on {{focus_area}} every week.",
                "The Outcome: Within {{outcome_timeframe}} they achieved {{outcome_detail}} and kept the gains.",
            ],
            "stats": _stats("story_stat"),
            "visualContent": {
                "type": "case_study",
                "title": "In Their Words",
                "content": "{{customer_quote}}",
            },
            "howItWorks": [
                "Onboarded {{onboarded_data}} in the first week",
                "Prioritized {{prioritized_accounts}} using AI scoring",
                "Reviewed {{reviewed_metrics}} in weekly team huddles",
            ],
            "ctas": [
                _cta_demo("Get Results Like These"),
                _cta_section("More Success Stories", "success_stories"),
            ],
        },
    ),
    TemplateVariant(
        id="case_study_distributor_efficiency",
        name="Distributor Efficiency Story",
        description="A distributor or retailer improving portfolio execution",
        best_for=("distributor", "retailer", "portfolio", "wholesale", "efficiency", "accounts"),
        section={
            "type": "single_screen",
            "headline": "How {{customer_name}} Sharpened {{improved_area}}",
            "subtitle": "{{story_summary}}",
            "insights": [
                "Before BevGenie: {{customer_name}} managed {{portfolio_detail}} with {{old_process}}.",
                "What Changed: {{solution_used}} gave account managers {{new_capability}} for every call.",
                "The Result: {{outcome_detail}} across {{outcome_scope}} in the first {{outcome_timeframe}}.",
            ],
            "stats": _stats("dist_stat"),
            "visualContent": {
                "type": "case_study",
                "title": "Results Snapshot",
                "content": "{{results_snapshot}}",
            },
            "howItWorks": [
                "Mapped {{mapped_portfolio}} by supplier and account",
                "Flagged {{flagged_gaps}} automatically each week",
                "Coached reps on {{coached_topics}} with live data",
            ],
            "ctas": [
                _cta_demo("Talk to Our Team"),
                _cta_section("See the Platform", "features"),
            ],
        },
    ),
]

# =======================
# Comparison
# =======================

COMPARISON_TEMPLATES: list[TemplateVariant] = [
    TemplateVariant(
        id="comparison_vs_spreadsheets",
        name="Versus Manual Process",
        description="Compares BevGenie against spreadsheets and manual reporting",
        best_for=("spreadsheet", "manual", "excel", "current process", "today", "instead"),
        section={
            "type": "single_screen",
            "headline": "BevGenie vs. {{legacy_approach}}: The Real Difference",
            "subtitle": "{{comparison_summary}}",
            "insights": [
                "Speed: {{legacy_approach}} takes {{legacy_time}}, while BevGenie delivers {{new_time_result}}.",
                "Accuracy: {{accuracy_point}} removes the {{error_source}} that manual reporting introduces.",
                "Actionability: Instead of static numbers, teams get {{action_output}} tied to each account.",
            ],
            "stats": _stats("compare_stat"),
            "visualContent": {
                "type": "highlight_box",
                "title": "Side by Side",
                "content": "{{side_by_side}}",
            },
            "howItWorks": [
                "Import {{imported_files}} you maintain today",
                "Compare {{compared_outputs}} side by side for a month",
                "Retire {{retired_work}} once the team is confident",
            ],
            "ctas": [
                _cta_demo("Request a Comparison Demo"),
                _cta_section("See Pricing & ROI", "roi"),
            ],
        },
    ),
    TemplateVariant(
        id="comparison_vs_competitors",
        name="Versus Other Platforms",
        description="Compares BevGenie with other analytics platforms",
        best_for=("competitor", "alternative", "versus", "vs", "compared", "better", "different"),
        section={
            "type": "single_screen",
            "headline": "Why Beverage Teams Choose BevGenie Over {{competitor_category}}",
            "subtitle": "{{differentiator_summary}}",
            "insights": [
                "Built for Beverage: {{industry_fit}} means no custom work to understand {{industry_concept}}.",
                "AI-Native: {{ai_difference}} answers questions that generic BI tools leave to analysts.",
                "Faster Value: Teams reach {{value_milestone}} in {{time_to_value}}, not quarters.",
            ],
            "stats": _stats("diff_stat"),
            "visualContent": {
                "type": "highlight_box",
                "title": "Key Differences",
                "content": "{{key_differences}}",
            },
            "howItWorks": [
                "Share {{shared_requirements}} with our team",
                "See {{demo_scope}} using your own data",
                "Decide with {{decision_support}} in hand",
            ],
            "ctas": [
                _cta_demo("Compare With Your Data"),
                _cta_section("Read Customer Stories", "success_stories"),
            ],
        },
    ),
]

# =======================
# Implementation roadmap
# =======================

IMPLEMENTATION_ROADMAP_TEMPLATES: list[TemplateVariant] = [
    TemplateVariant(
        id="implementation_roadmap_quick_start",
        name="Quick Start Rollout",
        description="Fast rollout for small and mid-sized teams",
        best_for=("quick", "fast", "start", "small", "pilot", "how long", "timeline"),
        section={
            "type": "single_screen",
            "headline": "Go Live in {{go_live_time}}",
            "subtitle": "{{rollout_summary}}",
            "insights": [
                "Week One: {{week_one_detail}} so your team sees real data from day one.",
                "Pilot Phase: A focused pilot on {{pilot_scope}} proves value before the wider rollout.",
                "Full Rollout: {{rollout_detail}} with training built around how your reps already work.",
            ],
            "stats": _stats("rollout_stat"),
            "visualContent": {
                "type": "example",
                "title": "Sample Timeline",
                "content": "{{sample_timeline}}",
            },
            "howItWorks": [
                "Kickoff call to confirm {{kickoff_goals}}",
                "Connect {{connected_sources}} with our data team",
                "Train {{trained_group}} in short live sessions",
                "Review {{review_metrics}} at the 30-day mark",
            ],
            "ctas": [
                _cta_demo("Plan Your Rollout"),
                _cta_section("Integration Details", "integrations"),
            ],
        },
    ),
    TemplateVariant(
        id="implementation_roadmap_enterprise",
        name="Enterprise Integration",
        description="Phased integration for large organizations",
        best_for=("enterprise", "integration", "erp", "security", "large", "migration", "it"),
        section={
            "type": "single_screen",
            "headline": "A Phased Path to {{enterprise_goal}}",
            "subtitle": "{{integration_summary}}",
            "insights": [
                "Integration: {{integration_detail}} connects to {{enterprise_systems}} without disrupting operations.",
                "Security & Governance: {{security_detail}} satisfies IT and compliance reviews up front.",
                "Change Management: {{change_detail}} keeps adoption high across {{org_scope}}.",
            ],
            "stats": _stats("enterprise_stat"),
            "visualContent": {
                "type": "highlight_box",
                "title": "Rollout Phases",
                "content": "{{rollout_phases}}",
            },
            "howItWorks": [
                "Discovery workshop covering {{discovery_topics}}",
                "Integrate {{integrated_systems}} in a staging environment",
                "Roll out to {{first_wave}} before expanding",
                "Measure {{adoption_metrics}} each quarter",
            ],
            "ctas": [
                _cta_demo("Talk to Solutions"),
                _cta_section("Security Overview", "security"),
            ],
        },
    ),
]

# =======================
# ROI calculator
# =======================

ROI_CALCULATOR_TEMPLATES: list[TemplateVariant] = [
    TemplateVariant(
        id="roi_calculator_revenue_lift",
        name="Revenue Lift",
        description="Quantifies revenue gained from better execution",
        best_for=("revenue", "roi", "return", "growth", "lift", "sales"),
        section={
            "type": "single_screen",
            "headline": "Estimate Your {{revenue_scope}} Revenue Lift",
            "subtitle": "{{roi_summary}}",
            "insights": [
                "Velocity Gains: Recovering {{velocity_gain}} on priority accounts adds {{velocity_revenue}} per year.",
                "Distribution Wins: {{distribution_gain}} in new points of distribution compounds every quarter.",
                "Payback Period: Most teams like yours recover the investment within {{payback_period}}.",
            ],
            "stats": _stats("revenue_stat"),
            "visualContent": {
                "type": "example",
                "title": "Sample Calculation",
                "content": "{{sample_calculation}}",
            },
            "howItWorks": [
                "Enter {{input_metrics}} for your portfolio",
                "Benchmark against {{benchmark_source}}",
                "Review {{projected_outputs}} by quarter",
            ],
            "ctas": [
                _cta_demo("Get a Custom ROI Model"),
                _cta_section("See How It Works", "features"),
            ],
        },
    ),
    TemplateVariant(
        id="roi_calculator_cost_savings",
        name="Cost Savings",
        description="Quantifies time and cost saved from automation",
        best_for=("cost", "save", "savings", "budget", "pricing", "payback", "investment"),
        section={
            "type": "single_screen",
            "headline": "Calculate What {{cost_area}} Really Costs You",
            "subtitle": "{{savings_summary}}",
            "insights": [
                "Time Savings: Automating {{automated_work}} frees {{hours_saved}} every week for selling.",
                "Spend Efficiency: {{spend_detail}} shifts budget away from programs that do not move product.",
                "Payback: At {{investment_level}}, teams typically see payback within {{payback_period}}.",
            ],
            "stats": _stats("savings_stat"),
            "visualContent": {
                "type": "example",
                "title": "Sample Savings",
                "content": "{{sample_savings}}",
            },
            "howItWorks": [
                "Tell us about {{team_inputs}} and current tools",
                "We model {{modeled_costs}} against your baseline",
                "Receive {{roi_report}} you can share internally",
            ],
            "ctas": [
                _cta_demo("Build My Business Case"),
                _cta_section("Pricing Overview", "pricing"),
            ],
        },
    ),
]

TEMPLATES_BY_PAGE_TYPE: dict[PageType, list[TemplateVariant]] = {
    PageType.SOLUTION_BRIEF: SOLUTION_BRIEF_TEMPLATES,
    PageType.FEATURE_SHOWCASE: FEATURE_SHOWCASE_TEMPLATES,
    PageType.CASE_STUDY: CASE_STUDY_TEMPLATES,
    PageType.COMPARISON: COMPARISON_TEMPLATES,
    PageType.IMPLEMENTATION_ROADMAP: IMPLEMENTATION_ROADMAP_TEMPLATES,
    PageType.ROI_CALCULATOR: ROI_CALCULATOR_TEMPLATES,
}


def get_templates_for_type(page_type: PageType) -> list[TemplateVariant]:
    return TEMPLATES_BY_PAGE_TYPE.get(PageType(page_type), SOLUTION_BRIEF_TEMPLATES)


def get_template(template_id: str) -> TemplateVariant | None:
    for templates in TEMPLATES_BY_PAGE_TYPE.values():
        for template in templates:
            if template.id == template_id:
                return template
    return None


# =======================
# Slots
# =======================


def _field_kind(path: tuple) -> str:
    head = path[0]
    if head == "insights":
        return "insight"
    if head == "stats":
        return "stat_value" if path[-1] == "value" else "stat_label"
    if head == "visualContent":
        return "visual_title" if path[-1] == "title" else "visual_content"
    if head == "howItWorks":
        return "step"
    if head == "ctas":
        return "cta"
    return head


def _walk_strings(node: Any, path: tuple = ()):
    if isinstance(node, str):
        yield path, node
    elif isinstance(node, dict):
        for key, value in node.items():
            yield from _walk_strings(value, path + (key,))
    elif isinstance(node, list):
        for i, value in enumerate(node):
            yield from _walk_strings(value, path + (i,))


def extract_slots(template: TemplateVariant) -> list[PlaceholderSlot]:
    """
    List the template's placeholders in first-seen order.

    A slot's budget is the containing field's limit minus the template's
    static text, shared between the slots in that string. A slot used in
    several places keeps its tightest budget.
    """
    slots: dict[str, PlaceholderSlot] = {}
    for path, text in _walk_strings(template.section):
        names = SLOT_PATTERN.findall(text)
        if not names:
            continue
        kind = _field_kind(path)
        static_len = len(SLOT_PATTERN.sub("", text))
        budget = max(3, (_FIELD_LIMITS.get(kind, 100) - static_len) // len(names))
        for name in names:
            existing = slots.get(name)
            if existing is None or budget < existing.max_chars:
                slots[name] = PlaceholderSlot(name=name, kind=kind, max_chars=budget)
    return list(slots.values())


def _render_value(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    rendered = str(value).strip()
    return rendered or None


def fill_placeholders(node: Any, values: dict[str, Any]) -> Any:
    """Return a copy of node with every {{slot}} replaced; unknown slots become [Content]."""

    def substitute(match: re.Match) -> str:
        rendered = _render_value(values.get(match.group(1)))
        return rendered if rendered is not None else UNFILLED_SENTINEL

    if isinstance(node, str):
        return SLOT_PATTERN.sub(substitute, node)
    if isinstance(node, dict):
        return {key: fill_placeholders(value, values) for key, value in node.items()}
    if isinstance(node, list):
        return [fill_placeholders(value, values) for value in node]
    return copy.deepcopy(node)


def build_page_from_template(
    template: TemplateVariant, values: dict[str, Any], page_type: PageType
) -> dict:
    """Fill a template and wrap it as a raw page object."""
    section = fill_placeholders(template.section, values)
    section["insights"] = [
        item if isinstance(item, dict) else {"text": str(item)} for item in section.get("insights", [])
    ]
    return {
        "type": PageType(page_type).value,
        "title": section["headline"],
        "description": section["subtitle"],
        "sections": [section],
    }
