"""
Extraction routines, one per form family.

A routine names its prompt template, the payload key holding per-section
results, and the scales its scores are reported on. Score conversion to the
0-5 display scale is not done here; the status updater does it once.
"""

from __future__ import annotations

from dataclasses import dataclass, field

EUREKA_ROUTINE = "analyze_eureka_form"
BARC_ROUTINE = "analyze_barc_form"
PITCH_DECK_ROUTINE = "analyze_pitch_deck"


@dataclass(frozen=True)
class SectionSpec:
    type: str
    title: str


@dataclass(frozen=True)
class AnalysisRoutine:
    """Static description of one extraction routine."""

    name: str
    family: str
    template: str
    sections: tuple[SectionSpec, ...]
    section_key: str = "sections"
    description_key: str = "analysis"
    score_scale: float = 100.0
    section_scale: float = 100.0
    requires_document: bool = False
    placeholders: frozenset[str] = field(default_factory=frozenset)


ROUTINES: dict[str, AnalysisRoutine] = {
    EUREKA_ROUTINE: AnalysisRoutine(
        name=EUREKA_ROUTINE,
        family="eureka",
        template="eureka_form_v1",
        sections=(
            SectionSpec("problem_solution_fit", "Problem & Solution Fit"),
            SectionSpec("target_customers", "Target Customers"),
            SectionSpec("competitors", "Competitors"),
            SectionSpec("revenue_model", "Revenue Model"),
            SectionSpec("differentiation", "Differentiation"),
        ),
        section_key="section_analysis",
        description_key="feedback",
        section_scale=20.0,
        placeholders=frozenset({"FORM_TITLE", "COMPANY_NAME", "INDUSTRY", "ANSWERS"}),
    ),
    BARC_ROUTINE: AnalysisRoutine(
        name=BARC_ROUTINE,
        family="barc",
        template="barc_form_v1",
        sections=(
            SectionSpec("problem_solution_fit", "Problem-Solution Fit"),
            SectionSpec("market_opportunity", "Market Opportunity"),
            SectionSpec("competitive_advantage", "Competitive Advantage"),
            SectionSpec("team_strength", "Team Strength"),
            SectionSpec("execution_plan", "Execution Plan"),
        ),
        placeholders=frozenset(
            {"FORM_TITLE", "COMPANY_NAME", "INDUSTRY", "ANSWERS", "DOCUMENT_SECTION"}
        ),
    ),
    PITCH_DECK_ROUTINE: AnalysisRoutine(
        name=PITCH_DECK_ROUTINE,
        family="deck",
        template="pitch_deck_v1",
        sections=(
            SectionSpec("problem", "Problem"),
            SectionSpec("solution", "Solution"),
            SectionSpec("market", "Market"),
            SectionSpec("traction", "Traction"),
            SectionSpec("team", "Team"),
            SectionSpec("business_model", "Business Model"),
            SectionSpec("financials", "Financials"),
        ),
        requires_document=True,
        placeholders=frozenset({"COMPANY_NAME", "NOTES", "DOCUMENT_TEXT"}),
    ),
}


def get_routine(name: str) -> AnalysisRoutine:
    """Return the routine registered under name. Raises KeyError if unknown."""
    try:
        return ROUTINES[name]
    except KeyError:
        raise KeyError(f"Unknown analysis routine: '{name}'. Known: {sorted(ROUTINES)}") from None


def family_for_routine(name: str | None) -> str | None:
    routine = ROUTINES.get(name or "")
    return routine.family if routine else None
