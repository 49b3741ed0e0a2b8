"""
Extraction service: document + context in, structured scoring result out.

The LLM call is the pipeline's long-running suspension point. It runs in a
worker thread bounded by ``extraction_timeout``; anything that goes wrong
(timeout, upstream error, malformed or empty output) surfaces as a single
``ExtractionError`` carrying a ``kind``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pitchflow.extraction.document_text import DocumentError, extract_document_text
from pitchflow.extraction.routines import AnalysisRoutine, get_routine
from pitchflow.llm.router import ModelRole, get_llm_provider
from pitchflow.prompts.loader import load_prompt, render_prompt

if TYPE_CHECKING:
    from pitchflow.config import Settings
    from pitchflow.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

MAX_ASSESSMENT_POINTS = 10
SYSTEM_PROMPT_TEMPLATE = "extraction_system_v1"

# Shared across jobs; asyncio.run joins only the loop's default executor
_EXTRACTION_POOL = ThreadPoolExecutor(max_workers=8, thread_name_prefix="extraction")


class ExtractionError(RuntimeError):
    """Extraction failed. ``kind`` is one of timeout, upstream, malformed, document."""

    def __init__(self, message: str, kind: str = "upstream") -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class ExtractionRequest:
    routine: str
    document: bytes | str | None = None
    context: dict[str, str] = field(default_factory=dict)


@dataclass
class SectionScore:
    type: str
    title: str
    score: float  # routine's section scale, unconverted
    description: str | None = None
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)


@dataclass
class ExtractionResult:
    """Validated extraction output. Scores are on the routine's own scales."""

    routine: str
    overall_score: float
    score_scale: float
    section_scale: float
    sections: list[SectionScore]
    recommendation: str | None = None
    scoring_reason: str | None = None
    assessment_points: list[str] = field(default_factory=list)
    industry: str | None = None
    stage: str | None = None
    website_url: str | None = None
    company_name: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


# ── Payload parsing ──────────────────────────────────────────────────


def _parse_json_safe(text: str | None) -> dict | None:
    """Parse text as a JSON object, tolerating markdown code fences. None on failure."""
    if not text or not text.strip():
        return None
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    try:
        parsed = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_text_list(value: Any, limit: int | None = None) -> list[str]:
    if not isinstance(value, list):
        return []
    items = [t for t in (_as_text(v) for v in value) if t]
    return items[:limit] if limit else items


def _section_entries(payload: dict[str, Any], routine: AnalysisRoutine) -> dict[str, dict]:
    """Return per-section dicts keyed by section type; accepts a mapping or a list with 'type'."""
    raw = payload.get(routine.section_key)
    if isinstance(raw, dict):
        return {k: v for k, v in raw.items() if isinstance(v, dict)}
    if isinstance(raw, list):
        return {
            str(item["type"]): item
            for item in raw
            if isinstance(item, dict) and item.get("type") is not None
        }
    return {}


def parse_extraction_payload(routine: AnalysisRoutine, payload: dict[str, Any]) -> ExtractionResult:
    """Validate an LLM payload against the routine. Raises ExtractionError(kind='malformed')."""
    overall = _as_number(payload.get("overall_score"))
    if overall is None:
        raise ExtractionError("Malformed extraction result: missing numeric overall_score", "malformed")
    if not 0 <= overall <= routine.score_scale:
        raise ExtractionError(
            f"Malformed extraction result: overall_score {overall:g} outside 0-{routine.score_scale:g}",
            "malformed",
        )

    entries = _section_entries(payload, routine)
    sections: list[SectionScore] = []
    for spec in routine.sections:
        entry = entries.get(spec.type)
        if entry is None:
            continue
        score = _as_number(entry.get("score"))
        if score is None:
            continue
        sections.append(
            SectionScore(
                type=spec.type,
                title=spec.title,
                score=min(max(score, 0.0), routine.section_scale),
                description=_as_text(entry.get(routine.description_key))
                or _as_text(entry.get("analysis") or entry.get("feedback")),
                strengths=_as_text_list(entry.get("strengths")),
                weaknesses=_as_text_list(entry.get("weaknesses")),
            )
        )
    if not sections:
        raise ExtractionError("Malformed extraction result: no section scores", "malformed")

    return ExtractionResult(
        routine=routine.name,
        overall_score=overall,
        score_scale=routine.score_scale,
        section_scale=routine.section_scale,
        sections=sections,
        recommendation=_as_text(payload.get("recommendation")),
        scoring_reason=_as_text(payload.get("scoring_reason")),
        assessment_points=_as_text_list(payload.get("assessment_points"), MAX_ASSESSMENT_POINTS),
        industry=_as_text(payload.get("industry")),
        stage=_as_text(payload.get("stage")),
        website_url=_as_text(payload.get("website_url")),
        company_name=_as_text(payload.get("company_name")),
        raw=payload,
    )


# ── Service ──────────────────────────────────────────────────────────


class ExtractionService:
    """Runs one extraction routine against the configured LLM provider."""

    def __init__(
        self,
        llm: LLMProvider | None = None,
        timeout: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        if settings is None:
            from pitchflow.config import get_settings

            settings = get_settings()
        self._llm = llm
        self.timeout = timeout if timeout is not None else settings.extraction_timeout

    async def extract(self, request: ExtractionRequest) -> ExtractionResult:
        """Run the extraction, bounded by the service timeout."""
        routine = get_routine(request.routine)
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(_EXTRACTION_POOL, self._extract_sync, routine, request),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("extraction_timeout: routine=%s timeout=%.1fs", routine.name, self.timeout)
            raise ExtractionError(f"Extraction timeout after {self.timeout:g}s", "timeout") from None
        except ExtractionError:
            raise
        except Exception as exc:
            logger.exception("extraction_upstream_error: routine=%s", routine.name)
            raise ExtractionError(f"Extraction service error: {exc}", "upstream") from exc

    def _extract_sync(self, routine: AnalysisRoutine, request: ExtractionRequest) -> ExtractionResult:
        document_text = self._document_text(routine, request)
        prompt = render_prompt(routine.template, **self._prompt_variables(routine, request, document_text))
        llm = self._llm or get_llm_provider(ModelRole.EXTRACTION)
        repair_llm = self._llm or get_llm_provider(ModelRole.JSON)
        payload = self._call_llm_json(
            llm, prompt, load_prompt(SYSTEM_PROMPT_TEMPLATE), routine.name, repair_llm=repair_llm
        )
        return parse_extraction_payload(routine, payload)

    def _document_text(self, routine: AnalysisRoutine, request: ExtractionRequest) -> str:
        text = ""
        if request.document is not None:
            try:
                text = extract_document_text(request.document)
            except DocumentError as exc:
                if routine.requires_document:
                    raise ExtractionError(str(exc), "document") from exc
                logger.warning("document_ignored: routine=%s error=%s", routine.name, exc)
        if routine.requires_document and not text:
            raise ExtractionError("No readable pitch deck text found in document", "document")
        return text

    @staticmethod
    def _prompt_variables(
        routine: AnalysisRoutine, request: ExtractionRequest, document_text: str
    ) -> dict[str, str]:
        ctx = request.context
        values = {
            "COMPANY_NAME": ctx.get("company_name") or "Unknown company",
            "INDUSTRY": ctx.get("industry") or "Not specified",
            "FORM_TITLE": ctx.get("form_title") or "application",
            "ANSWERS": ctx.get("answers") or "(no answers provided)",
            "NOTES": ctx.get("notes") or "none",
            "DOCUMENT_TEXT": document_text,
            "DOCUMENT_SECTION": f"## Attached deck\n\n{document_text}" if document_text else "",
        }
        return {name: value for name, value in values.items() if name in routine.placeholders}

    @staticmethod
    def _call_llm_json(
        llm: LLMProvider,
        prompt: str,
        system_prompt: str,
        label: str,
        repair_llm: LLMProvider | None = None,
    ) -> dict:
        """Call the LLM expecting JSON, with one retry (on the repair model) on parse failure."""
        raw = llm.complete(
            prompt,
            system_prompt=system_prompt,
            response_format={"type": "json_object"},
            label=label,
        )
        parsed = _parse_json_safe(raw)
        if parsed is not None:
            return parsed

        logger.warning("extraction_invalid_json: routine=%s retrying", label)
        retry_prompt = (
            "Your previous response was not valid JSON. "
            "Return ONLY the JSON object with no extra text.\n\n"
            f"Original prompt:\n{prompt}"
        )
        raw_retry = (repair_llm or llm).complete(
            retry_prompt,
            system_prompt=system_prompt,
            response_format={"type": "json_object"},
            label=label,
        )
        parsed = _parse_json_safe(raw_retry)
        if parsed is None:
            raise ExtractionError("Malformed extraction result: LLM returned invalid JSON", "malformed")
        return parsed
