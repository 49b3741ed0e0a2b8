"""Test doubles and row factories shared by test modules."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from pitchflow.extraction.routines import ROUTINES
from pitchflow.llm.provider import LLMProvider
from pitchflow.models.submission import Submission
from pitchflow.pipeline.dispatch import AnalysisJob, Dispatcher


def make_payload(routine_name: str, overall_score: float = 84, section_score: float | None = None) -> dict:
    """A valid extraction payload for routine, every section scored."""
    routine = ROUTINES[routine_name]
    if section_score is None:
        section_score = routine.section_scale * 0.75
    sections = {
        spec.type: {
            "score": section_score,
            routine.description_key: f"{spec.title} looks solid.",
            "strengths": ["Clear narrative"],
            "weaknesses": ["Thin evidence"],
        }
        for spec in routine.sections
    }
    return {
        "overall_score": overall_score,
        "recommendation": "Consider",
        "scoring_reason": "Promising team, early traction.",
        "assessment_points": ["Strong founders", "Unclear go-to-market"],
        "industry": "Fintech",
        routine.section_key: sections,
    }


class FakeLLM(LLMProvider):
    """Scripted LLM: answers by routine label, records every call."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: dict[str, list[str | Exception]] = {}
        self.default_score: float = 84
        self.hook: Callable[[str], None] | None = None

    def queue(self, label: str, *responses: str | dict | Exception) -> None:
        items = self.responses.setdefault(label, [])
        for response in responses:
            items.append(json.dumps(response) if isinstance(response, dict) else response)

    def complete(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        label = kwargs.get("label", "completion")
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, **kwargs})
        if self.hook is not None:
            self.hook(label)
        queued = self.responses.get(label)
        if queued:
            response = queued.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return json.dumps(make_payload(label, self.default_score))

    def labels(self) -> list[str]:
        return [call["label"] for call in self.calls]


class RecordingDispatcher(Dispatcher):
    """Collects jobs instead of running them."""

    def __init__(self) -> None:
        self.jobs: list[AnalysisJob] = []

    def submit(self, job: AnalysisJob) -> None:
        self.jobs.append(job)


def make_submission(db: Session, **fields: Any) -> Submission:
    """Insert a submission row directly (bypassing intake validation)."""
    values: dict[str, Any] = {"source": "public_form", "company_name": "Acme Robotics"}
    values.update(fields)
    submission = Submission(**values)
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def make_pdf(text: str) -> bytes:
    """Build a one-page PDF whose page text is ``text`` (Helvetica, single line)."""
    escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    content = f"BT /F1 18 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(content)).encode() + b" >>\nstream\n" + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"
    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
    return bytes(out)
