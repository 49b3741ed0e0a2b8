"""SQLAlchemy models."""

from pitchflow.models.company import Company
from pitchflow.models.company_research import CompanyResearch
from pitchflow.models.notification import CacheGroupVersion, NoticeRecord
from pitchflow.models.public_form import PublicForm
from pitchflow.models.section import Section, SectionDetail
from pitchflow.models.submission import (
    TERMINAL_STATUSES,
    AnalysisStatus,
    Submission,
    SubmissionSource,
)
from pitchflow.models.user import User

__all__ = [
    "AnalysisStatus",
    "CacheGroupVersion",
    "Company",
    "CompanyResearch",
    "NoticeRecord",
    "PublicForm",
    "Section",
    "SectionDetail",
    "Submission",
    "SubmissionSource",
    "TERMINAL_STATUSES",
    "User",
]
