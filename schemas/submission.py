from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    GRADED = "graded"
    LATE = "late"


class InlineComment(BaseModel):
    id: Optional[str] = Field(None, description="Stable comment id (ObjectId string)")
    start_index: int = Field(..., ge=0, description="Start offset into the submission text")
    end_index: int = Field(..., ge=0, description="End offset (exclusive)")
    text: str = Field(..., description="Comment body")
    author: str = Field(..., description="Instructor name or id")
    timestamp: datetime = Field(default_factory=utcnow)
    is_ai_generated: bool = Field(False, description="True when accepted from an AI suggestion")


class SubScore(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., description="Rubric item, e.g. 'Content'")
    score: float = Field(0, description="Points awarded")
    max_score: float = Field(..., description="Points available")
    rationale: str = Field("", description="Why the points were awarded")


class OverallFeedback(BaseModel):
    strengths: str = ""
    improvements: str = ""
    action_items: str = ""


class AICheckDetail(BaseModel):
    section: Optional[str] = None
    ai_probability: Optional[float] = None
    human_probability: Optional[float] = None


class AICheckResult(BaseModel):
    score: float = Field(..., ge=0, le=100, description="Estimated human-authorship likelihood, 0-100")
    confidence: str = Field(..., description="Free-form confidence label, e.g. 'High'")
    details: List[AICheckDetail] = Field(default_factory=list)


class PlagiarismMatch(BaseModel):
    text: str = Field(..., description="Matched passage from the submission")
    source: str = Field(..., description="Label of the matching source")
    similarity: float = Field(..., ge=0, le=1, description="Similarity fraction, e.g. 0.92")


class PlagiarismResult(BaseModel):
    score: float = Field(..., description="Originality score, 0-100")
    matches: List[PlagiarismMatch] = Field(default_factory=list)


class Submission(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = Field(None, description="submissions _id")
    assignment_id: str = Field(..., description="assignments _id")
    submitted_by: str = Field(..., description="users _id of the submitter")
    student_name: Optional[str] = None
    student_id: Optional[str] = None
    submission_date: datetime = Field(default_factory=utcnow)
    status: SubmissionStatus = SubmissionStatus.PENDING

    # Exactly one of file_url / content is the text source for re-extraction
    content: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    storage_public_id: Optional[str] = None
    storage_resource_type: Optional[str] = None

    score: Optional[float] = None
    sub_scores: Optional[List[SubScore]] = None
    overall_feedback: Optional[OverallFeedback] = None
    inline_comments: Optional[List[InlineComment]] = None
    ai_checker_results: Optional[AICheckResult] = None
    plagiarism_results: Optional[PlagiarismResult] = None
    feedback: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def text_source(self) -> str:
        """'file' when the stored upload is authoritative, 'content' otherwise."""
        return "file" if self.file_url else "content"


class SubmissionView(BaseModel):
    """A stored submission together with its freshly extracted text."""
    submission: Submission
    display_name: str = "Unknown Student"
    content: str = ""
    file_read_error: Optional[str] = None


# Fields an instructor may change after submission
UPDATABLE_FIELDS = (
    "student_name",
    "student_id",
    "status",
    "score",
    "sub_scores",
    "overall_feedback",
    "inline_comments",
    "feedback",
)
