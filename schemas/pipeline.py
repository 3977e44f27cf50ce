from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.submission import OverallFeedback


class SubmissionDraft(BaseModel):
    """Incoming upload, consumed within a single orchestration call."""
    file_bytes: bytes = Field(..., repr=False)
    filename: str
    assignment_id: str
    submitted_by: str
    student_name_manual: Optional[str] = None


class StoredFileHandle(BaseModel):
    public_id: str = Field(..., description="Provider identifier, needed for deletion")
    url: str
    resource_type: str = Field("raw", description="Provider resource class: 'raw' or 'image'")


class RelevanceVerdict(str, Enum):
    HIGHLY_RELEVANT = "HIGHLY_RELEVANT"
    SOMEWHAT_RELEVANT = "SOMEWHAT_RELEVANT"
    OFF_TOPIC = "OFF_TOPIC"


class RawInlineComment(BaseModel):
    quote: str
    comment: str


class RawFeedbackBlock(BaseModel):
    strengths: str = ""
    improvements: str = ""
    action_items: str = ""
    raw_inline_comments: List[RawInlineComment] = Field(default_factory=list)


class LocatedComment(BaseModel):
    start_index: int
    end_index: int
    text: str


class FeedbackAnalysis(BaseModel):
    suggested_overall_feedback: OverallFeedback
    suggested_inline_comments: List[LocatedComment] = Field(default_factory=list)


# JSON Schema used for OpenAI structured output in the AI-authorship check
OPENAI_AI_CHECK_SCHEMA = {
    "type": "object",
    "properties": {
        "score": {
            "type": "number",
            "description": "Estimated likelihood (0-100) that the text was written by a human"
        },
        "confidence": {
            "type": "string",
            "description": "Confidence in the estimate: High, Medium or Low"
        }
    },
    "required": ["score", "confidence"],
    "additionalProperties": False
}
