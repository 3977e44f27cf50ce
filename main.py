import asyncio
import atexit
from typing import Optional, Tuple

import nest_asyncio

from database import close as close_mongodb
from errors import SubmissionError
from feedback_analysis import generate_feedback
from logging_config import logger
from schemas.pipeline import FeedbackAnalysis, SubmissionDraft
from schemas.submission import Submission
from submission_pipeline import SubmissionOrchestrator


_orchestrator: Optional[SubmissionOrchestrator] = None


def get_orchestrator() -> SubmissionOrchestrator:
    """Orchestrator wired to MongoDB and S3 from the environment."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SubmissionOrchestrator()
        atexit.register(close_mongodb)
    return _orchestrator


def _run(coro):
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    # Called from inside a running loop (Streamlit, notebooks)
    nest_asyncio.apply(loop)
    return loop.run_until_complete(coro)


# ── Submission ───────────────────────────────────────────────────────────────

async def submit_assignment_async(
    file_bytes: bytes,
    filename: str,
    assignment_id: str,
    submitted_by: str,
    student_name: Optional[str] = None,
    orchestrator: Optional[SubmissionOrchestrator] = None,
) -> Submission:
    draft = SubmissionDraft(
        file_bytes=file_bytes,
        filename=filename,
        assignment_id=assignment_id,
        submitted_by=submitted_by,
        student_name_manual=student_name,
    )
    return await (orchestrator or get_orchestrator()).submit(draft)


def submit_assignment(
    file_bytes: bytes,
    filename: str,
    assignment_id: str,
    submitted_by: str,
    student_name: Optional[str] = None,
    orchestrator: Optional[SubmissionOrchestrator] = None,
) -> Tuple[bool, str, Optional[Submission]]:
    """Run the async submission pipeline synchronously."""
    try:
        submission = _run(
            submit_assignment_async(
                file_bytes=file_bytes,
                filename=filename,
                assignment_id=assignment_id,
                submitted_by=submitted_by,
                student_name=student_name,
                orchestrator=orchestrator,
            )
        )
        return True, "Submission saved", submission
    except SubmissionError as e:
        logger.warning(f"Submission not accepted ({e.status_code}): {e.message}")
        return False, e.message, None


# ── Feedback ─────────────────────────────────────────────────────────────────

def analyze_submission(submission_text: str, llm=None) -> Tuple[bool, str, Optional[FeedbackAnalysis]]:
    try:
        analysis = generate_feedback(submission_text, llm=llm)
        return True, "Analysis complete", analysis
    except SubmissionError as e:
        logger.warning(f"Feedback analysis not completed: {e.message}")
        return False, e.message, None
