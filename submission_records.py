import os
from datetime import datetime
from typing import Optional

import pandas as pd
from bson import ObjectId

from database.repositories import AssignmentRepository, SubmissionRepository, UserRepository
from errors import NotFoundError, PermissionDeniedError, StorageError, ValidationError
from logging_config import logger
from schemas.assignment import AssignmentRef
from schemas.pipeline import FeedbackAnalysis, StoredFileHandle
from schemas.submission import (
    UPDATABLE_FIELDS,
    InlineComment,
    Submission,
    SubmissionStatus,
    SubmissionView,
    SubScore,
)
from utils.db_utils import validate_and_prepare
from utils.storage import S3Storage
from utils.text_extraction import extract_text


# ── Helpers ──────────────────────────────────────────────────────────────────

def _load(submission_id: str, submissions: SubmissionRepository) -> Submission:
    submission = submissions.get(submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    return submission


def _require_creator(submission: Submission, user_id: str, assignments: AssignmentRepository, action: str) -> AssignmentRef:
    assignment = assignments.find_by_id(submission.assignment_id)
    if assignment is None or assignment.created_by != user_id:
        logger.warning(f"User {user_id} not allowed to {action} submission {submission.id}")
        raise PermissionDeniedError(f"Not authorized to {action} this submission")
    return assignment


def _stored_handle(submission: Submission) -> Optional[StoredFileHandle]:
    if not submission.storage_public_id:
        return None
    return StoredFileHandle(
        public_id=submission.storage_public_id,
        url=submission.file_url or "",
        resource_type=submission.storage_resource_type or "raw",
    )


def _with_ids(items: list) -> list:
    for item in items:
        if not item.get("id"):
            item["id"] = str(ObjectId())
    return items


# ── Retrieval ────────────────────────────────────────────────────────────────

def get_submission_with_content(
    submission_id: str,
    user_id: str,
    submissions: Optional[SubmissionRepository] = None,
    assignments: Optional[AssignmentRepository] = None,
    users: Optional[UserRepository] = None,
    storage=None,
) -> SubmissionView:
    """
    Load a submission for its submitter or the assignment's instructor.

    Text comes from the stored file when there is one, otherwise from the
    inline content. Read or extraction failures are reported in
    file_read_error rather than raised.
    """
    submissions = submissions or SubmissionRepository()
    assignments = assignments or AssignmentRepository()
    users = users or UserRepository()

    submission = _load(submission_id, submissions)
    assignment = assignments.find_by_id(submission.assignment_id)
    is_submitter = submission.submitted_by == user_id
    is_creator = assignment is not None and assignment.created_by == user_id
    if not (is_submitter or is_creator):
        raise PermissionDeniedError("Not authorized to view this submission")

    view = SubmissionView(submission=submission)

    handle = _stored_handle(submission)
    if submission.file_url and handle:
        try:
            file_bytes = (storage or S3Storage()).download(handle)
            view.content = extract_text(file_bytes, submission.file_name or handle.public_id)
        except Exception as e:
            logger.warning(f"Could not read stored file for {submission_id}: {e}")
            view.file_read_error = f"Could not load file content: {e}"
    elif submission.file_url:
        view.file_read_error = "Stored file reference is incomplete."
    else:
        view.content = submission.content or ""

    profile = users.find_by_id(submission.submitted_by)
    view.display_name = (profile.name if profile else None) or submission.student_name or "Unknown Student"
    return view


# ── Instructor actions ───────────────────────────────────────────────────────

def update_submission(
    submission_id: str,
    user_id: str,
    updates: dict,
    submissions: Optional[SubmissionRepository] = None,
    assignments: Optional[AssignmentRepository] = None,
) -> Submission:
    """Apply instructor edits. Unknown fields are ignored; a score marks the submission graded."""
    submissions = submissions or SubmissionRepository()
    assignments = assignments or AssignmentRepository()

    submission = _load(submission_id, submissions)
    _require_creator(submission, user_id, assignments, "update")

    fields = {key: value for key, value in updates.items() if key in UPDATABLE_FIELDS}
    if not fields:
        raise ValidationError("No updatable fields provided")

    if fields.get("inline_comments") is not None:
        fields["inline_comments"] = [
            validate_and_prepare(c, InlineComment) for c in _with_ids(list(fields["inline_comments"]))
        ]
    if fields.get("sub_scores") is not None:
        fields["sub_scores"] = [
            validate_and_prepare(s, SubScore) for s in _with_ids(list(fields["sub_scores"]))
        ]
    if fields.get("overall_feedback") is not None:
        fields["overall_feedback"] = dict(fields["overall_feedback"])
    if "status" in fields:
        try:
            fields["status"] = SubmissionStatus(fields["status"]).value
        except ValueError as e:
            raise ValidationError(f"Invalid status: {fields['status']}") from e

    if fields.get("score") is not None:
        fields["status"] = SubmissionStatus.GRADED.value

    logger.info(f"Updating submission {submission_id} → {sorted(fields)}")
    return submissions.update(submission_id, fields)


def apply_ai_feedback(
    submission_id: str,
    user_id: str,
    analysis: FeedbackAnalysis,
    author: str,
    submissions: Optional[SubmissionRepository] = None,
    assignments: Optional[AssignmentRepository] = None,
) -> Submission:
    """Accept an analysis: its overall feedback replaces the stored one, its comments are appended."""
    submissions = submissions or SubmissionRepository()
    existing = _load(submission_id, submissions)

    accepted = [
        {
            "start_index": located.start_index,
            "end_index": located.end_index,
            "text": located.text,
            "author": author,
            "is_ai_generated": True,
        }
        for located in analysis.suggested_inline_comments
    ]
    kept = [c.model_dump() for c in existing.inline_comments or []]

    return update_submission(
        submission_id,
        user_id,
        {
            "overall_feedback": analysis.suggested_overall_feedback.model_dump(),
            "inline_comments": kept + accepted,
        },
        submissions=submissions,
        assignments=assignments,
    )


def delete_submission(
    submission_id: str,
    user_id: str,
    submissions: Optional[SubmissionRepository] = None,
    assignments: Optional[AssignmentRepository] = None,
    storage=None,
) -> bool:
    submissions = submissions or SubmissionRepository()
    assignments = assignments or AssignmentRepository()

    submission = _load(submission_id, submissions)
    _require_creator(submission, user_id, assignments, "delete")

    handle = _stored_handle(submission)
    if handle and not (storage or S3Storage()).delete(handle):
        # The record stays so the stored file keeps a reference
        raise StorageError(f"Failed to delete stored file {handle.public_id}; submission kept")

    deleted = submissions.delete(submission_id)
    logger.info(f"Submission {submission_id} removed (record deleted: {deleted})")
    return deleted


# ── Export ───────────────────────────────────────────────────────────────────

def export_submissions_csv(
    assignment_id: str,
    output_dir: str = "exports",
    submissions: Optional[SubmissionRepository] = None,
) -> Optional[str]:
    """Write the assignment's gradebook to a timestamped CSV. Returns None when there is nothing to export."""
    submissions = submissions or SubmissionRepository()
    records = submissions.list_for_assignment(assignment_id)
    if not records:
        logger.warning(f"No submissions to export for assignment {assignment_id}")
        return None

    rows = [
        {
            "submission_id": s.id,
            "student_name": s.student_name or "",
            "student_id": s.student_id or "",
            "submission_date": s.submission_date.isoformat(),
            "status": s.status,
            "score": s.score,
            "ai_check_score": s.ai_checker_results.score if s.ai_checker_results else None,
            "originality_score": s.plagiarism_results.score if s.plagiarism_results else None,
            "file_name": s.file_name or "",
        }
        for s in records
    ]

    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_csv = os.path.join(output_dir, f"{assignment_id}_submissions_{timestamp}.csv")

    df = pd.DataFrame(rows)
    df.to_csv(output_csv, index=False)
    logger.info(f"Exported {len(rows)} submission(s) → {output_csv}")
    return output_csv
