import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from config import MAX_UPLOAD_BYTES, RELEVANCE_MIN_CHARS
from content_checks import PlagiarismChecker, run_content_checks
from database.repositories import AssignmentRepository, SubmissionRepository, UserRepository
from errors import (
    FailureError,
    NotFoundError,
    RejectionError,
    StorageError,
    SubmissionError,
    ValidationError,
)
from logging_config import logger
from relevance_check import classify_relevance
from schemas.assignment import AssignmentRef
from schemas.pipeline import RelevanceVerdict, StoredFileHandle, SubmissionDraft
from schemas.submission import Submission, SubmissionStatus
from utils.db_utils import is_valid_object_id
from utils.storage import S3Storage
from utils.text_extraction import extract_text

REJECTION_MESSAGE = "Submission rejected: The content does not seem relevant to the assignment topic."


class StoredUpload:
    """A stored file owned by one submit call until the record referencing it is saved."""

    def __init__(self, handle: StoredFileHandle):
        self.handle = handle
        self.committed = False

    def commit(self) -> None:
        self.committed = True


class SubmissionOrchestrator:
    """
    Ingests one submission: upload, extract, relevance gate, content checks,
    persist. The uploaded file is deleted again on every path that does not
    end in a saved record.
    """

    def __init__(
        self,
        storage=None,
        submissions: Optional[SubmissionRepository] = None,
        assignments: Optional[AssignmentRepository] = None,
        users: Optional[UserRepository] = None,
        relevance_llm=None,
        ai_client=None,
        plagiarism_checker: Optional[PlagiarismChecker] = None,
    ):
        self.storage = storage or S3Storage()
        self.submissions = submissions or SubmissionRepository()
        self.assignments = assignments or AssignmentRepository()
        self.users = users or UserRepository()
        self.relevance_llm = relevance_llm
        self.ai_client = ai_client
        self.plagiarism_checker = plagiarism_checker

    @staticmethod
    async def _run_blocking(fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: fn(*args))

    # ── Steps ────────────────────────────────────────────────────────────────

    @staticmethod
    def _validate(draft: SubmissionDraft) -> None:
        if not draft.file_bytes:
            raise ValidationError("Submission file is required.")
        if len(draft.file_bytes) > MAX_UPLOAD_BYTES:
            raise ValidationError(f"Submission file exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit.")
        if not draft.assignment_id or not is_valid_object_id(draft.assignment_id):
            raise ValidationError("Invalid or missing assignment ID")
        if not is_valid_object_id(draft.submitted_by):
            raise ValidationError("Invalid or missing submitter ID")

    async def _load_assignment(self, assignment_id: str) -> AssignmentRef:
        try:
            assignment = await self._run_blocking(self.assignments.find_by_id, assignment_id)
        except SubmissionError:
            raise
        except Exception as e:
            logger.error(f"Assignment lookup failed: {e}", exc_info=True)
            raise FailureError("Server error creating submission") from e
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    async def _compensate(self, handle: StoredFileHandle) -> None:
        logger.warning(f"[Cleanup] Deleting stored file {handle.public_id}")
        try:
            await self._run_blocking(self.storage.delete, handle)
        except Exception:
            logger.error(f"[Cleanup] Could not delete {handle.public_id}", exc_info=True)

    @asynccontextmanager
    async def _stored_upload(self, draft: SubmissionDraft) -> AsyncIterator[StoredUpload]:
        """Upload the file and delete it on exit unless the upload was committed."""
        folder = f"submissions/{draft.assignment_id}"
        logger.info(f"[Upload] {draft.filename} → {folder}")
        try:
            handle = await self._run_blocking(self.storage.upload, draft.file_bytes, draft.filename, folder)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"[Upload] Failed: {e}", exc_info=True)
            raise StorageError("Failed to upload file to storage.") from e

        upload = StoredUpload(handle)
        try:
            yield upload
        finally:
            if not upload.committed:
                await self._compensate(handle)

    async def _extract(self, draft: SubmissionDraft) -> str:
        try:
            return await self._run_blocking(extract_text, draft.file_bytes, draft.filename)
        except Exception as e:
            logger.warning(f"[Extract] Could not process file content for checks: {e}")
            return ""

    async def _check_relevance(self, assignment: AssignmentRef, text: str) -> RelevanceVerdict:
        if len(text.strip()) < RELEVANCE_MIN_CHARS:
            logger.info(f"[Relevance] Skipped, extracted content too short ({len(text.strip())} chars)")
            return RelevanceVerdict.SOMEWHAT_RELEVANT
        return await self._run_blocking(classify_relevance, assignment.context(), text, self.relevance_llm)

    async def _resolve_student_name(self, draft: SubmissionDraft) -> Optional[str]:
        manual = (draft.student_name_manual or "").strip()
        if manual:
            return manual
        profile = await self._run_blocking(self.users.find_by_id, draft.submitted_by)
        return profile.name if profile else None

    @staticmethod
    def _initial_status(assignment: AssignmentRef, submitted_at: datetime) -> SubmissionStatus:
        if assignment.due_date and submitted_at > assignment.due_date:
            return SubmissionStatus.LATE
        return SubmissionStatus.PENDING

    async def _process(self, draft: SubmissionDraft, assignment: AssignmentRef, upload: StoredUpload) -> Submission:
        text = await self._extract(draft)

        verdict = await self._check_relevance(assignment, text)
        if verdict is RelevanceVerdict.OFF_TOPIC:
            logger.info(f"Submission rejected as off-topic → {upload.handle.public_id}")
            raise RejectionError(REJECTION_MESSAGE)

        ai_result, plagiarism_result = await run_content_checks(
            text, ai_client=self.ai_client, plagiarism_checker=self.plagiarism_checker
        )

        student_name = await self._resolve_student_name(draft)
        submitted_at = datetime.now(timezone.utc)
        submission = Submission(
            assignment_id=draft.assignment_id,
            submitted_by=draft.submitted_by,
            student_name=student_name,
            submission_date=submitted_at,
            status=self._initial_status(assignment, submitted_at),
            content=None,
            file_url=upload.handle.url,
            file_name=draft.filename,
            storage_public_id=upload.handle.public_id,
            storage_resource_type=upload.handle.resource_type,
            ai_checker_results=ai_result,
            plagiarism_results=plagiarism_result,
        )

        logger.info(f"Proceeding to save submission (Relevance: {verdict.value})")
        submission_id = await self._run_blocking(self.submissions.insert, submission)
        # The record now references the file; it is no longer ours to delete
        upload.commit()

        saved = await self._run_blocking(self.submissions.get, submission_id)
        if saved is None:
            raise FailureError(f"Submission {submission_id} was saved but could not be read back")
        return saved

    # ── Entry point ──────────────────────────────────────────────────────────

    async def submit(self, draft: SubmissionDraft) -> Submission:
        """
        Run the ingestion pipeline for one draft.

        Raises ValidationError/NotFoundError before anything is stored,
        StorageError when the upload fails, RejectionError for off-topic
        content and FailureError for any other failure after upload.
        """
        start_time = datetime.now()
        logger.info("=" * 70)
        logger.info(f"SUBMISSION START → {draft.filename} | assignment {draft.assignment_id}")
        logger.info("=" * 70)

        self._validate(draft)
        assignment = await self._load_assignment(draft.assignment_id)

        try:
            async with self._stored_upload(draft) as upload:
                saved = await self._process(draft, assignment, upload)
        except (RejectionError, StorageError, FailureError):
            raise
        except Exception as e:
            logger.error(f"Error during submission process: {e}", exc_info=True)
            raise FailureError(f"Server error creating submission: {e}") from e

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"SUBMISSION SAVED → {saved.id} | status={saved.status} | took {duration:.2f}s")
        logger.info("=" * 70 + "\n")
        return saved
