from datetime import datetime, timezone
from typing import List, Optional

from pymongo import ASCENDING

from database.mongodb import ASSIGNMENTS, SUBMISSIONS, USERS, get_collection
from schemas.assignment import AssignmentRef, UserProfile
from schemas.submission import Submission
from utils.db_utils import add_timestamps, save_to_mongodb, serialize_document, to_object_id

# Left out of the stored document entirely until a grader fills them in
_UNSET_WHEN_EMPTY = ("sub_scores", "overall_feedback", "inline_comments")


class _Repository:
    collection_name: str = ""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is None:
            self._collection = get_collection(self.collection_name)
        return self._collection


class SubmissionRepository(_Repository):
    collection_name = SUBMISSIONS

    def _to_document(self, submission: Submission) -> dict:
        data = submission.model_dump(mode="python", exclude={"id"})
        for key in _UNSET_WHEN_EMPTY:
            if data.get(key) is None:
                data.pop(key, None)
        data["assignment_id"] = to_object_id(data["assignment_id"], "assignment ID")
        data["submitted_by"] = to_object_id(data["submitted_by"], "submitter ID")
        return add_timestamps(data)

    def insert(self, submission: Submission) -> str:
        return save_to_mongodb(self.collection, self._to_document(submission), "submission")

    def create(self, submission: Submission) -> Submission:
        """Insert and return the stored record as read back from the collection."""
        return self.get(self.insert(submission))

    def get(self, submission_id: str) -> Optional[Submission]:
        doc = self.collection.find_one({"_id": to_object_id(submission_id, "submission ID")})
        return Submission(**serialize_document(doc)) if doc else None

    def update(self, submission_id: str, fields: dict) -> Optional[Submission]:
        updates = add_timestamps(dict(fields), created=False)
        self.collection.update_one(
            {"_id": to_object_id(submission_id, "submission ID")},
            {"$set": updates},
        )
        return self.get(submission_id)

    def delete(self, submission_id: str) -> bool:
        result = self.collection.delete_one({"_id": to_object_id(submission_id, "submission ID")})
        return result.deleted_count == 1

    def list_for_assignment(self, assignment_id: str) -> List[Submission]:
        cursor = self.collection.find(
            {"assignment_id": to_object_id(assignment_id, "assignment ID")},
            sort=[("submission_date", ASCENDING)],
        )
        return [Submission(**serialize_document(doc)) for doc in cursor]


class AssignmentRepository(_Repository):
    collection_name = ASSIGNMENTS

    def find_by_id(self, assignment_id: str) -> Optional[AssignmentRef]:
        doc = self.collection.find_one({"_id": to_object_id(assignment_id, "assignment ID")})
        if not doc:
            return None
        data = serialize_document(doc)
        due_date = data.get("due_date")
        if isinstance(due_date, datetime) and due_date.tzinfo is None:
            data["due_date"] = due_date.replace(tzinfo=timezone.utc)
        return AssignmentRef(**data)


class UserRepository(_Repository):
    collection_name = USERS

    def find_by_id(self, user_id: str) -> Optional[UserProfile]:
        doc = self.collection.find_one(
            {"_id": to_object_id(user_id, "user ID")},
            {"name": 1, "email": 1},
        )
        return UserProfile(**serialize_document(doc)) if doc else None
