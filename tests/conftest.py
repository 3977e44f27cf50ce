"""
Shared test fixtures for the submission pipeline.
In-memory stand-ins for MongoDB collections, object storage and the models.
Zero network calls.
"""
import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda

from database.repositories import AssignmentRepository, SubmissionRepository, UserRepository
from errors import StorageError
from schemas.pipeline import StoredFileHandle
from utils.text_extraction import IMAGE_EXTENSIONS, file_extension

ON_TOPIC_ESSAY = (
    "Photosynthesis converts light energy into chemical energy stored in glucose. "
    "Chlorophyll in the chloroplasts absorbs mostly red and blue light. "
    "The light-dependent reactions split water and release oxygen as a by-product. "
    "The Calvin cycle then fixes carbon dioxide into sugars the plant can use."
)


class FakeCollection:
    """Enough of pymongo's Collection API for the repositories."""

    def __init__(self, docs=None):
        self.docs = {}
        for doc in docs or []:
            self.insert_one(doc)

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(key) == value for key, value in query.items())

    def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs[doc["_id"]] = doc
        return SimpleNamespace(inserted_id=doc["_id"])

    def find_one(self, query, projection=None):
        for doc in self.docs.values():
            if self._matches(doc, query):
                found = copy.deepcopy(doc)
                if projection:
                    found = {k: v for k, v in found.items() if k == "_id" or projection.get(k)}
                return found
        return None

    def find(self, query, sort=None):
        found = [copy.deepcopy(d) for d in self.docs.values() if self._matches(d, query)]
        for key, direction in reversed(sort or []):
            found.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return iter(found)

    def update_one(self, query, update):
        for doc in self.docs.values():
            if self._matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def delete_one(self, query):
        for key, doc in list(self.docs.items()):
            if self._matches(doc, query):
                del self.docs[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FailingInsertCollection(FakeCollection):
    def insert_one(self, doc):
        raise RuntimeError("write concern failed")


class FakeStorage:
    """Records uploads and deletions; optionally fails uploads."""

    def __init__(self, fail_upload=False):
        self.fail_upload = fail_upload
        self.files = {}
        self.uploads = []
        self.deleted = []

    def upload(self, file_bytes, filename, folder="submissions"):
        if self.fail_upload:
            raise StorageError("Failed to upload file to storage.")
        public_id = f"{folder}/{len(self.uploads) + 1}-{filename}"
        self.files[public_id] = file_bytes
        self.uploads.append(public_id)
        return StoredFileHandle(
            public_id=public_id,
            url=f"https://files.test/{public_id}",
            resource_type="image" if file_extension(filename) in IMAGE_EXTENSIONS else "raw",
        )

    def delete(self, handle):
        self.deleted.append(handle.public_id)
        return self.files.pop(handle.public_id, None) is not None

    def download(self, handle):
        if handle.public_id not in self.files:
            raise StorageError(f"Failed to retrieve stored file {handle.public_id}")
        return self.files[handle.public_id]


class FakeOpenAIClient:
    """Mimics ``client.responses.create`` and counts calls."""

    def __init__(self, output_text='{"score": 82, "confidence": "High"}', error=None):
        self.calls = []
        self._output_text = output_text
        self._error = error
        self.responses = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error:
            raise self._error
        return SimpleNamespace(output_text=self._output_text)


def _unavailable(_):
    raise RuntimeError("model unavailable")


@pytest.fixture
def make_llm():
    """Chat model that replies with the given responses in order."""
    def _make(*responses):
        return FakeListChatModel(responses=list(responses))
    return _make


@pytest.fixture
def failing_llm():
    return RunnableLambda(_unavailable)


@pytest.fixture
def ai_client():
    return FakeOpenAIClient()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def instructor_id():
    return str(ObjectId())


@pytest.fixture
def student_id():
    return str(ObjectId())


@pytest.fixture
def assignment_doc(instructor_id):
    return {
        "_id": ObjectId(),
        "title": "Photosynthesis essay",
        "description": "Explain how plants convert light into chemical energy.",
        "course": "BIO 101",
        "due_date": datetime.now(timezone.utc) + timedelta(days=7),
        "total_points": 100,
        "created_by": ObjectId(instructor_id),
    }


@pytest.fixture
def assignment_id(assignment_doc):
    return str(assignment_doc["_id"])


@pytest.fixture
def submissions():
    return SubmissionRepository(collection=FakeCollection())


@pytest.fixture
def assignments(assignment_doc):
    return AssignmentRepository(collection=FakeCollection([assignment_doc]))


@pytest.fixture
def users(student_id):
    return UserRepository(collection=FakeCollection([
        {"_id": ObjectId(student_id), "name": "Ada Lovelace", "email": "ada@example.edu", "role": "student"},
    ]))
