# Package marker for database subpackage
from .mongodb import MongoDBConnection, get_collection, close
from .repositories import AssignmentRepository, SubmissionRepository, UserRepository

__all__ = [
    "MongoDBConnection",
    "get_collection",
    "close",
    "AssignmentRepository",
    "SubmissionRepository",
    "UserRepository",
]
