from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AssignmentRef(BaseModel):
    """The slice of an assignment document the submission pipeline reads."""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    description: Optional[str] = None
    course: Optional[str] = None
    due_date: Optional[datetime] = None
    total_points: Optional[float] = 100
    created_by: Optional[str] = Field(None, description="users _id of the instructor")

    def context(self) -> str:
        return self.description or self.title or "the assigned topic"


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
