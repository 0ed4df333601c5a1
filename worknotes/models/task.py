"""
Task models
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict


class Priority(str, Enum):
    """Task priority levels"""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(BaseModel):
    """
    One unit of work filed under a calendar date.

    Field aliases match the local storage record (camelCase JSON).
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, validate_default=True)

    id: str
    content: str
    is_completed: bool = Field(False, alias="isCompleted")
    created_at: str = Field(..., alias="createdAt")
    completed_at: Optional[str] = Field(None, alias="completedAt")
    priority: Priority = Priority.MEDIUM
    date: str  # YYYY-MM-DD, the grouping key
    has_reminder: Optional[bool] = Field(None, alias="hasReminder")

    def to_storage(self) -> Dict[str, Any]:
        """Dump using the camelCase storage field names"""
        data = self.model_dump(by_alias=True)
        if data.get("hasReminder") is None:
            data.pop("hasReminder", None)
        return data


# Mapping from date (YYYY-MM-DD) to the ordered tasks filed under it
TaskCollection = Dict[str, List[Task]]


class TaskRow(BaseModel):
    """Remote store row, one per task"""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str
    user_id: str
    content: str
    is_completed: bool = False
    created_at: str
    completed_at: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    date: str
    is_encrypted: bool = False

    @classmethod
    def from_task(cls, task: Task, user_id: str, content: str, is_encrypted: bool = True) -> "TaskRow":
        return cls(
            id=task.id,
            user_id=user_id,
            content=content,
            is_completed=bool(task.is_completed),
            created_at=task.created_at,
            completed_at=task.completed_at,
            priority=task.priority,
            date=task.date,
            is_encrypted=is_encrypted,
        )

    def to_task(self, content: str) -> Task:
        return Task(
            id=self.id,
            content=content,
            is_completed=self.is_completed,
            created_at=self.created_at,
            completed_at=self.completed_at,
            priority=self.priority,
            date=self.date,
        )


class AuthSession(BaseModel):
    """Authenticated user capability supplied by the auth provider"""
    user_id: str
    access_token: str


def tasks_to_storage(collection: TaskCollection) -> Dict[str, List[Dict[str, Any]]]:
    """Convert a collection to plain JSON-compatible data"""
    return {
        date: [task.to_storage() for task in tasks]
        for date, tasks in collection.items()
    }
