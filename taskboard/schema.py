"""
Task board schema.

Column lifecycle:
  TODO → DOING → DONE  (any column can move to any other)

A task is a value: edits produce a new Task that replaces the old one
at the same position in the list.
"""
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, Any, Union

logger = logging.getLogger(__name__)

TaskId = Union[int, str]

UNTITLED = "Untitled Task"


class ValidationError(Exception):
    """Raised when task fields fail validation."""
    pass


class TaskStatus(Enum):
    """The three board columns."""
    TODO = "todo"
    DOING = "doing"
    DONE = "done"

    @property
    def heading(self) -> str:
        return self.value.upper()

    @classmethod
    def from_str(cls, value: Optional[str]) -> "TaskStatus":
        """Strict lookup by value; raises ValidationError on anything else."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid status: {value!r}")


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_str(cls, value: Optional[str]) -> Optional["TaskPriority"]:
        """Empty means no priority; unknown values raise ValidationError."""
        if value is None or not str(value).strip():
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid priority: {value!r}")


def same_id(a: TaskId, b: TaskId) -> bool:
    """Ids from storage, the remote API and form fields compare as strings."""
    return str(a) == str(b)


@dataclass(frozen=True)
class Task:
    """A single card on the board."""

    id: TaskId
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: Optional[TaskPriority] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the stored JSON shape (priority only when set)."""
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
        }
        if self.priority is not None:
            data["priority"] = self.priority.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize, tolerating missing or unknown values."""
        status = TaskStatus.TODO
        if data.get("status"):
            try:
                status = TaskStatus.from_str(data["status"])
            except ValidationError:
                logger.warning(
                    f"Task {data.get('id')!r} has unknown status "
                    f"{data['status']!r}, placing it in todo"
                )

        priority = None
        if data.get("priority"):
            try:
                priority = TaskPriority.from_str(data["priority"])
            except ValidationError:
                logger.warning(
                    f"Task {data.get('id')!r} has unknown priority "
                    f"{data['priority']!r}, dropping it"
                )

        return cls(
            id=data.get("id"),
            title=data.get("title") or UNTITLED,
            description=data.get("description") or "",
            status=status,
            priority=priority,
        )
