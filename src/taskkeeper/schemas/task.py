"""Pydantic schemas for tasks.

Learn: Separate schemas for create/update/read keep the API clean.
- TaskCreate: what you POST to create a task
- TaskUpdate: what you PUT to modify a task (every field optional, at
  least one required, explicit nulls rejected)
- TaskRead: what the API returns, camelCase on the wire

These reject bad shapes early with a 400; the Task entity still
re-validates everything, since use-cases can be called without HTTP.
"""

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

from taskkeeper.domain.task import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, Task
from taskkeeper.usecases.tasks import TaskPatch

Title = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=TITLE_MAX_LENGTH)
]
Description = Annotated[str, StringConstraints(max_length=DESCRIPTION_MAX_LENGTH)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskCreate(CamelModel):
    title: Title
    description: Description = ""


class TaskUpdate(CamelModel):
    """Partial update — only fields that were sent are applied."""

    title: Optional[Title] = None
    description: Optional[Description] = None
    is_completed: Optional[StrictBool] = None

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = sorted(k for k, v in data.items() if v is None)
            if nulls:
                raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return data

    @model_validator(mode="after")
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError(
                "At least one field (title, description, or isCompleted) "
                "must be provided for update."
            )
        return self

    def to_patch(self) -> TaskPatch:
        return TaskPatch(
            title=self.title,
            description=self.description,
            is_completed=self.is_completed,
        )


class TaskRead(CamelModel):
    id: str
    user_id: str
    title: str
    description: str
    created_at: datetime
    is_completed: bool = Field(default=False)

    @classmethod
    def from_entity(cls, task: Task) -> "TaskRead":
        return cls(
            id=task.id,
            user_id=task.user_id,
            title=task.title,
            description=task.description,
            created_at=task.created_at,
            is_completed=task.is_completed,
        )
