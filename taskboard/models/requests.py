"""Pydantic request bodies for board routes.

Move bodies keep every field optional. Whether ``targetSectionId`` was sent
at all is read from ``model_fields_set``: an absent field and an explicit
null mean different things. Patch bodies follow the same rule: only the
fields present in the payload are written.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from taskboard.logic.move_coordinator import ContainerTarget, MoveRequest, MoveTo, MoveToDefault, NoChange

# Client values that mean "the unlocated bucket"
UNLOCATED_SENTINELS = {"unlocated", "null"}


class _NamedBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class CreateProjectBody(_NamedBody):
    desc: Optional[str] = Field(default=None, max_length=255)


class CreateSectionBody(_NamedBody):
    pass


class RenameSectionBody(_NamedBody):
    pass


class CreateTaskBody(_NamedBody):
    section: Optional[str] = None
    desc: Optional[str] = Field(default=None, max_length=255)


class CreateSubtaskBody(_NamedBody):
    pass


class ReorderBody(BaseModel):
    beforeId: Optional[str] = None
    afterId: Optional[str] = None

    def to_move_request(self) -> MoveRequest:
        return MoveRequest(target=NoChange(), before_id=self.beforeId, after_id=self.afterId)


class MoveTaskBody(ReorderBody):
    targetSectionId: Optional[str] = None

    def target(self) -> ContainerTarget:
        if "targetSectionId" not in self.model_fields_set:
            return NoChange()
        raw = self.targetSectionId
        if raw is None or raw.strip().lower() in UNLOCATED_SENTINELS or not raw.strip():
            return MoveToDefault()
        return MoveTo(container_id=raw)

    def to_move_request(self) -> MoveRequest:
        return MoveRequest(target=self.target(), before_id=self.beforeId, after_id=self.afterId)



def _iso_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class _PatchBody(BaseModel):
    """Partial update: only fields present in the payload are applied.

    ``name`` and ``status`` may be omitted but not set to null; ``dueDate``
    null clears the due date.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[bool] = None
    dueDate: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

    @field_validator("status")
    @classmethod
    def status_must_not_be_null(cls, v: Optional[bool]) -> bool:
        if v is None:
            raise ValueError("status must be a boolean")
        return v

    def to_patch(self) -> dict:
        sent = self.model_fields_set
        patch: dict = {}
        if "name" in sent:
            patch["name"] = self.name
        if "status" in sent:
            patch["status"] = self.status
        if "dueDate" in sent:
            patch["due_date"] = _iso_utc(self.dueDate)
        return patch


class UpdateTaskBody(_PatchBody):
    desc: Optional[str] = Field(default=None, max_length=255)

    def to_patch(self) -> dict:
        patch = super().to_patch()
        if "desc" in self.model_fields_set:
            patch["desc"] = self.desc
        return patch


class UpdateSubtaskBody(_PatchBody):
    priority: Optional[str] = Field(default=None, max_length=20)

    def to_patch(self) -> dict:
        patch = super().to_patch()
        if "priority" in self.model_fields_set:
            patch["priority"] = self.priority
        return patch


__all__ = [
    "UNLOCATED_SENTINELS",
    "CreateProjectBody",
    "CreateSectionBody",
    "RenameSectionBody",
    "CreateTaskBody",
    "CreateSubtaskBody",
    "ReorderBody",
    "MoveTaskBody",
    "UpdateTaskBody",
    "UpdateSubtaskBody",
]
