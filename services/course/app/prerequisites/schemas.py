"""Prerequisite domain Pydantic V2 schemas.

Follows RORO: separate request models from response models. The API
exposes ``order`` and ``metadata``; the ORM columns are ``sort_order``
and ``extra_metadata``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.models.enums import CourseStatus, EvaluationMethod, PrerequisiteType


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreatePrerequisiteRequest(BaseModel):
    """Request body for attaching a prerequisite edge to a course."""

    model_config = ConfigDict(str_strip_whitespace=True)

    prerequisite_course_id: UUID = Field(description="Course that must be satisfied first.")
    prerequisite_type: PrerequisiteType = Field(description="How the requirement is evaluated.")
    requirement_value: float | None = Field(
        default=None,
        ge=0,
        description="Threshold for the type: minimum score % or days enrolled.",
    )
    evaluation_method: EvaluationMethod = Field(default=EvaluationMethod.AUTOMATIC)
    is_mandatory: bool = Field(
        default=True,
        description="Advisory (false) edges are reported but never block eligibility.",
    )
    order: int = Field(default=0, ge=0, description="Display / evaluation order.")
    description: str = Field(default="", max_length=2000)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdatePrerequisiteRequest(BaseModel):
    """Partial update. Only fields present in the body are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    prerequisite_course_id: UUID | None = None
    prerequisite_type: PrerequisiteType | None = None
    requirement_value: float | None = Field(default=None, ge=0)
    evaluation_method: EvaluationMethod | None = None
    is_mandatory: bool | None = None
    order: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=2000)
    metadata: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PrerequisiteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    prerequisite_id: int
    course_id: UUID
    prerequisite_course_id: UUID
    prerequisite_type: PrerequisiteType
    requirement_value: float | None = None
    evaluation_method: EvaluationMethod
    is_mandatory: bool
    order: int = Field(validation_alias=AliasChoices("sort_order", "order"))
    description: str = ""
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra_metadata", "metadata"),
    )
    created_at: datetime
    updated_at: datetime


class DeletePrerequisiteResponse(BaseModel):
    prerequisite_id: int
    deleted: bool = True


class EvaluationOutcomeResponse(BaseModel):
    met: bool
    message: str
    details: dict[str, Any] | None = None


class EvaluatedPrerequisite(BaseModel):
    prerequisite: PrerequisiteResponse
    result: EvaluationOutcomeResponse


class PrerequisiteCheckResponse(BaseModel):
    user_id: UUID
    course_id: UUID
    eligible: bool
    overall_status: str = Field(description="'eligible' or 'not_eligible'.")
    prerequisites_met: list[EvaluatedPrerequisite]
    prerequisites_not_met: list[EvaluatedPrerequisite]
    total_prerequisites: int
    met_count: int
    not_met_count: int


class ChainIssue(BaseModel):
    type: str = Field(description="missing_course | circular_dependency | unpublished_course")
    prerequisite_id: int
    message: str


class ChainValidationResponse(BaseModel):
    course_id: UUID
    valid: bool
    issues: list[ChainIssue]
    total_prerequisites: int
    valid_prerequisites: int


class PrerequisiteStatsResponse(BaseModel):
    course_id: UUID | None = None
    total_prerequisites: int
    prerequisites_by_type: dict[str, int]
    mandatory_prerequisites: int
    optional_prerequisites: int
    evaluation_methods: dict[str, int]
    courses_with_prerequisites: int
    average_prerequisites_per_course: float


class PathCourse(BaseModel):
    course_id: UUID
    title: str
    status: CourseStatus


class PrerequisitePathNode(BaseModel):
    prerequisite: PrerequisiteResponse
    course: PathCourse | None = Field(
        default=None, description="Null when the prerequisite course no longer exists."
    )
    cycle: bool = False
    sub_prerequisites: list[PrerequisitePathNode] = Field(default_factory=list)


class PrerequisitePathResponse(BaseModel):
    course_id: UUID
    path: list[PrerequisitePathNode]
