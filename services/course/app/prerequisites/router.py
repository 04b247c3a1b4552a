"""Prerequisites router: HTTP layer only.

Defines endpoints for prerequisite edge management, learner eligibility
checks, chain validation and statistics. Delegates to controller.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_prerequisite_cache, require_course_editor
from app.prerequisites import controller
from app.prerequisites.cache import PrerequisiteCache
from app.prerequisites.schemas import (
    ChainValidationResponse,
    CreatePrerequisiteRequest,
    DeletePrerequisiteResponse,
    PrerequisiteCheckResponse,
    PrerequisitePathResponse,
    PrerequisiteResponse,
    PrerequisiteStatsResponse,
    UpdatePrerequisiteRequest,
)
from shared.models.user import CurrentUser

router = APIRouter(tags=["Prerequisites"])


# ======================================================================
# Catalogs & statistics (static paths first so they win over /{id})
# ======================================================================


@router.get(
    "/prerequisites/types",
    response_model=dict[str, str],
    summary="List prerequisite types",
)
async def list_prerequisite_types() -> dict[str, str]:
    return controller.get_prerequisite_types()


@router.get(
    "/prerequisites/evaluation-methods",
    response_model=dict[str, str],
    summary="List evaluation methods",
)
async def list_evaluation_methods() -> dict[str, str]:
    return controller.get_evaluation_methods()


@router.get(
    "/prerequisites/stats",
    response_model=PrerequisiteStatsResponse,
    summary="Prerequisite statistics",
    description="Counts by type, mandatory/optional and evaluation method. "
    "Scoped to one course when `course_id` is given.",
)
async def prerequisite_stats(
    course_id: UUID | None = Query(None, description="Restrict to one course."),
    db: AsyncSession = Depends(get_db),
) -> PrerequisiteStatsResponse:
    return await controller.get_stats(db, course_id)


# ======================================================================
# Per-course endpoints
# ======================================================================


@router.post(
    "/courses/{course_id}/prerequisites",
    response_model=PrerequisiteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a prerequisite to a course",
    description="Rejects self-references, unknown courses and edges that would "
    "create a circular dependency (422).",
)
async def create_prerequisite(
    course_id: UUID,
    body: CreatePrerequisiteRequest,
    db: AsyncSession = Depends(get_db),
    cache: PrerequisiteCache = Depends(get_prerequisite_cache),
    _user: CurrentUser = Depends(require_course_editor),
) -> PrerequisiteResponse:
    return await controller.create_prerequisite(db, cache, course_id, body)


@router.get(
    "/courses/{course_id}/prerequisites",
    response_model=list[PrerequisiteResponse],
    summary="List prerequisites of a course",
    description="Ordered by `order`, then creation order.",
)
async def list_prerequisites(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: PrerequisiteCache = Depends(get_prerequisite_cache),
) -> list[PrerequisiteResponse]:
    return await controller.list_prerequisites(db, cache, course_id)


@router.get(
    "/courses/{course_id}/prerequisites/check",
    response_model=PrerequisiteCheckResponse,
    summary="Check a learner's eligibility",
    description="Evaluates every prerequisite for the learner. Only mandatory "
    "prerequisites block eligibility.",
)
async def check_prerequisites(
    course_id: UUID,
    user_id: UUID = Query(..., description="Learner to evaluate."),
    db: AsyncSession = Depends(get_db),
    cache: PrerequisiteCache = Depends(get_prerequisite_cache),
) -> PrerequisiteCheckResponse:
    return await controller.check_prerequisites(db, cache, course_id, user_id)


@router.get(
    "/courses/{course_id}/prerequisites/validate",
    response_model=ChainValidationResponse,
    summary="Audit a course's prerequisite chain",
)
async def validate_chain(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: PrerequisiteCache = Depends(get_prerequisite_cache),
) -> ChainValidationResponse:
    return await controller.validate_chain(db, cache, course_id)


@router.get(
    "/courses/{course_id}/prerequisites/path",
    response_model=PrerequisitePathResponse,
    summary="Recursive prerequisite tree",
)
async def prerequisite_path(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> PrerequisitePathResponse:
    return await controller.get_path(db, course_id)


# ======================================================================
# Single-edge endpoints
# ======================================================================


@router.get(
    "/prerequisites/{prerequisite_id}",
    response_model=PrerequisiteResponse,
    summary="Get a prerequisite",
)
async def get_prerequisite(
    prerequisite_id: int,
    db: AsyncSession = Depends(get_db),
) -> PrerequisiteResponse:
    return await controller.get_prerequisite(db, prerequisite_id)


@router.put(
    "/prerequisites/{prerequisite_id}",
    response_model=PrerequisiteResponse,
    summary="Update a prerequisite",
    description="Partial update. Changing `prerequisite_course_id` re-runs the "
    "circular dependency check.",
)
async def update_prerequisite(
    prerequisite_id: int,
    body: UpdatePrerequisiteRequest,
    db: AsyncSession = Depends(get_db),
    cache: PrerequisiteCache = Depends(get_prerequisite_cache),
    _user: CurrentUser = Depends(require_course_editor),
) -> PrerequisiteResponse:
    return await controller.update_prerequisite(db, cache, prerequisite_id, body)


@router.delete(
    "/prerequisites/{prerequisite_id}",
    response_model=DeletePrerequisiteResponse,
    summary="Delete a prerequisite",
)
async def delete_prerequisite(
    prerequisite_id: int,
    db: AsyncSession = Depends(get_db),
    cache: PrerequisiteCache = Depends(get_prerequisite_cache),
    _user: CurrentUser = Depends(require_course_editor),
) -> DeletePrerequisiteResponse:
    return await controller.delete_prerequisite(db, cache, prerequisite_id)
