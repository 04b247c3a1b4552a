"""Prerequisite controller: maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    CourseNotFoundError,
    PrerequisiteNotFoundError,
    PrerequisiteValidationError,
)
from app.prerequisites import service
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

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (CourseNotFoundError, PrerequisiteNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PrerequisiteValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.messages[0],
        )
    logger.exception("Unexpected error in prerequisite controller")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


# ---------------------------------------------------------------------------
# Catalogs & statistics
# ---------------------------------------------------------------------------


def get_prerequisite_types() -> dict[str, str]:
    return service.get_prerequisite_types()


def get_evaluation_methods() -> dict[str, str]:
    return service.get_evaluation_methods()


async def get_stats(db: AsyncSession, course_id: UUID | None) -> PrerequisiteStatsResponse:
    try:
        stats = await service.get_prerequisite_stats(db, course_id)
        return PrerequisiteStatsResponse.model_validate(stats)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


# ---------------------------------------------------------------------------
# Edge CRUD
# ---------------------------------------------------------------------------


async def create_prerequisite(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
    body: CreatePrerequisiteRequest,
) -> PrerequisiteResponse:
    try:
        edge = await service.create_prerequisite(db, cache, course_id, **body.model_dump())
        return PrerequisiteResponse.model_validate(edge)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def list_prerequisites(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
) -> list[PrerequisiteResponse]:
    try:
        return await service.list_prerequisites(db, cache, course_id)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_prerequisite(db: AsyncSession, prerequisite_id: int) -> PrerequisiteResponse:
    try:
        edge = await service.get_prerequisite(db, prerequisite_id)
        return PrerequisiteResponse.model_validate(edge)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def update_prerequisite(
    db: AsyncSession,
    cache: PrerequisiteCache,
    prerequisite_id: int,
    body: UpdatePrerequisiteRequest,
) -> PrerequisiteResponse:
    try:
        edge = await service.update_prerequisite(
            db, cache, prerequisite_id, **body.model_dump(exclude_unset=True),
        )
        return PrerequisiteResponse.model_validate(edge)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def delete_prerequisite(
    db: AsyncSession,
    cache: PrerequisiteCache,
    prerequisite_id: int,
) -> DeletePrerequisiteResponse:
    try:
        await service.delete_prerequisite(db, cache, prerequisite_id)
        return DeletePrerequisiteResponse(prerequisite_id=prerequisite_id)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


# ---------------------------------------------------------------------------
# Evaluation & auditing
# ---------------------------------------------------------------------------


async def check_prerequisites(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
    user_id: UUID,
) -> PrerequisiteCheckResponse:
    try:
        result = await service.check_user_prerequisites(db, cache, user_id, course_id)
        return PrerequisiteCheckResponse.model_validate(result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def validate_chain(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
) -> ChainValidationResponse:
    try:
        result = await service.validate_prerequisite_chain(db, cache, course_id)
        return ChainValidationResponse.model_validate(result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_path(db: AsyncSession, course_id: UUID) -> PrerequisitePathResponse:
    try:
        result = await service.get_prerequisite_path(db, course_id)
        return PrerequisitePathResponse.model_validate(result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
