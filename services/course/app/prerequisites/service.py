"""Prerequisite service: pure business logic, no FastAPI imports.

Maintains the course → prerequisite-course graph: edge CRUD guarded by
cycle detection, per-learner eligibility evaluation, chain auditing and
statistics. Course and enrollment rows are read-only facts here.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import on_commit
from app.exceptions import (
    CircularDependencyError,
    CourseNotFoundError,
    PrerequisiteNotFoundError,
    PrerequisiteValidationError,
)
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import (
    EVALUATION_METHOD_LABELS,
    PREREQUISITE_TYPE_LABELS,
    CourseStatus,
    EvaluationMethod,
    PrerequisiteType,
)
from app.models.prerequisite import CoursePrerequisite
from app.prerequisites import cache as prerequisite_cache
from app.prerequisites import graph
from app.prerequisites.cache import PrerequisiteCache
from app.prerequisites.evaluators import (
    EnrollmentFact,
    EvaluationContext,
    evaluate_prerequisite,
)
from app.prerequisites.schemas import PrerequisiteResponse

logger = logging.getLogger(__name__)

EnumT = TypeVar("EnumT", bound=Enum)

# pg_advisory_xact_lock key serialising validate-then-write on the edge table
_GRAPH_LOCK_KEY = 7_301_734

# API field name -> ORM attribute
_UPDATABLE_FIELDS: dict[str, str] = {
    "prerequisite_course_id": "prerequisite_course_id",
    "prerequisite_type": "prerequisite_type",
    "requirement_value": "requirement_value",
    "evaluation_method": "evaluation_method",
    "is_mandatory": "is_mandatory",
    "order": "sort_order",
    "description": "description",
    "metadata": "extra_metadata",
}
_NULLABLE_FIELDS = frozenset({"requirement_value"})


# ---------------------------------------------------------------------------
# Catalog lookups
# ---------------------------------------------------------------------------


def get_prerequisite_types() -> dict[str, str]:
    return {t.value: label for t, label in PREREQUISITE_TYPE_LABELS.items()}


def get_evaluation_methods() -> dict[str, str]:
    return {m.value: label for m, label in EVALUATION_METHOD_LABELS.items()}


async def get_course_by_id(db: AsyncSession, course_id: UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))
    return course


async def _courses_by_id(db: AsyncSession, course_ids: set[UUID]) -> dict[UUID, Course]:
    if not course_ids:
        return {}
    result = await db.execute(select(Course).where(Course.course_id.in_(list(course_ids))))
    return {c.course_id: c for c in result.scalars().all()}


def _coerce_enum(enum_cls: type[EnumT], value: Any, field: str) -> EnumT:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise PrerequisiteValidationError(
            f"Invalid {field} '{value}'. Allowed: {allowed}"
        ) from None


# ---------------------------------------------------------------------------
# Cycle detection
# ---------------------------------------------------------------------------


async def _load_adjacency(db: AsyncSession) -> dict[UUID, set[UUID]]:
    result = await db.execute(
        select(CoursePrerequisite.course_id, CoursePrerequisite.prerequisite_course_id)
    )
    return graph.build_adjacency((row[0], row[1]) for row in result.all())


async def _lock_prerequisite_graph(db: AsyncSession) -> None:
    """Serialise edge mutations until the surrounding transaction ends.

    Two concurrent writers adding A→B and B→A must not both validate
    against the same snapshot. No-op outside PostgreSQL.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    await db.execute(select(func.pg_advisory_xact_lock(_GRAPH_LOCK_KEY)))


async def has_circular_dependency(
    db: AsyncSession,
    course_id: UUID,
    prerequisite_course_id: UUID,
) -> bool:
    """Would ``course_id`` requiring ``prerequisite_course_id`` close a cycle?"""
    adjacency = await _load_adjacency(db)
    return graph.would_create_cycle(adjacency, course_id, prerequisite_course_id)


async def _validate_prerequisite_target(
    db: AsyncSession,
    course_id: UUID,
    prerequisite_course_id: UUID,
) -> None:
    if course_id == prerequisite_course_id:
        raise PrerequisiteValidationError("Course cannot be a prerequisite for itself")
    if await db.get(Course, prerequisite_course_id) is None:
        raise PrerequisiteValidationError("Prerequisite course not found")
    await _lock_prerequisite_graph(db)
    if await has_circular_dependency(db, course_id, prerequisite_course_id):
        raise CircularDependencyError(str(course_id), str(prerequisite_course_id))


# ---------------------------------------------------------------------------
# Edge CRUD
# ---------------------------------------------------------------------------


async def _invalidate_after_write(
    db: AsyncSession, cache: PrerequisiteCache, course_id: UUID,
) -> None:
    """Drop the course's edge-list entry now and again once the write commits.

    A reader between the two can re-cache the pre-write rows; the second
    forget removes them.
    """
    await prerequisite_cache.invalidate_prerequisites(course_id, cache)

    async def _forget() -> None:
        await prerequisite_cache.invalidate_prerequisites(course_id, cache)

    on_commit(db, _forget)


async def create_prerequisite(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
    *,
    prerequisite_course_id: UUID,
    prerequisite_type: PrerequisiteType | str,
    requirement_value: float | None = None,
    evaluation_method: EvaluationMethod | str = EvaluationMethod.AUTOMATIC,
    is_mandatory: bool = True,
    order: int = 0,
    description: str = "",
    metadata: dict | None = None,
) -> CoursePrerequisite:
    try:
        if course_id == prerequisite_course_id:
            raise PrerequisiteValidationError("Course cannot be a prerequisite for itself")
        prerequisite_type = _coerce_enum(PrerequisiteType, prerequisite_type, "prerequisite_type")
        evaluation_method = _coerce_enum(EvaluationMethod, evaluation_method, "evaluation_method")
        await get_course_by_id(db, course_id)
        await _validate_prerequisite_target(db, course_id, prerequisite_course_id)
    except (PrerequisiteValidationError, CourseNotFoundError) as exc:
        logger.warning(
            "Prerequisite rejected course=%s prerequisite_course=%s: %s",
            course_id, prerequisite_course_id, exc,
        )
        raise

    edge = CoursePrerequisite(
        course_id=course_id,
        prerequisite_course_id=prerequisite_course_id,
        prerequisite_type=prerequisite_type,
        requirement_value=requirement_value,
        evaluation_method=evaluation_method,
        is_mandatory=is_mandatory,
        sort_order=order,
        description=description or "",
        extra_metadata=metadata or {},
    )
    db.add(edge)
    await db.flush()
    await db.refresh(edge)

    await _invalidate_after_write(db, cache, course_id)
    logger.info(
        "Course prerequisite created id=%s course=%s prerequisite_course=%s",
        edge.prerequisite_id, course_id, prerequisite_course_id,
    )
    return edge


async def get_prerequisite(db: AsyncSession, prerequisite_id: int) -> CoursePrerequisite:
    edge = await db.get(CoursePrerequisite, prerequisite_id)
    if edge is None:
        raise PrerequisiteNotFoundError(str(prerequisite_id))
    return edge


async def update_prerequisite(
    db: AsyncSession,
    cache: PrerequisiteCache,
    prerequisite_id: int,
    **fields: Any,
) -> CoursePrerequisite:
    """Partial update; only the keys passed are touched.

    Re-pointing the edge re-runs the self-loop, existence and cycle checks.
    The edge is left unchanged when any check fails.
    """
    try:
        edge = await get_prerequisite(db, prerequisite_id)
    except PrerequisiteNotFoundError:
        logger.warning("Prerequisite update rejected id=%s: not found", prerequisite_id)
        raise

    try:
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise PrerequisiteValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if "prerequisite_type" in fields and fields["prerequisite_type"] is not None:
            fields["prerequisite_type"] = _coerce_enum(
                PrerequisiteType, fields["prerequisite_type"], "prerequisite_type"
            )
        if "evaluation_method" in fields and fields["evaluation_method"] is not None:
            fields["evaluation_method"] = _coerce_enum(
                EvaluationMethod, fields["evaluation_method"], "evaluation_method"
            )
        new_target = fields.get("prerequisite_course_id")
        if new_target is not None and new_target != edge.prerequisite_course_id:
            await _validate_prerequisite_target(db, edge.course_id, new_target)
    except PrerequisiteValidationError as exc:
        logger.warning(
            "Prerequisite update rejected id=%s course=%s: %s",
            prerequisite_id, edge.course_id, exc,
        )
        raise

    for field, value in fields.items():
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        setattr(edge, _UPDATABLE_FIELDS[field], value)

    await db.flush()
    await db.refresh(edge)

    await _invalidate_after_write(db, cache, edge.course_id)
    logger.info("Course prerequisite updated id=%s course=%s", prerequisite_id, edge.course_id)
    return edge


async def delete_prerequisite(
    db: AsyncSession,
    cache: PrerequisiteCache,
    prerequisite_id: int,
) -> None:
    try:
        edge = await get_prerequisite(db, prerequisite_id)
    except PrerequisiteNotFoundError:
        logger.warning("Prerequisite delete rejected id=%s: not found", prerequisite_id)
        raise
    course_id = edge.course_id
    await db.delete(edge)
    await db.flush()

    await _invalidate_after_write(db, cache, course_id)
    logger.info("Course prerequisite deleted id=%s course=%s", prerequisite_id, course_id)


async def _query_prerequisites(
    db: AsyncSession, course_id: UUID | None = None,
) -> list[CoursePrerequisite]:
    stmt = select(CoursePrerequisite).order_by(
        CoursePrerequisite.sort_order, CoursePrerequisite.prerequisite_id
    )
    if course_id is not None:
        stmt = stmt.where(CoursePrerequisite.course_id == course_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_prerequisites(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
) -> list[PrerequisiteResponse]:
    """Edges of ``course_id`` by ``order`` then insertion. Cache first, DB fallback."""
    cached = await prerequisite_cache.get_cached_prerequisites(course_id, cache)
    if cached is not None:
        return [PrerequisiteResponse.model_validate(item) for item in cached]

    edges = [
        PrerequisiteResponse.model_validate(edge)
        for edge in await _query_prerequisites(db, course_id)
    ]
    await prerequisite_cache.set_cached_prerequisites(
        course_id, [edge.model_dump(mode="json") for edge in edges], cache,
    )
    return edges


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


async def _enrollment_facts(
    db: AsyncSession, user_id: UUID, course_ids: set[UUID],
) -> dict[UUID, EnrollmentFact]:
    if not course_ids:
        return {}
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id.in_(list(course_ids)),
        )
    )
    return {
        e.course_id: EnrollmentFact(
            status=e.status,
            final_score=e.final_score,
            enrolled_at=e.enrolled_at,
            completed_at=e.completed_at,
        )
        for e in result.scalars().all()
    }


async def check_user_prerequisites(
    db: AsyncSession,
    cache: PrerequisiteCache,
    user_id: UUID,
    course_id: UUID,
    *,
    now: datetime | None = None,
) -> dict:
    """Evaluate every edge of ``course_id`` for ``user_id``.

    Eligible iff every mandatory edge is met; unmet advisory edges are
    reported without blocking.
    """
    edges = await list_prerequisites(db, cache, course_id)
    result: dict[str, Any] = {
        "user_id": user_id,
        "course_id": course_id,
        "eligible": True,
        "overall_status": "eligible",
        "prerequisites_met": [],
        "prerequisites_not_met": [],
        "total_prerequisites": len(edges),
        "met_count": 0,
        "not_met_count": 0,
    }
    if not edges:
        return result

    target_ids = {edge.prerequisite_course_id for edge in edges}
    courses = await _courses_by_id(db, target_ids)
    facts = await _enrollment_facts(db, user_id, target_ids)
    now = now or datetime.now(timezone.utc)

    eligible = True
    for edge in edges:
        required = courses.get(edge.prerequisite_course_id)
        outcome = evaluate_prerequisite(
            EvaluationContext(
                prerequisite=edge,
                required_course=required.title if required is not None else None,
                enrollment=facts.get(edge.prerequisite_course_id),
                now=now,
            )
        )
        entry = {"prerequisite": edge, "result": outcome.to_dict()}
        if outcome.met:
            result["prerequisites_met"].append(entry)
        else:
            result["prerequisites_not_met"].append(entry)
            if edge.is_mandatory:
                eligible = False

    result["eligible"] = eligible
    result["overall_status"] = "eligible" if eligible else "not_eligible"
    result["met_count"] = len(result["prerequisites_met"])
    result["not_met_count"] = len(result["prerequisites_not_met"])
    return result


# ---------------------------------------------------------------------------
# Auditing & reporting
# ---------------------------------------------------------------------------


async def validate_prerequisite_chain(
    db: AsyncSession,
    cache: PrerequisiteCache,
    course_id: UUID,
) -> dict:
    """Read-only audit of a course's edges: dangling, cyclic or unpublished targets."""
    edges = await list_prerequisites(db, cache, course_id)
    courses = await _courses_by_id(db, {edge.prerequisite_course_id for edge in edges})
    adjacency = await _load_adjacency(db) if edges else {}

    issues: list[dict] = []
    flagged: set[int] = set()

    def _flag(kind: str, edge: PrerequisiteResponse, message: str) -> None:
        issues.append({"type": kind, "prerequisite_id": edge.prerequisite_id, "message": message})
        flagged.add(edge.prerequisite_id)

    for edge in edges:
        target = courses.get(edge.prerequisite_course_id)
        if target is None:
            _flag("missing_course", edge, "Prerequisite course not found")
            continue
        if graph.reaches(adjacency, edge.prerequisite_course_id, course_id):
            _flag("circular_dependency", edge, "Circular dependency detected")
        if target.status != CourseStatus.PUBLISHED:
            _flag("unpublished_course", edge, "Prerequisite course is not published")

    return {
        "course_id": course_id,
        "valid": not issues,
        "issues": issues,
        "total_prerequisites": len(edges),
        "valid_prerequisites": len(edges) - len(flagged),
    }


async def get_prerequisite_stats(
    db: AsyncSession,
    course_id: UUID | None = None,
) -> dict:
    def _scoped(stmt):
        if course_id is not None:
            stmt = stmt.where(CoursePrerequisite.course_id == course_id)
        return stmt

    total = await db.scalar(_scoped(select(func.count()).select_from(CoursePrerequisite)))
    mandatory = await db.scalar(
        _scoped(
            select(func.count())
            .select_from(CoursePrerequisite)
            .where(CoursePrerequisite.is_mandatory.is_(True))
        )
    )
    by_type = await db.execute(
        _scoped(
            select(CoursePrerequisite.prerequisite_type, func.count())
            .group_by(CoursePrerequisite.prerequisite_type)
        )
    )
    by_method = await db.execute(
        _scoped(
            select(CoursePrerequisite.evaluation_method, func.count())
            .group_by(CoursePrerequisite.evaluation_method)
        )
    )
    courses_with = await db.scalar(
        _scoped(select(func.count(distinct(CoursePrerequisite.course_id))))
    )

    total = total or 0
    mandatory = mandatory or 0
    courses_with = courses_with or 0
    return {
        "course_id": course_id,
        "total_prerequisites": total,
        "prerequisites_by_type": {PrerequisiteType(t).value: n for t, n in by_type.all()},
        "mandatory_prerequisites": mandatory,
        "optional_prerequisites": total - mandatory,
        "evaluation_methods": {EvaluationMethod(m).value: n for m, n in by_method.all()},
        "courses_with_prerequisites": courses_with,
        "average_prerequisites_per_course": round(total / courses_with, 2) if courses_with else 0.0,
    }


async def get_prerequisite_path(db: AsyncSession, course_id: UUID) -> dict:
    """Recursive prerequisite tree rooted at ``course_id``."""
    await get_course_by_id(db, course_id)

    edges_by_course: dict[UUID, list[PrerequisiteResponse]] = defaultdict(list)
    for edge in await _query_prerequisites(db):
        edges_by_course[edge.course_id].append(PrerequisiteResponse.model_validate(edge))

    target_ids = {e.prerequisite_course_id for edges in edges_by_course.values() for e in edges}
    courses = await _courses_by_id(db, target_ids)

    def _render(edge: PrerequisiteResponse) -> dict[str, Any]:
        course = courses.get(edge.prerequisite_course_id)
        return {
            "prerequisite": edge,
            "course": (
                {"course_id": course.course_id, "title": course.title, "status": course.status}
                if course is not None
                else None
            ),
        }

    path = graph.build_path_tree(
        course_id,
        edges_by_course,
        target_of=lambda edge: edge.prerequisite_course_id,
        render=_render,
    )
    return {"course_id": course_id, "path": path}
