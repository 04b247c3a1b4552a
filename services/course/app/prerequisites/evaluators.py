"""Per-type prerequisite evaluators: pure functions, no I/O.

Each evaluator receives an ``EvaluationContext`` holding the edge, the
required course title and the learner's enrollment fact for the
prerequisite course, and returns an ``EvaluationOutcome``.
``evaluate_prerequisite`` is the only entry point callers should use: it
dispatches on ``prerequisite_type`` and contains evaluator failures.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

from app.exceptions import EvaluationError
from app.models.enums import EnrollmentStatus, PrerequisiteType
from app.prerequisites.schemas import PrerequisiteResponse

logger = logging.getLogger(__name__)

DEFAULT_MINIMUM_SCORE: float = 70
DEFAULT_REQUIRED_DAYS: float = 30

_ACTIVE_STATUSES = frozenset({
    EnrollmentStatus.ENROLLED,
    EnrollmentStatus.IN_PROGRESS,
    EnrollmentStatus.COMPLETED,
})


@dataclass(frozen=True)
class EnrollmentFact:
    status: EnrollmentStatus
    final_score: float | None
    enrolled_at: datetime
    completed_at: datetime | None = None


@dataclass(frozen=True)
class EvaluationContext:
    prerequisite: PrerequisiteResponse
    required_course: str | None
    enrollment: EnrollmentFact | None
    now: datetime


@dataclass(frozen=True)
class EvaluationOutcome:
    met: bool
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Evaluator = Callable[[EvaluationContext], EvaluationOutcome]


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _isoformat(dt: datetime | None) -> str | None:
    return _aware(dt).isoformat() if dt is not None else None


# ---------------------------------------------------------------------------
# Enrollment-backed evaluators
# ---------------------------------------------------------------------------


def evaluate_course_completion(ctx: EvaluationContext) -> EvaluationOutcome:
    enrollment = ctx.enrollment
    if enrollment is None or enrollment.status != EnrollmentStatus.COMPLETED:
        return EvaluationOutcome(
            met=False,
            message="Course not completed",
            details={
                "required_course": ctx.required_course,
                "user_status": "not_enrolled_or_not_completed",
            },
        )
    return EvaluationOutcome(
        met=True,
        message="Course completed successfully",
        details={
            "required_course": ctx.required_course,
            "completion_date": _isoformat(enrollment.completed_at),
            "final_score": enrollment.final_score,
        },
    )


def evaluate_course_enrollment(ctx: EvaluationContext) -> EvaluationOutcome:
    enrollment = ctx.enrollment
    if enrollment is None or enrollment.status not in _ACTIVE_STATUSES:
        return EvaluationOutcome(
            met=False,
            message="Course not enrolled",
            details={"required_course": ctx.required_course, "user_status": "not_enrolled"},
        )
    return EvaluationOutcome(
        met=True,
        message="Course enrolled",
        details={
            "required_course": ctx.required_course,
            "enrollment_date": _isoformat(enrollment.enrolled_at),
            "current_status": enrollment.status.value,
        },
    )


def evaluate_minimum_score(ctx: EvaluationContext) -> EvaluationOutcome:
    enrollment = ctx.enrollment
    if enrollment is None or enrollment.status != EnrollmentStatus.COMPLETED:
        return EvaluationOutcome(
            met=False,
            message="Course not completed",
            details={"required_course": ctx.required_course, "user_status": "not_completed"},
        )

    required_score = ctx.prerequisite.requirement_value
    if required_score is None:
        required_score = DEFAULT_MINIMUM_SCORE
    user_score = enrollment.final_score or 0

    if user_score < required_score:
        return EvaluationOutcome(
            met=False,
            message="Minimum score not met",
            details={
                "required_course": ctx.required_course,
                "required_score": required_score,
                "user_score": user_score,
                "difference": required_score - user_score,
            },
        )
    return EvaluationOutcome(
        met=True,
        message="Minimum score requirement met",
        details={
            "required_course": ctx.required_course,
            "required_score": required_score,
            "user_score": user_score,
            "excess": user_score - required_score,
        },
    )


def evaluate_time_requirement(ctx: EvaluationContext) -> EvaluationOutcome:
    """Whole days elapsed since enrolling in the prerequisite course, any status."""
    enrollment = ctx.enrollment
    if enrollment is None:
        return EvaluationOutcome(
            met=False,
            message="Course not enrolled",
            details={"required_course": ctx.required_course, "user_status": "not_enrolled"},
        )

    required_days = ctx.prerequisite.requirement_value
    if required_days is None:
        required_days = DEFAULT_REQUIRED_DAYS
    days_enrolled = (_aware(ctx.now) - _aware(enrollment.enrolled_at)).days

    if days_enrolled < required_days:
        return EvaluationOutcome(
            met=False,
            message="Time requirement not met",
            details={
                "required_course": ctx.required_course,
                "required_days": required_days,
                "days_enrolled": days_enrolled,
                "remaining_days": required_days - days_enrolled,
            },
        )
    return EvaluationOutcome(
        met=True,
        message="Time requirement met",
        details={
            "required_course": ctx.required_course,
            "required_days": required_days,
            "days_enrolled": days_enrolled,
            "excess_days": days_enrolled - required_days,
        },
    )


# ---------------------------------------------------------------------------
# Unimplemented requirement kinds are always "not met"
# ---------------------------------------------------------------------------


def evaluate_skill_assessment(ctx: EvaluationContext) -> EvaluationOutcome:
    return EvaluationOutcome(
        met=False,
        message="Skill assessment not implemented",
        details={"assessment_type": "skill_test", "status": "pending"},
    )


def evaluate_certification(ctx: EvaluationContext) -> EvaluationOutcome:
    return EvaluationOutcome(
        met=False,
        message="Certification evaluation not implemented",
        details={"certification_type": "required_certification", "status": "pending"},
    )


def evaluate_experience_level(ctx: EvaluationContext) -> EvaluationOutcome:
    return EvaluationOutcome(
        met=False,
        message="Experience level evaluation not implemented",
        details={"experience_type": "required_experience", "status": "pending"},
    )


def evaluate_custom_requirement(ctx: EvaluationContext) -> EvaluationOutcome:
    custom_logic = ctx.prerequisite.metadata.get("custom_logic")
    if not custom_logic:
        return EvaluationOutcome(met=False, message="Custom requirement logic not defined")
    return EvaluationOutcome(
        met=False,
        message="Custom requirement evaluation not implemented",
        details={"custom_logic": custom_logic, "status": "pending"},
    )


EVALUATORS: dict[PrerequisiteType, Evaluator] = {
    PrerequisiteType.COURSE_COMPLETION: evaluate_course_completion,
    PrerequisiteType.COURSE_ENROLLMENT: evaluate_course_enrollment,
    PrerequisiteType.MINIMUM_SCORE: evaluate_minimum_score,
    PrerequisiteType.TIME_REQUIREMENT: evaluate_time_requirement,
    PrerequisiteType.SKILL_ASSESSMENT: evaluate_skill_assessment,
    PrerequisiteType.CERTIFICATION: evaluate_certification,
    PrerequisiteType.EXPERIENCE_LEVEL: evaluate_experience_level,
    PrerequisiteType.CUSTOM_REQUIREMENT: evaluate_custom_requirement,
}


def _run_evaluator(evaluator: Evaluator, ctx: EvaluationContext) -> EvaluationOutcome:
    try:
        return evaluator(ctx)
    except Exception as exc:
        raise EvaluationError(ctx.prerequisite.prerequisite_id, str(exc)) from exc


def evaluate_prerequisite(ctx: EvaluationContext) -> EvaluationOutcome:
    """Evaluate one edge. Evaluator failures become a non-blocking "not met" outcome."""
    evaluator = EVALUATORS.get(ctx.prerequisite.prerequisite_type)
    if evaluator is None:
        return EvaluationOutcome(met=False, message="Unknown prerequisite type")
    try:
        return _run_evaluator(evaluator, ctx)
    except EvaluationError as exc:
        logger.exception(
            "Prerequisite evaluation failed: prerequisite=%s course=%s type=%s",
            exc.prerequisite_id,
            ctx.prerequisite.course_id,
            ctx.prerequisite.prerequisite_type.value,
        )
        return EvaluationOutcome(met=False, message="Evaluation failed")
