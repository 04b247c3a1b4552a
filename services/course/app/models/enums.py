import enum

import sqlalchemy as sa


class CourseStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class EnrollmentStatus(str, enum.Enum):
    ENROLLED = "ENROLLED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"


class PrerequisiteType(str, enum.Enum):
    COURSE_COMPLETION = "course_completion"
    COURSE_ENROLLMENT = "course_enrollment"
    MINIMUM_SCORE = "minimum_score"
    TIME_REQUIREMENT = "time_requirement"
    SKILL_ASSESSMENT = "skill_assessment"
    CERTIFICATION = "certification"
    EXPERIENCE_LEVEL = "experience_level"
    CUSTOM_REQUIREMENT = "custom_requirement"


class EvaluationMethod(str, enum.Enum):
    AUTOMATIC = "automatic"
    MANUAL_REVIEW = "manual_review"
    ADMIN_APPROVAL = "admin_approval"
    INSTRUCTOR_APPROVAL = "instructor_approval"


PREREQUISITE_TYPE_LABELS: dict[PrerequisiteType, str] = {
    PrerequisiteType.COURSE_COMPLETION: "Course Completion",
    PrerequisiteType.COURSE_ENROLLMENT: "Course Enrollment",
    PrerequisiteType.MINIMUM_SCORE: "Minimum Score",
    PrerequisiteType.TIME_REQUIREMENT: "Time Requirement",
    PrerequisiteType.SKILL_ASSESSMENT: "Skill Assessment",
    PrerequisiteType.CERTIFICATION: "Certification",
    PrerequisiteType.EXPERIENCE_LEVEL: "Experience Level",
    PrerequisiteType.CUSTOM_REQUIREMENT: "Custom Requirement",
}

EVALUATION_METHOD_LABELS: dict[EvaluationMethod, str] = {
    EvaluationMethod.AUTOMATIC: "Automatic Evaluation",
    EvaluationMethod.MANUAL_REVIEW: "Manual Review",
    EvaluationMethod.ADMIN_APPROVAL: "Admin Approval",
    EvaluationMethod.INSTRUCTOR_APPROVAL: "Instructor Approval",
}


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# Generic sa.Enum so the same models run on PostgreSQL (native ENUM type) and SQLite.
course_status_enum = sa.Enum(CourseStatus, name="course_status")
enrollment_status_enum = sa.Enum(EnrollmentStatus, name="enrollment_status")
prerequisite_type_enum = sa.Enum(
    PrerequisiteType, name="prerequisite_type", values_callable=_enum_values
)
evaluation_method_enum = sa.Enum(
    EvaluationMethod, name="evaluation_method", values_callable=_enum_values
)
