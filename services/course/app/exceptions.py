"""Shared domain exception classes for the course service.

These are raised by service-layer code and caught by controllers
to map to appropriate HTTP responses.
"""


class CourseNotFoundError(Exception):
    """Raised when a course cannot be found by ID."""

    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Course not found: {identifier}")


class PrerequisiteNotFoundError(Exception):
    def __init__(self, prerequisite_id: str = ""):
        self.prerequisite_id = prerequisite_id
        super().__init__(f"Prerequisite not found: {prerequisite_id}")


class PrerequisiteValidationError(Exception):
    """Raised when prerequisite input is rejected (bad enum, self-loop, unknown course)."""

    def __init__(self, *messages: str):
        self.messages = list(messages) or ["Invalid prerequisite"]
        super().__init__("; ".join(self.messages))


class CircularDependencyError(PrerequisiteValidationError):
    """Raised when a new or re-pointed edge would close a cycle in the prerequisite graph."""

    def __init__(self, course_id: str = "", prerequisite_course_id: str = ""):
        self.course_id = course_id
        self.prerequisite_course_id = prerequisite_course_id
        super().__init__("Circular dependency detected")


class EvaluationError(Exception):
    """Raised when a per-type prerequisite evaluator fails unexpectedly.

    Never escapes ``evaluate_prerequisite``: it is logged and folded into
    a "not met" outcome so the remaining edges still get evaluated.
    """

    def __init__(self, prerequisite_id: int | None = None, detail: str = ""):
        self.prerequisite_id = prerequisite_id
        self.detail = detail
        super().__init__(f"Evaluation failed for prerequisite {prerequisite_id}: {detail}")
