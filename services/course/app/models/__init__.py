# Import all models so Alembic can discover them via Base.metadata
from .course import Course
from .enrollment import Enrollment
from .prerequisite import CoursePrerequisite

__all__ = [
    "Course",
    "CoursePrerequisite",
    "Enrollment",
]
