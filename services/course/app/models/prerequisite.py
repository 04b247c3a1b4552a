import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import (
    EvaluationMethod,
    PrerequisiteType,
    evaluation_method_enum,
    prerequisite_type_enum,
)


class CoursePrerequisite(Base):
    """Directed edge: ``course_id`` requires ``prerequisite_course_id``."""

    __tablename__ = "course_prerequisites"

    # Integer identity doubles as insertion order for tie-breaking on sort_order
    prerequisite_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Soft reference: deleting the prerequisite course leaves the edge dangling
    # so chain validation can report it.
    prerequisite_course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    prerequisite_type: Mapped[PrerequisiteType] = mapped_column(
        prerequisite_type_enum, nullable=False
    )
    # Score %, day count, ... depending on prerequisite_type
    requirement_value: Mapped[float | None] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=True
    )
    evaluation_method: Mapped[EvaluationMethod] = mapped_column(
        evaluation_method_enum, nullable=False, default=EvaluationMethod.AUTOMATIC
    )
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    course = relationship("Course", back_populates="prerequisites", lazy="noload")

    __table_args__ = (
        CheckConstraint(
            "course_id <> prerequisite_course_id", name="ck_course_prerequisites_no_self_loop"
        ),
        Index("ix_course_prerequisites_course_id", "course_id"),
        Index("ix_course_prerequisites_prerequisite_course_id", "prerequisite_course_id"),
    )
