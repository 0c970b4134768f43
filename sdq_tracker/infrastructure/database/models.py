"""Database ORM models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AssessmentResultORM(Base):
    """Assessment result ORM model.

    Maps the analysis_results table. Category scores are stored as one JSON
    document; derived fields are stored for querying but recomputed on read.
    """

    __tablename__ = "analysis_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    child_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    facial_image_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    sdq_scores: Mapped[dict] = mapped_column(JSON, nullable=False)
    total_difficulty: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    interpretation: Mapped[str] = mapped_column(String(50), nullable=False)
    analysis_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<AssessmentResult("
            f"id={self.id}, "
            f"child_id={self.child_id}, "
            f"type={self.analysis_type}, "
            f"total_difficulty={self.total_difficulty}"
            f")>"
        )
