"""
Concept store tables.

SQLAlchemy models for per-learner review state:
- Module status (only installed modules are review-eligible)
- Concept records (status, strength, last review, explicit flag)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class ModuleRow(Base):
    """A learning module and its download/install status."""

    __tablename__ = "modules"

    module_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(32), default="new", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    concepts: Mapped[list[ConceptRow]] = relationship(back_populates="module")

    def __repr__(self) -> str:
        return f"<ModuleRow {self.module_id} status={self.status}>"


class ConceptRow(Base):
    """
    Review state of one concept.

    strength is only meaningful for understood/needs_review concepts;
    last_reviewed only moves forward.
    """

    __tablename__ = "concepts"

    concept_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    module_id: Mapped[str] = mapped_column(
        ForeignKey("modules.module_id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(32), default="new", nullable=False)
    strength: Mapped[float | None] = mapped_column(Float)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    explicit_review_flag: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    module: Mapped[ModuleRow] = relationship(back_populates="concepts")

    __table_args__ = (
        Index("idx_concepts_module_status", "module_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<ConceptRow {self.concept_id} status={self.status} strength={self.strength}>"
