"""SQLAlchemy models for reading plans and their days."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid
from ..engine.schemas import DaySessionRecord, DayStatus


class ReadingPlan(Base):
    """A plan to read a fixed number of pages over a date range."""

    __tablename__ = "reading_plans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    end_date: Mapped[str] = mapped_column(String(10), nullable=False)
    reading_mode: Mapped[str] = mapped_column(String(20), default="calendar")
    days_to_read: Mapped[Optional[int]] = mapped_column(Integer)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )
    updated_at: Mapped[Optional[str]] = mapped_column(String(30))

    # Relationships
    days: Mapped[list["DaySession"]] = relationship(
        "DaySession",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="DaySession.date",
    )
    audits: Mapped[list["AllocationAudit"]] = relationship(
        "AllocationAudit", back_populates="plan", cascade="all, delete-orphan"
    )

    @property
    def start(self) -> date:
        return date.fromisoformat(self.start_date)

    @property
    def end(self) -> date:
        return date.fromisoformat(self.end_date)


class DaySession(Base):
    """One calendar day of a reading plan."""

    __tablename__ = "day_sessions"
    __table_args__ = (UniqueConstraint("plan_id", "date", name="uq_day_sessions_plan_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reading_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(10), default=DayStatus.UNSET.value, index=True)
    planned_pages: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    actual_pages: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )
    updated_at: Mapped[Optional[str]] = mapped_column(String(30))

    # Relationships
    plan: Mapped["ReadingPlan"] = relationship("ReadingPlan", back_populates="days")

    def to_record(self) -> DaySessionRecord:
        """Convert the row to the engine's record type."""
        return DaySessionRecord(
            day=date.fromisoformat(self.date),
            status=DayStatus(self.status),
            planned_pages=self.planned_pages or 0,
            actual_pages=self.actual_pages,
        )


class AllocationAudit(Base):
    """Pages a day was planned for at the moment it was marked missed."""

    __tablename__ = "allocation_audits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reading_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    lost_pages: Mapped[int] = mapped_column(Integer, nullable=False)
    plan_version: Mapped[int] = mapped_column(Integer, nullable=False)
    recorded_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )

    # Relationships
    plan: Mapped["ReadingPlan"] = relationship("ReadingPlan", back_populates="audits")
