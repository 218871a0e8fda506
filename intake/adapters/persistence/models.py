"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from intake.adapters.persistence.database import Base


class AssignmentModel(Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    opportunity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Pending")
    practices: Mapped[list[str]] = mapped_column(ARRAY(String(200)), nullable=False, default=list)
    # practice → [assignee]
    practice_assignments: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    # encoded completion key → completion dict
    completions: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    owner: Mapped[str | None] = mapped_column(String(300), nullable=True)
    isr: Mapped[str | None] = mapped_column(String(300), nullable=True)
    pm: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    opportunity_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    region: Mapped[str | None] = mapped_column(String(20), nullable=True)
    eta: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    opportunity_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    submitted_by: Mapped[str | None] = mapped_column(String(300), nullable=True)
    notification_users: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    source_email_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    details: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    unassigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    pending_approval_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approval_wait_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("kind", "opportunity_id", name="uq_assignments_kind_opportunity"),
        Index("idx_assignments_status", "status"),
    )


class DirectoryUserModel(Base):
    __tablename__ = "directory_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    practices: Mapped[list[str]] = mapped_column(ARRAY(String(200)), nullable=False, default=list)


class SAMappingModel(Base):
    __tablename__ = "sa_am_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    specialist_name: Mapped[str] = mapped_column(String(200), nullable=False)
    specialist_email: Mapped[str | None] = mapped_column(String(300), nullable=True)
    owner_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    owner_email: Mapped[str] = mapped_column(String(300), nullable=False)
    region: Mapped[str | None] = mapped_column(String(20), nullable=True)
    practices: Mapped[list[str]] = mapped_column(ARRAY(String(200)), nullable=False, default=list)

    __table_args__ = (Index("idx_sa_am_mappings_owner", "owner_email"),)


class ProcessingRuleModel(Base):
    __tablename__ = "processing_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    sender_pattern: Mapped[str | None] = mapped_column(String(300), nullable=True)
    subject_pattern: Mapped[str | None] = mapped_column(String(300), nullable=True)
    body_pattern: Mapped[str | None] = mapped_column(Text, nullable=True)
    # [{"keyword": ..., "field": ..., "required": bool}] in extraction order
    keyword_mappings: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class StatusTransitionEventModel(Base):
    __tablename__ = "status_transition_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(Integer, ForeignKey("assignments.id"), nullable=False)
    practice: Mapped[str] = mapped_column(String(200), nullable=False)
    from_status: Mapped[str] = mapped_column(String(30), nullable=False)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    duration_hours: Mapped[float] = mapped_column(Float, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_status_events_assignment", "assignment_id"),)


class PracticeEtaModel(Base):
    __tablename__ = "practice_etas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    practice: Mapped[str] = mapped_column(String(200), nullable=False)
    transition: Mapped[str] = mapped_column(String(50), nullable=False)
    avg_duration_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (UniqueConstraint("practice", "transition", name="uq_practice_etas_practice_transition"),)
