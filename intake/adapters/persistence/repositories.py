"""SQLAlchemy repository implementations.

Repositories are held by the long-lived intake service, so each one takes the
session factory and opens one short transaction per call.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intake.adapters.persistence.models import (
    AssignmentModel,
    DirectoryUserModel,
    PracticeEtaModel,
    ProcessingRuleModel,
    SAMappingModel,
    StatusTransitionEventModel,
)
from intake.application.ports.assignment_repo import AssignmentRepository, ConcurrentUpdateError
from intake.application.ports.directory_port import DirectoryPort
from intake.application.ports.eta_sink import EtaSink
from intake.application.ports.mapping_repo import MappingRepository
from intake.application.ports.rule_repo import RuleRepository
from intake.domain.entities.assignment import Assignment
from intake.domain.entities.directory_user import DirectoryUser
from intake.domain.entities.eta import PracticeEta, StatusTransitionEvent
from intake.domain.entities.processing_rule import KeywordMapping, ProcessingRule
from intake.domain.entities.sa_mapping import SAToAMMapping
from intake.domain.value_objects.completion import Completion, CompletionKey
from intake.domain.value_objects.enums import (
    AssignmentKind,
    AssignmentStatus,
    RuleAction,
    TransitionKind,
)
from intake.domain.value_objects.recipient import Recipient

SessionFactory = async_sessionmaker[AsyncSession]

# ─── Mappers ─────────────────────────────────────────────────────────


def _assignment_to_domain(m: AssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        kind=AssignmentKind(m.kind),
        opportunity_id=m.opportunity_id,
        status=AssignmentStatus(m.status),
        practices=list(m.practices or []),
        practice_assignments={p: list(names) for p, names in (m.practice_assignments or {}).items()},
        completions={
            CompletionKey.decode(key): Completion.from_dict(value)
            for key, value in (m.completions or {}).items()
        },
        owner=m.owner,
        isr=m.isr,
        pm=m.pm,
        customer_name=m.customer_name,
        opportunity_name=m.opportunity_name,
        region=m.region,
        eta=m.eta,
        notes=m.notes,
        opportunity_url=m.opportunity_url,
        submitted_by=m.submitted_by,
        notification_users=[
            Recipient(name=u.get("name", ""), email=u.get("email", "")) for u in (m.notification_users or [])
        ],
        source_email_id=m.source_email_id,
        details=dict(m.details or {}),
        created_at=m.created_at,
        unassigned_at=m.unassigned_at,
        assigned_at=m.assigned_at,
        pending_approval_at=m.pending_approval_at,
        completed_at=m.completed_at,
        approval_wait_hours=m.approval_wait_hours or 0.0,
        version=m.version,
    )


def _assignment_columns(a: Assignment) -> dict:
    """Column values for insert/update (id and version are handled by the caller)."""
    columns = {
        "kind": a.kind.value,
        "opportunity_id": a.opportunity_id,
        "status": a.status.value,
        "practices": list(a.practices),
        "practice_assignments": {p: list(names) for p, names in a.practice_assignments.items()},
        "completions": {key.encode(): c.to_dict() for key, c in a.completions.items()},
        "owner": a.owner,
        "isr": a.isr,
        "pm": a.pm,
        "customer_name": a.customer_name,
        "opportunity_name": a.opportunity_name,
        "region": a.region,
        "eta": a.eta,
        "notes": a.notes,
        "opportunity_url": a.opportunity_url,
        "submitted_by": a.submitted_by,
        "notification_users": [{"name": r.name, "email": r.email} for r in a.notification_users],
        "source_email_id": a.source_email_id,
        "details": dict(a.details),
        "unassigned_at": a.unassigned_at,
        "assigned_at": a.assigned_at,
        "pending_approval_at": a.pending_approval_at,
        "completed_at": a.completed_at,
        "approval_wait_hours": a.approval_wait_hours,
    }
    if a.created_at is not None:
        columns["created_at"] = a.created_at
    return columns


def _user_to_domain(m: DirectoryUserModel) -> DirectoryUser:
    return DirectoryUser(name=m.name, email=m.email, role=m.role, practices=list(m.practices or []))


def _mapping_to_domain(m: SAMappingModel) -> SAToAMMapping:
    return SAToAMMapping(
        id=m.id,
        specialist_name=m.specialist_name,
        specialist_email=m.specialist_email,
        owner_name=m.owner_name,
        owner_email=m.owner_email,
        region=m.region,
        practices=list(m.practices or []),
    )


def _rule_to_domain(m: ProcessingRuleModel) -> ProcessingRule:
    return ProcessingRule(
        id=m.id,
        name=m.name,
        action=RuleAction(m.action),
        sender_pattern=m.sender_pattern,
        subject_pattern=m.subject_pattern,
        body_pattern=m.body_pattern,
        keyword_mappings=[
            KeywordMapping(
                keyword=km.get("keyword", ""),
                field=km.get("field", ""),
                required=bool(km.get("required", True)),
            )
            for km in (m.keyword_mappings or [])
        ],
        enabled=m.enabled,
    )


def _eta_to_domain(m: PracticeEtaModel) -> PracticeEta:
    return PracticeEta(
        practice=m.practice,
        transition=TransitionKind(m.transition),
        avg_duration_hours=m.avg_duration_hours,
        sample_count=m.sample_count,
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlAssignmentRepository(AssignmentRepository):
    def __init__(self, session_factory: SessionFactory):
        self._sessions = session_factory

    async def create(self, assignment: Assignment) -> Assignment:
        if assignment.created_at is None:
            assignment = dataclasses.replace(assignment, created_at=datetime.now(timezone.utc))
        async with self._sessions.begin() as s:
            m = AssignmentModel(**_assignment_columns(assignment), version=0)
            s.add(m)
            await s.flush()
            return dataclasses.replace(assignment, id=m.id, version=0)

    async def get_by_id(self, assignment_id: int) -> Assignment | None:
        async with self._sessions() as s:
            m = await s.get(AssignmentModel, assignment_id)
            return _assignment_to_domain(m) if m else None

    async def get_by_opportunity(self, kind: AssignmentKind, opportunity_id: str) -> Assignment | None:
        async with self._sessions() as s:
            result = await s.execute(
                select(AssignmentModel).where(
                    AssignmentModel.kind == kind.value,
                    AssignmentModel.opportunity_id == opportunity_id,
                )
            )
            m = result.scalar_one_or_none()
            return _assignment_to_domain(m) if m else None

    async def update(self, assignment: Assignment) -> Assignment:
        async with self._sessions.begin() as s:
            result = await s.execute(
                update(AssignmentModel)
                .where(
                    AssignmentModel.id == assignment.id,
                    AssignmentModel.version == assignment.version,
                )
                .values(**_assignment_columns(assignment), version=assignment.version + 1)
            )
            if result.rowcount != 1:
                raise ConcurrentUpdateError(
                    f"Assignment {assignment.id} changed since version {assignment.version}"
                )
        return dataclasses.replace(assignment, version=assignment.version + 1)

    async def get_all(self) -> list[Assignment]:
        async with self._sessions() as s:
            result = await s.execute(select(AssignmentModel).order_by(AssignmentModel.id))
            return [_assignment_to_domain(m) for m in result.scalars()]


class SqlDirectoryRepository(DirectoryPort):
    def __init__(self, session_factory: SessionFactory):
        self._sessions = session_factory

    async def get_all_users(self) -> list[DirectoryUser]:
        async with self._sessions() as s:
            result = await s.execute(select(DirectoryUserModel).order_by(DirectoryUserModel.id))
            return [_user_to_domain(m) for m in result.scalars()]

    async def get_user(self, email: str) -> DirectoryUser | None:
        async with self._sessions() as s:
            result = await s.execute(
                select(DirectoryUserModel).where(func.lower(DirectoryUserModel.email) == email.strip().lower())
            )
            m = result.scalar_one_or_none()
            return _user_to_domain(m) if m else None


class SqlMappingRepository(MappingRepository):
    def __init__(self, session_factory: SessionFactory):
        self._sessions = session_factory

    async def get_all(self) -> list[SAToAMMapping]:
        async with self._sessions() as s:
            result = await s.execute(select(SAMappingModel).order_by(SAMappingModel.id))
            return [_mapping_to_domain(m) for m in result.scalars()]


class SqlRuleRepository(RuleRepository):
    def __init__(self, session_factory: SessionFactory):
        self._sessions = session_factory

    async def get_rules(self) -> list[ProcessingRule]:
        async with self._sessions() as s:
            result = await s.execute(
                select(ProcessingRuleModel).order_by(ProcessingRuleModel.position, ProcessingRuleModel.id)
            )
            return [_rule_to_domain(m) for m in result.scalars()]


class SqlEtaSink(EtaSink):
    def __init__(self, session_factory: SessionFactory):
        self._sessions = session_factory

    async def record(self, event: StatusTransitionEvent) -> None:
        async with self._sessions.begin() as s:
            s.add(
                StatusTransitionEventModel(
                    assignment_id=event.assignment_id,
                    practice=event.practice,
                    from_status=event.from_status.value,
                    to_status=event.to_status.value,
                    kind=event.kind.value,
                    duration_hours=event.duration_hours,
                    occurred_at=event.occurred_at,
                )
            )

            result = await s.execute(
                select(PracticeEtaModel)
                .where(
                    PracticeEtaModel.practice == event.practice,
                    PracticeEtaModel.transition == event.kind.value,
                )
                .with_for_update()
            )
            m = result.scalar_one_or_none()
            if m is None:
                m = PracticeEtaModel(
                    practice=event.practice,
                    transition=event.kind.value,
                    avg_duration_hours=0.0,
                    sample_count=0,
                )
                s.add(m)

            aggregate = PracticeEta(
                practice=m.practice,
                transition=event.kind,
                avg_duration_hours=m.avg_duration_hours or 0.0,
                sample_count=m.sample_count or 0,
            )
            aggregate.absorb(event.duration_hours)
            m.avg_duration_hours = aggregate.avg_duration_hours
            m.sample_count = aggregate.sample_count

    async def get_estimates(self, practice: str | None = None) -> list[PracticeEta]:
        async with self._sessions() as s:
            query = select(PracticeEtaModel).order_by(PracticeEtaModel.practice, PracticeEtaModel.transition)
            if practice:
                query = query.where(func.lower(PracticeEtaModel.practice) == practice.strip().lower())
            result = await s.execute(query)
            return [_eta_to_domain(m) for m in result.scalars()]
