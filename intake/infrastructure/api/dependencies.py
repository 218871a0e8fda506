"""FastAPI dependency injection — wires adapters into use cases.

Everything stateful (locks, in-flight notifications, the polling task) lives
on one ``Container`` built in the app lifespan and kept on ``app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intake.adapters.mail.graph_adapter import GraphMailAdapter
from intake.adapters.notifications.webex_adapter import WebexNotificationAdapter
from intake.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlDirectoryRepository,
    SqlEtaSink,
    SqlMappingRepository,
    SqlRuleRepository,
)
from intake.application.ports.assignment_repo import AssignmentRepository
from intake.application.ports.mail_port import MailPort
from intake.application.ports.notification_port import NotificationPort
from intake.application.services.assignment_locks import AssignmentLocks
from intake.application.services.intake_service import IntakeService
from intake.application.services.notification_dispatcher import NotificationDispatcher
from intake.application.use_cases.auto_assign import AutoAssignUseCase
from intake.application.use_cases.process_email import ProcessEmailUseCase
from intake.application.use_cases.track_eta import TrackEtaUseCase
from intake.application.use_cases.update_completion import UpdateCompletionUseCase
from intake.config import Settings


@dataclass
class Container:
    assignments: AssignmentRepository
    dispatcher: NotificationDispatcher
    eta: TrackEtaUseCase
    auto_assign: AutoAssignUseCase
    completions: UpdateCompletionUseCase
    process_email: ProcessEmailUseCase
    intake: IntakeService


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    mail: MailPort | None = None,
    notifier: NotificationPort | None = None,
) -> Container:
    timeout = settings.collaborator_timeout_seconds

    assignments = SqlAssignmentRepository(session_factory)
    directory = SqlDirectoryRepository(session_factory)
    locks = AssignmentLocks()
    dispatcher = NotificationDispatcher(notifier or WebexNotificationAdapter(), timeout)
    eta = TrackEtaUseCase(SqlEtaSink(session_factory), timeout)

    auto_assign = AutoAssignUseCase(
        assignment_repo=assignments,
        mapping_repo=SqlMappingRepository(session_factory),
        directory=directory,
        dispatcher=dispatcher,
        eta=eta,
        locks=locks,
        timeout=timeout,
    )
    completions = UpdateCompletionUseCase(
        assignment_repo=assignments,
        dispatcher=dispatcher,
        eta=eta,
        locks=locks,
        timeout=timeout,
    )
    process_email = ProcessEmailUseCase(
        rule_repo=SqlRuleRepository(session_factory),
        assignment_repo=assignments,
        directory=directory,
        auto_assign=auto_assign,
        completions=completions,
        eta=eta,
        dispatcher=dispatcher,
        practices=settings.practice_list,
        practice_threshold=settings.practice_match_threshold,
        technology_threshold=settings.technology_match_threshold,
        opportunity_url_template=settings.opportunity_url_template,
        timeout=timeout,
    )
    intake = IntakeService(
        mail=mail or GraphMailAdapter(),
        process_email=process_email,
        poll_interval_seconds=settings.poll_interval_seconds,
        lookback_hours=settings.mail_lookback_hours,
        timeout=timeout,
    )
    return Container(
        assignments=assignments,
        dispatcher=dispatcher,
        eta=eta,
        auto_assign=auto_assign,
        completions=completions,
        process_email=process_email,
        intake=intake,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_intake_service(request: Request) -> IntakeService:
    return request.app.state.intake
