"""In-memory port fakes and wired use cases for application tests."""

from __future__ import annotations

import copy
import dataclasses

import pytest

from intake.application.ports.assignment_repo import AssignmentRepository, ConcurrentUpdateError
from intake.application.ports.directory_port import DirectoryPort
from intake.application.ports.eta_sink import EtaSink
from intake.application.ports.mapping_repo import MappingRepository
from intake.application.ports.notification_port import NotificationPort
from intake.application.ports.rule_repo import RuleRepository
from intake.application.services.assignment_locks import AssignmentLocks
from intake.application.services.notification_dispatcher import NotificationDispatcher
from intake.application.use_cases.auto_assign import AutoAssignUseCase
from intake.application.use_cases.process_email import ProcessEmailUseCase
from intake.application.use_cases.track_eta import TrackEtaUseCase
from intake.application.use_cases.update_completion import UpdateCompletionUseCase
from intake.domain.entities.assignment import Assignment
from intake.domain.entities.eta import PracticeEta
from intake.domain.entities.processing_rule import KeywordMapping, ProcessingRule
from intake.domain.entities.sa_mapping import SAToAMMapping
from intake.domain.value_objects.enums import RuleAction

PRACTICES = ["Security", "Data Center", "Collaboration"]
URL_TEMPLATE = "https://crm.example.com/opp/{id}"

# ─── In-memory fakes ────────────────────────────────────────────────


class FakeAssignmentRepo(AssignmentRepository):
    """Stores copies, enforces the version check and can simulate rival writers."""

    def __init__(self):
        self.rows: dict[int, Assignment] = {}
        self.conflicts = 0
        self.updates = 0
        self.fail = False
        self.fail_update = False

    def seed(self, assignment: Assignment) -> Assignment:
        stored = dataclasses.replace(copy.deepcopy(assignment), id=len(self.rows) + 1)
        self.rows[stored.id] = stored
        return copy.deepcopy(stored)

    async def create(self, assignment):
        if self.fail:
            raise RuntimeError("database unavailable")
        return self.seed(dataclasses.replace(assignment, version=0))

    async def get_by_id(self, assignment_id):
        stored = self.rows.get(assignment_id)
        return copy.deepcopy(stored) if stored else None

    async def get_by_opportunity(self, kind, opportunity_id):
        for stored in self.rows.values():
            if stored.kind == kind and stored.opportunity_id == opportunity_id:
                return copy.deepcopy(stored)
        return None

    async def update(self, assignment):
        if self.fail_update:
            raise RuntimeError("database unavailable")
        stored = self.rows[assignment.id]
        if self.conflicts:
            self.conflicts -= 1
            stored.version += 1
            raise ConcurrentUpdateError(f"Assignment {assignment.id} changed")
        if stored.version != assignment.version:
            raise ConcurrentUpdateError(f"Assignment {assignment.id} changed")
        saved = dataclasses.replace(copy.deepcopy(assignment), version=assignment.version + 1)
        self.rows[saved.id] = saved
        self.updates += 1
        return copy.deepcopy(saved)

    async def get_all(self):
        return [copy.deepcopy(a) for a in self.rows.values()]


class FakeDirectory(DirectoryPort):
    def __init__(self, users):
        self.users = list(users)
        self.fail = False

    async def get_all_users(self):
        if self.fail:
            raise RuntimeError("directory unavailable")
        return list(self.users)

    async def get_user(self, email):
        return next((u for u in self.users if u.email == email.lower()), None)


class FakeMappingRepo(MappingRepository):
    def __init__(self, rows):
        self.rows = list(rows)
        self.fail = False

    async def get_all(self):
        if self.fail:
            raise RuntimeError("mapping store unavailable")
        return list(self.rows)


class FakeRuleRepo(RuleRepository):
    def __init__(self, rules):
        self.rules = list(rules)

    async def get_rules(self):
        return list(self.rules)


class FakeNotifier(NotificationPort):
    def __init__(self):
        self.status_changes: list[tuple] = []
        self.templates: list[tuple] = []

    async def send_status_changes(self, assignment, changes, channel=None):
        self.status_changes.append((assignment, changes))

    async def send_template(self, assignment, template):
        self.templates.append((assignment, template))


class FakeEtaSink(EtaSink):
    def __init__(self):
        self.events = []
        self.fail = False

    async def record(self, event):
        if self.fail:
            raise RuntimeError("eta store unavailable")
        self.events.append(event)

    async def get_estimates(self, practice=None):
        if self.fail:
            raise RuntimeError("eta store unavailable")
        estimates: dict[tuple, PracticeEta] = {}
        for event in self.events:
            if practice and event.practice.lower() != practice.lower():
                continue
            key = (event.practice, event.kind)
            eta = estimates.setdefault(key, PracticeEta(practice=event.practice, transition=event.kind))
            eta.absorb(event.duration_hours)
        return list(estimates.values())


def _rules() -> list[ProcessingRule]:
    return [
        ProcessingRule(
            id=1, name="SA approval requested", action=RuleAction.SA_APPROVAL_REQUEST,
            subject_pattern="Approval Requested",
            keyword_mappings=[
                KeywordMapping("Opportunity ID:", "opportunityId"),
                KeywordMapping("Practice:", "practice", required=False),
                KeywordMapping("SA Assigned:", "saAssigned", required=False),
                KeywordMapping("Revision:", "revisionNumber", required=False),
            ],
        ),
        ProcessingRule(
            id=2, name="SA approved", action=RuleAction.SA_APPROVED,
            subject_pattern="Approved",
            keyword_mappings=[
                KeywordMapping("Opportunity ID:", "opportunityId"),
                KeywordMapping("Practice:", "practice", required=False),
                KeywordMapping("Revision:", "revisionNumber", required=False),
                KeywordMapping("Approved By:", "taskTriggeredBy", required=False),
            ],
        ),
        ProcessingRule(
            id=3, name="SA request", action=RuleAction.SA_ASSIGNMENT,
            subject_pattern="SA Request",
            keyword_mappings=[
                KeywordMapping("Opportunity ID:", "opportunityId"),
                KeywordMapping("Region:", "region"),
                KeywordMapping("Customer Name:", "customerName", required=False),
                KeywordMapping("Account Manager:", "am", required=False),
                KeywordMapping("Practice:", "practice", required=False),
                KeywordMapping("Technologies", "technologies", required=False),
                KeywordMapping("Documentation:", "documentation", required=False),
                KeywordMapping("Submitted By:", "submittedBy", required=False),
            ],
        ),
        ProcessingRule(
            id=4, name="Resource request", action=RuleAction.RESOURCE_ASSIGNMENT,
            subject_pattern="Resource Request",
            keyword_mappings=[
                KeywordMapping("Project Number:", "projectNumber"),
                KeywordMapping("Practice:", "practice", required=False),
                KeywordMapping("To:", "notificationUsers", required=False),
            ],
        ),
    ]


# ─── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def repo():
    return FakeAssignmentRepo()


@pytest.fixture
def directory(directory_users):
    return FakeDirectory(directory_users)


@pytest.fixture
def mappings():
    return FakeMappingRepo([
        SAToAMMapping(id=1, specialist_name="Jane Doe", owner_email="alice@example.com",
                      region="TX-DAL", practices=["Security"]),
        SAToAMMapping(id=2, specialist_name="Bob Smith", owner_email="alice@example.com",
                      region="TX-HOU", practices=["Data Center"]),
    ])


@pytest.fixture
def rules():
    return FakeRuleRepo(_rules())


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def sink():
    return FakeEtaSink()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier, timeout=1.0)


@pytest.fixture
def locks():
    return AssignmentLocks()


@pytest.fixture
def eta(sink):
    return TrackEtaUseCase(sink, timeout=1.0)


@pytest.fixture
def auto_assign(repo, mappings, directory, dispatcher, eta, locks):
    return AutoAssignUseCase(repo, mappings, directory, dispatcher, eta, locks, timeout=1.0)


@pytest.fixture
def completions(repo, dispatcher, eta, locks):
    return UpdateCompletionUseCase(repo, dispatcher, eta, locks, timeout=1.0)


@pytest.fixture
def process_email(rules, repo, directory, auto_assign, completions, eta, dispatcher):
    return ProcessEmailUseCase(
        rule_repo=rules,
        assignment_repo=repo,
        directory=directory,
        auto_assign=auto_assign,
        completions=completions,
        eta=eta,
        dispatcher=dispatcher,
        practices=PRACTICES,
        opportunity_url_template=URL_TEMPLATE,
        timeout=1.0,
    )
