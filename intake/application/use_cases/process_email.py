"""ProcessEmailUseCase — rule → extraction → classification → action for one email."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from intake.application.collaborators import DEFAULT_TIMEOUT_SECONDS, call
from intake.application.ports.assignment_repo import AssignmentRepository
from intake.application.ports.directory_port import DirectoryPort
from intake.application.ports.rule_repo import RuleRepository
from intake.application.services.notification_dispatcher import NotificationDispatcher
from intake.application.use_cases.auto_assign import AutoAssignUseCase
from intake.application.use_cases.track_eta import TrackEtaUseCase
from intake.application.use_cases.update_completion import UpdateCompletionUseCase
from intake.domain.entities.assignment import Assignment
from intake.domain.entities.directory_user import DirectoryUser
from intake.domain.entities.inbound_email import InboundEmail
from intake.domain.entities.processing_rule import ProcessingRule
from intake.domain.policies.field_extraction import (
    RECIPIENT_KEYWORD,
    ExtractedFields,
    clean_documentation_link,
    extract_fields,
    parse_technology_table,
    split_name_email,
)
from intake.domain.policies.practice_matching import (
    DEFAULT_THRESHOLD,
    TABLE_THRESHOLD,
    canonical_practices,
    match_practice,
)
from intake.domain.policies.rule_matching import select_rule
from intake.domain.policies.status_machine import StatusChange, transition
from intake.domain.value_objects.enums import (
    AssignmentKind,
    AssignmentStatus,
    ErrorKind,
    NotificationTemplate,
    RuleAction,
)
from intake.domain.value_objects.practice import (
    PENDING_PRACTICE,
    is_unclassified,
    parse_practices,
)
from intake.domain.value_objects.result import Result

logger = logging.getLogger(__name__)

# Extracted field names the use case understands; anything else lands in details
F_OPPORTUNITY_ID = "opportunityId"
F_PROJECT_NUMBER = "projectNumber"
F_OPPORTUNITY_NAME = "opportunityName"
F_CUSTOMER_NAME = "customerName"
F_AM = "am"
F_ISR = "isr"
F_PM = "pm"
F_REGION = "region"
F_ETA = "eta"
F_NOTES = "notes"
F_PRACTICE = "practice"
F_TECHNOLOGIES = "technologies"
F_SUBMITTED_BY = "submittedBy"
F_NOTIFICATION_USERS = "notificationUsers"
F_REVISION = "revisionNumber"
F_SA_ASSIGNED = "saAssigned"
F_APPROVED_BY = "taskTriggeredBy"
F_DOCUMENTATION = "documentation"

KNOWN_FIELDS = frozenset({
    F_OPPORTUNITY_ID, F_PROJECT_NUMBER, F_OPPORTUNITY_NAME, F_CUSTOMER_NAME, F_AM, F_ISR,
    F_PM, F_REGION, F_ETA, F_NOTES, F_PRACTICE, F_TECHNOLOGIES, F_SUBMITTED_BY,
    F_NOTIFICATION_USERS, F_REVISION, F_SA_ASSIGNED, F_APPROVED_BY,
})


class ProcessEmailUseCase:
    """Turns one inbound email into an assignment create or an approval update."""

    def __init__(
        self,
        rule_repo: RuleRepository,
        assignment_repo: AssignmentRepository,
        directory: DirectoryPort,
        auto_assign: AutoAssignUseCase,
        completions: UpdateCompletionUseCase,
        eta: TrackEtaUseCase,
        dispatcher: NotificationDispatcher,
        practices: list[str] | None = None,
        practice_threshold: float = DEFAULT_THRESHOLD,
        technology_threshold: float = TABLE_THRESHOLD,
        opportunity_url_template: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._rules = rule_repo
        self._assignments = assignment_repo
        self._directory = directory
        self._auto_assign = auto_assign
        self._completions = completions
        self._eta = eta
        self._dispatcher = dispatcher
        self._practices = list(practices or [])
        self._practice_threshold = practice_threshold
        self._technology_threshold = technology_threshold
        self._url_template = opportunity_url_template
        self._timeout = timeout

    async def load_rules(self) -> Result:
        return await call("load processing rules", self._rules.get_rules(), self._timeout)

    async def execute(self, email: InboundEmail, rules: list[ProcessingRule] | None = None) -> Result:
        """Process a single email.

        Pipeline:
        1. Select the first matching rule (none → skip, email stays unread)
        2. Extract the rule's keyword fields
        3. Dispatch on the rule action (create / request approval / approve)
        """
        if rules is None:
            loaded = await self.load_rules()
            if not loaded.ok:
                return loaded
            rules = loaded.value

        rule = select_rule(rules, email)
        if rule is None:
            logger.debug("Email %s: no processing rule matched", email.id)
            return Result.success(kind=ErrorKind.RULE_NO_MATCH)

        users_result = await call("load directory users", self._directory.get_all_users(), self._timeout)
        if not users_result.ok:
            return users_result
        users: list[DirectoryUser] = users_result.value

        fields = extract_fields(email.subject, email.body, rule.keyword_mappings, users)
        missing = [
            m.field
            for m in rule.keyword_mappings
            if m.required and m.keyword.strip().lower() != RECIPIENT_KEYWORD and not fields.found(m.field)
        ]
        if missing:
            kind = ErrorKind.VALIDATION_REJECT if fields.rejected.intersection(missing) else ErrorKind.EXTRACTION_MISS
            logger.warning("Email %s (rule %s): missing %s", email.id, rule.name, ", ".join(missing))
            return Result.failure(f"Missing required fields: {', '.join(missing)}", kind=kind)

        logger.info("Email %s matched rule %r (%s)", email.id, rule.name, rule.action.value)

        if rule.action == RuleAction.RESOURCE_ASSIGNMENT:
            return await self._create_resource_assignment(email, fields, users)
        if rule.action == RuleAction.SA_ASSIGNMENT:
            return await self._create_sa_assignment(email, fields, users)
        if rule.action == RuleAction.SA_APPROVAL_REQUEST:
            return await self._request_approval(email, fields)
        return await self._approve(email, fields)

    # ─── Create flows ────────────────────────────────────────────────

    async def _create_resource_assignment(
        self, email: InboundEmail, fields: ExtractedFields, users: list[DirectoryUser]
    ) -> Result:
        opportunity_id = fields.get(F_PROJECT_NUMBER) or fields.get(F_OPPORTUNITY_ID)
        if not opportunity_id:
            return Result.failure("No project number extracted", kind=ErrorKind.EXTRACTION_MISS)

        duplicate = await self._find_duplicate(AssignmentKind.RESOURCE, opportunity_id)
        if duplicate is not None:
            return duplicate

        practices = self._classify_free_text(fields.get(F_PRACTICE), users)
        assignment, changes = self._build(AssignmentKind.RESOURCE, opportunity_id, email, fields, practices)
        return await self._persist_new(assignment, changes, NotificationTemplate.ASSIGNMENT_CREATED)

    async def _create_sa_assignment(
        self, email: InboundEmail, fields: ExtractedFields, users: list[DirectoryUser]
    ) -> Result:
        opportunity_id = fields.get(F_OPPORTUNITY_ID)
        if not opportunity_id:
            return Result.failure("No opportunity id extracted", kind=ErrorKind.EXTRACTION_MISS)

        duplicate = await self._find_duplicate(AssignmentKind.SA, opportunity_id, retry_auto_assign=True)
        if duplicate is not None:
            return duplicate

        practices, placements = self._classify_technologies(fields.get(F_TECHNOLOGIES), users)
        if is_unclassified(practices):
            practices = self._classify_free_text(fields.get(F_PRACTICE), users)

        assignment, changes = self._build(
            AssignmentKind.SA, opportunity_id, email, fields, practices, placements
        )
        created = await self._persist_new(assignment, changes, NotificationTemplate.SA_ASSIGNMENT_CREATED)
        if not created.ok:
            return created

        auto = await self._run_auto_assign(created.value)
        if not auto.ok:
            return auto
        return created

    async def _find_duplicate(
        self, kind: AssignmentKind, opportunity_id: str, retry_auto_assign: bool = False
    ) -> Result | None:
        """Failure result, duplicate skip result, or None when the id is new.

        With ``retry_auto_assign``, a stored assignment still Unassigned gets
        another auto-assignment attempt before the skip is reported.
        """
        found = await call(
            f"look up {kind.value} assignment {opportunity_id}",
            self._assignments.get_by_opportunity(kind, opportunity_id),
            self._timeout,
        )
        if not found.ok:
            return found
        existing: Assignment | None = found.value
        if existing is None:
            return None

        logger.info(
            "Opportunity %s already has %s assignment %s; skipping",
            opportunity_id, kind.value, existing.id,
        )
        if retry_auto_assign and existing.status == AssignmentStatus.UNASSIGNED:
            auto = await self._run_auto_assign(existing.id)
            if not auto.ok:
                return auto
        return Result.success(existing.id, kind=ErrorKind.DUPLICATE_OPPORTUNITY)

    async def _run_auto_assign(self, assignment_id: int) -> Result:
        auto = await self._auto_assign.execute(assignment_id)
        if not auto.ok:
            logger.warning("Assignment %s: auto-assignment failed: %s", assignment_id, auto.error)
            return Result.failure(
                f"Assignment {assignment_id} auto-assignment failed: {auto.error}", kind=auto.kind
            )
        return auto

    async def _persist_new(
        self, assignment: Assignment, changes: list[StatusChange], template: NotificationTemplate
    ) -> Result:
        saved = await call(
            f"create assignment for {assignment.opportunity_id}",
            self._assignments.create(assignment),
            self._timeout,
        )
        if not saved.ok:
            return saved

        created: Assignment = saved.value
        logger.info(
            "Created %s assignment %s for %s: practices=%s status=%s",
            created.kind.value, created.id, created.opportunity_id,
            created.practices, created.status.value,
        )
        await self._eta.execute(created, changes)
        self._dispatcher.dispatch_template(created, template)
        self._dispatcher.dispatch_changes(created, changes)
        return Result.success(created.id)

    def _build(
        self,
        kind: AssignmentKind,
        opportunity_id: str,
        email: InboundEmail,
        fields: ExtractedFields,
        practices: list[str],
        placements: dict[str, list[str]] | None = None,
    ) -> tuple[Assignment, list[StatusChange]]:
        now = datetime.now(timezone.utc)
        recipients = fields.recipients(F_NOTIFICATION_USERS)

        owner = fields.get(F_AM) or (recipients[0].formatted() if recipients else None)
        isr = fields.get(F_ISR) or (recipients[1].formatted() if len(recipients) > 1 else None)
        pm = fields.get(F_PM)
        if pm:
            pm = split_name_email(pm)[0] or pm

        details = {k: v for k, v in fields.as_strings().items() if k not in KNOWN_FIELDS}
        if F_DOCUMENTATION in details:
            details[F_DOCUMENTATION] = clean_documentation_link(details[F_DOCUMENTATION])

        assignment = Assignment(
            id=None,
            kind=kind,
            opportunity_id=opportunity_id,
            practices=practices or [PENDING_PRACTICE],
            practice_assignments=placements or {},
            owner=owner,
            isr=isr,
            pm=pm,
            customer_name=fields.get(F_CUSTOMER_NAME),
            opportunity_name=fields.get(F_OPPORTUNITY_NAME),
            region=fields.get(F_REGION),
            eta=fields.get(F_ETA),
            notes=fields.get(F_NOTES),
            opportunity_url=self._opportunity_url(opportunity_id),
            submitted_by=fields.get(F_SUBMITTED_BY),
            notification_users=recipients,
            source_email_id=email.id,
            details=details,
            created_at=now,
        )

        changes: list[StatusChange] = []
        if not is_unclassified(assignment.practices):
            changes.append(transition(assignment, AssignmentStatus.UNASSIGNED, now))
        return assignment, changes

    def _opportunity_url(self, opportunity_id: str) -> str | None:
        if not self._url_template:
            return None
        return self._url_template.format(id=opportunity_id)

    # ─── Classification ──────────────────────────────────────────────

    def _canonical(self, users: list[DirectoryUser]) -> list[str]:
        return canonical_practices(self._practices, [u.practices for u in users])

    def _classify_free_text(self, text: str | None, users: list[DirectoryUser]) -> list[str]:
        canonical = self._canonical(users)
        practices: list[str] = []
        for candidate in parse_practices(text):
            match = match_practice(candidate, canonical, self._practice_threshold)
            if match is None:
                logger.info("Practice %r did not match any canonical practice", candidate)
            elif match.practice not in practices:
                practices.append(match.practice)
        return practices or [PENDING_PRACTICE]

    def _classify_technologies(
        self, block: str | None, users: list[DirectoryUser]
    ) -> tuple[list[str], dict[str, list[str]]]:
        """Practices from the requested rows of the technology table, plus named specialists."""
        canonical = self._canonical(users)
        practices: list[str] = []
        placements: dict[str, list[str]] = {}

        for row in parse_technology_table(block):
            if not row.requested:
                continue
            match = match_practice(row.technology, canonical, self._technology_threshold)
            if match is None:
                logger.info("Technology %r did not match any canonical practice", row.technology)
                continue
            if match.practice not in practices:
                practices.append(match.practice)
            if row.specialist:
                bucket = placements.setdefault(match.practice, [])
                if row.specialist not in bucket:
                    bucket.append(row.specialist)

        return practices or [PENDING_PRACTICE], placements

    # ─── Approval flows ──────────────────────────────────────────────

    async def _load_sa_assignment(self, fields: ExtractedFields) -> Result:
        opportunity_id = fields.get(F_OPPORTUNITY_ID)
        if not opportunity_id:
            return Result.failure("No opportunity id extracted", kind=ErrorKind.EXTRACTION_MISS)

        found = await call(
            f"look up SA assignment {opportunity_id}",
            self._assignments.get_by_opportunity(AssignmentKind.SA, opportunity_id),
            self._timeout,
        )
        if found.ok and found.value is None:
            return Result.failure(f"No SA assignment for opportunity {opportunity_id}", kind=ErrorKind.NOT_FOUND)
        return found

    def _resolve_practice(self, assignment: Assignment, candidate: str | None) -> str | None:
        if not candidate:
            return None
        declared = assignment.declared_practice(candidate)
        if declared:
            return declared
        match = match_practice(candidate, assignment.practices, self._practice_threshold)
        return match.practice if match else None

    async def _request_approval(self, email: InboundEmail, fields: ExtractedFields) -> Result:
        found = await self._load_sa_assignment(fields)
        if not found.ok:
            return found
        assignment: Assignment = found.value

        practice = self._resolve_practice(assignment, fields.get(F_PRACTICE))
        if practice:
            practices = [practice]
        else:
            # Fall back to every practice the named specialist is placed under
            specialist = split_name_email(fields.get(F_SA_ASSIGNED))[0].casefold()
            practices = [
                p
                for p, names in assignment.practice_assignments.items()
                if specialist and any(" ".join(n.split()).casefold() == specialist for n in names)
            ]
        if not practices:
            return Result.failure(
                f"Assignment {assignment.id}: cannot tell which practice needs approval",
                kind=ErrorKind.NOT_FOUND,
            )

        result = await self._completions.request_approval(assignment.id, practices, fields.get(F_REVISION))
        if not result.ok:
            return result
        logger.info(
            "Email %s: approval requested on assignment %s for %s (revision %s)",
            email.id, assignment.id, practices, fields.get(F_REVISION),
        )
        return Result.success(assignment.id)

    async def _approve(self, email: InboundEmail, fields: ExtractedFields) -> Result:
        found = await self._load_sa_assignment(fields)
        if not found.ok:
            return found
        assignment: Assignment = found.value

        candidate = fields.get(F_PRACTICE)
        practice = self._resolve_practice(assignment, candidate)
        if candidate and practice is None:
            return Result.failure(
                f"Assignment {assignment.id}: practice {candidate!r} is not declared",
                kind=ErrorKind.NOT_FOUND,
            )

        result = await self._completions.approve(
            assignment.id, practice, fields.get(F_REVISION), fields.get(F_APPROVED_BY)
        )
        if not result.ok:
            return result
        logger.info(
            "Email %s: %d pair(s) approved on assignment %s",
            email.id, sum(1 for c in result.value.changes if not c.is_overall), assignment.id,
        )
        return Result.success(assignment.id)
