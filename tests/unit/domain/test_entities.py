"""Tests for domain entities and value objects."""

from datetime import datetime, timezone

from intake.domain.entities.assignment import Assignment, completion_key_for
from intake.domain.entities.directory_user import DirectoryUser
from intake.domain.entities.eta import PracticeEta
from intake.domain.value_objects.completion import Completion, CompletionKey
from intake.domain.value_objects.enums import (
    AssignmentKind,
    ErrorKind,
    PairStatus,
    TransitionKind,
)
from intake.domain.value_objects.practice import (
    is_unclassified,
    normalize_practice,
    parse_practices,
    same_practice,
)
from intake.domain.value_objects.recipient import Recipient
from intake.domain.value_objects.result import Result


def _make_assignment(**overrides) -> Assignment:
    fields = dict(
        id=1,
        kind=AssignmentKind.SA,
        opportunity_id="100",
        practices=["Security", "Data Center"],
        practice_assignments={"Security": ["Jane Doe"], "Data Center": ["Bob Smith", "Jane Doe"]},
    )
    fields.update(overrides)
    return Assignment(**fields)


# ─── Completion keys ────────────────────────────────────────────────


def test_completion_key_encode_bare():
    assert CompletionKey("Jane Doe").encode() == "Jane Doe"


def test_completion_key_encode_scoped():
    assert CompletionKey("Jane Doe", "Security").encode() == "Jane Doe::Security"


def test_completion_key_decode():
    assert CompletionKey.decode("Jane Doe::Security") == CompletionKey("Jane Doe", "Security")
    assert CompletionKey.decode("Bob Smith") == CompletionKey("Bob Smith")


def test_completion_from_dict_defaults_to_in_progress():
    c = Completion.from_dict({})
    assert c.status == PairStatus.IN_PROGRESS
    assert c.requested_at is None


def test_completion_to_dict_serializes_datetimes():
    at = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    data = Completion(status=PairStatus.PENDING_APPROVAL, revision_number="2", requested_at=at).to_dict()
    assert data["status"] == "Pending Approval"
    assert data["requested_at"] == "2026-01-05T09:00:00+00:00"
    assert Completion.from_dict(data).requested_at == at


# ─── Assignment ─────────────────────────────────────────────────────


def test_new_assignment_defaults_to_pending_practice():
    a = Assignment(id=None, kind=AssignmentKind.RESOURCE, opportunity_id="P-1")
    assert a.practices == ["Pending"]
    assert is_unclassified(a.practices)


def test_completion_key_scoped_only_for_multi_practice_assignee():
    a = _make_assignment()
    assert a.completion_key("Bob Smith", "Data Center") == CompletionKey("Bob Smith")
    assert a.completion_key("Jane Doe", "Security") == CompletionKey("Jane Doe", "Security")


def test_completion_key_for_unknown_assignee_is_bare():
    assert completion_key_for({}, "Nobody", "Security") == CompletionKey("Nobody")


def test_lookup_prefers_scoped_key():
    a = _make_assignment(completions={
        CompletionKey("Jane Doe"): Completion(status=PairStatus.IN_PROGRESS),
        CompletionKey("Jane Doe", "Security"): Completion(status=PairStatus.APPROVED_COMPLETE),
    })
    assert a.pair_status("Jane Doe", "security") == PairStatus.APPROVED_COMPLETE
    assert a.pair_status("Jane Doe", "Data Center") == PairStatus.IN_PROGRESS


def test_practice_status_aggregates_group():
    a = _make_assignment(completions={
        CompletionKey("Bob Smith"): Completion(status=PairStatus.APPROVED_COMPLETE),
        CompletionKey("Jane Doe", "Data Center"): Completion(status=PairStatus.APPROVED_COMPLETE),
    })
    assert a.practice_status("Data Center") == PairStatus.APPROVED_COMPLETE
    assert a.practice_status("Security") == PairStatus.IN_PROGRESS


def test_declared_practice_is_case_insensitive():
    a = _make_assignment()
    assert a.declared_practice("data  center") == "Data Center"
    assert a.declared_practice("Collaboration") is None


def test_all_assignees_deduplicated_in_order():
    assert _make_assignment().all_assignees() == ["Jane Doe", "Bob Smith"]


# ─── Other entities ─────────────────────────────────────────────────


def test_directory_user_covers():
    u = DirectoryUser(name="Jane Doe", email="jane@example.com", practices=["Security"])
    assert u.covers(" SECURITY ")
    assert not u.covers("Data Center")


def test_practice_eta_rolling_mean():
    eta = PracticeEta(practice="Security", transition=TransitionKind.UNASSIGNED_TO_ASSIGNED)
    eta.absorb(2.0)
    eta.absorb(4.0)
    assert eta.sample_count == 2
    assert eta.avg_duration_hours == 3.0


def test_recipient_formatted():
    assert Recipient("Jane Doe", "jane@example.com").formatted() == "Jane Doe <jane@example.com>"


def test_result_skipped_only_for_intentional_noops():
    assert Result.success(kind=ErrorKind.RULE_NO_MATCH).skipped
    assert Result.success(7, kind=ErrorKind.DUPLICATE_OPPORTUNITY).skipped
    assert not Result.success(7).skipped
    assert not Result.failure("boom").skipped


# ─── Practice helpers ───────────────────────────────────────────────


def test_normalize_practice():
    assert normalize_practice("  Data   Center ") == "data center"
    assert same_practice("SECURITY", "security")


def test_parse_practices_dedupes_case_insensitively():
    assert parse_practices("Security, security , Data Center,") == ["Security", "Data Center"]
    assert parse_practices(None) == []


def test_is_unclassified():
    assert is_unclassified([])
    assert is_unclassified(["Pending"])
    assert not is_unclassified(["Pending", "Security"])
