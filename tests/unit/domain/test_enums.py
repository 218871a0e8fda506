"""Tests for domain enums."""

from intake.domain.value_objects.enums import (
    AssignmentStatus,
    PairStatus,
    RegionCode,
    RuleAction,
    TransitionKind,
)


def test_assignment_status_values():
    assert AssignmentStatus.PENDING.value == "Pending"
    assert AssignmentStatus.PENDING_APPROVAL.value == "Pending Approval"
    assert AssignmentStatus("Complete") == AssignmentStatus.COMPLETE


def test_pair_status_values():
    assert PairStatus.IN_PROGRESS.value == "In Progress"
    assert PairStatus.APPROVED_COMPLETE.value == "Approved/Complete"


def test_rule_actions_count():
    assert len(RuleAction) == 4
    assert RuleAction("sa_assignment_approval_request") == RuleAction.SA_APPROVAL_REQUEST


def test_region_codes_count():
    assert len(RegionCode) == 16
    assert "TX-DAL" in {r.value for r in RegionCode}


def test_transition_kinds():
    assert {k.value for k in TransitionKind} == {
        "pending_to_unassigned",
        "unassigned_to_assigned",
        "assigned_to_pending_approval",
        "assigned_to_completed",
    }


def test_enums_compare_as_strings():
    assert AssignmentStatus.ASSIGNED == "Assigned"
