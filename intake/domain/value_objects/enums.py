"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class AssignmentKind(str, Enum):
    RESOURCE = "resource"
    SA = "sa"


class AssignmentStatus(str, Enum):
    PENDING = "Pending"
    UNASSIGNED = "Unassigned"
    ASSIGNED = "Assigned"
    PENDING_APPROVAL = "Pending Approval"
    COMPLETE = "Complete"


class PairStatus(str, Enum):
    """Status of one assignee working one practice on an assignment."""

    IN_PROGRESS = "In Progress"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED_COMPLETE = "Approved/Complete"


class RuleAction(str, Enum):
    RESOURCE_ASSIGNMENT = "resource_assignment"
    SA_ASSIGNMENT = "sa_assignment"
    SA_APPROVAL_REQUEST = "sa_assignment_approval_request"
    SA_APPROVED = "sa_assignment_approved"


class TransitionKind(str, Enum):
    PENDING_TO_UNASSIGNED = "pending_to_unassigned"
    UNASSIGNED_TO_ASSIGNED = "unassigned_to_assigned"
    ASSIGNED_TO_PENDING_APPROVAL = "assigned_to_pending_approval"
    ASSIGNED_TO_COMPLETED = "assigned_to_completed"


class RegionCode(str, Enum):
    CA_LAX = "CA-LAX"
    CA_SAN = "CA-SAN"
    CA_SFO = "CA-SFO"
    FL_MIA = "FL-MIA"
    FL_NORT = "FL-NORT"
    KY_KENT = "KY-KENT"
    LA_STATE = "LA-STATE"
    OK_OKC = "OK-OKC"
    OTHERS = "OTHERS"
    TN_TEN = "TN-TEN"
    TX_CEN = "TX-CEN"
    TX_DAL = "TX-DAL"
    TX_HOU = "TX-HOU"
    TX_SOUT = "TX-SOUT"
    US_FED = "US-FED"
    US_SP = "US-SP"


class NotificationTemplate(str, Enum):
    ASSIGNMENT_CREATED = "assignment_created"
    SA_ASSIGNMENT_CREATED = "sa_assignment_created"
    SA_AUTO_ASSIGNED = "sa_auto_assigned"
    SA_APPROVAL_REQUESTED = "sa_approval_requested"
    SA_COMPLETED = "sa_completed"


class ErrorKind(str, Enum):
    """Outcome taxonomy carried on a Result."""

    EXTRACTION_MISS = "extraction_miss"
    VALIDATION_REJECT = "validation_reject"
    RULE_NO_MATCH = "rule_no_match"
    DUPLICATE_OPPORTUNITY = "duplicate_opportunity"
    DOWNSTREAM_FAILURE = "downstream_failure"
    NOT_FOUND = "not_found"
    CONCURRENT_UPDATE = "concurrent_update"
