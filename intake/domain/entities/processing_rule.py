"""ProcessingRule entity — configured match patterns plus an action."""

from dataclasses import dataclass, field

from intake.domain.value_objects.enums import RuleAction

WILDCARD_SENDER = "anyone"


@dataclass(frozen=True)
class KeywordMapping:
    keyword: str
    field: str
    required: bool = True


@dataclass
class ProcessingRule:
    id: int | None
    name: str
    action: RuleAction = RuleAction.RESOURCE_ASSIGNMENT
    sender_pattern: str | None = None
    subject_pattern: str | None = None
    body_pattern: str | None = None
    keyword_mappings: list[KeywordMapping] = field(default_factory=list)
    enabled: bool = True
