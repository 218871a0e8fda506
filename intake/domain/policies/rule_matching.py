"""RuleMatchingPolicy — pick the processing rule that applies to an inbound email."""

from __future__ import annotations

from typing import Iterable

from intake.domain.entities.inbound_email import InboundEmail
from intake.domain.entities.processing_rule import WILDCARD_SENDER, ProcessingRule


def _is_wildcard(pattern: str | None) -> bool:
    return not pattern or not pattern.strip() or pattern.strip().lower() == WILDCARD_SENDER


def _contains(pattern: str | None, text: str | None) -> bool:
    if _is_wildcard(pattern):
        return True
    return pattern.strip().lower() in (text or "").lower()


def matches_rule(rule: ProcessingRule, email: InboundEmail) -> bool:
    """Every configured pattern must match; empty or "anyone" patterns always do."""
    if not rule.enabled:
        return False
    return (
        _contains(rule.sender_pattern, email.sender)
        and _contains(rule.subject_pattern, email.subject)
        and _contains(rule.body_pattern, email.body)
    )


def select_rule(rules: Iterable[ProcessingRule], email: InboundEmail) -> ProcessingRule | None:
    """First matching rule in configured order, or None."""
    return next((rule for rule in rules if matches_rule(rule, email)), None)
