"""Tests for the Webex notification adapter and its message rendering."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from intake.adapters.notifications.webex_adapter import (
    WEBEX_MESSAGES_URL,
    WebexNotificationAdapter,
    render_status_changes,
    render_template,
)
from intake.domain.entities.assignment import Assignment
from intake.domain.policies.status_machine import StatusChange
from intake.domain.value_objects.enums import (
    AssignmentKind,
    AssignmentStatus,
    NotificationTemplate,
    PairStatus,
)

AT = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def _make_assignment() -> Assignment:
    return Assignment(
        id=4,
        kind=AssignmentKind.SA,
        opportunity_id="123",
        status=AssignmentStatus.ASSIGNED,
        practices=["Security", "Data Center"],
        practice_assignments={"Security": ["Jane Doe"], "Data Center": ["Bob Smith"]},
        owner="Alice Owner",
        customer_name="Acme",
        region="TX-DAL",
        opportunity_url="https://crm.example.com/opp/123",
    )


# ─── Rendering ───────────────────────────────────────────────────────


def test_render_status_changes_lists_overall_and_pairs():
    text = render_status_changes(_make_assignment(), [
        StatusChange(AssignmentStatus.UNASSIGNED, AssignmentStatus.ASSIGNED, AT),
        StatusChange(PairStatus.IN_PROGRESS, PairStatus.PENDING_APPROVAL, AT,
                     practice="Security", assignee="Jane Doe"),
    ])
    lines = text.splitlines()
    assert lines[0] == "**Status update** for [Acme (123)](https://crm.example.com/opp/123)"
    assert lines[1] == "- Assignment: **Unassigned** → **Assigned**"
    assert lines[2] == "- Jane Doe / Security: **In Progress** → **Pending Approval**"


def test_render_template_summarizes_assignment():
    text = render_template(_make_assignment(), NotificationTemplate.SA_AUTO_ASSIGNED)
    assert text.startswith("**SA Resources Assigned**")
    assert "- Practices: Security, Data Center" in text
    assert "- Assigned: Jane Doe, Bob Smith" in text
    assert "- Region: TX-DAL" in text


def test_render_without_customer_or_url():
    a = Assignment(id=1, kind=AssignmentKind.RESOURCE, opportunity_id="P-1")
    text = render_template(a, NotificationTemplate.ASSIGNMENT_CREATED)
    assert "Unknown customer (P-1)" in text
    assert "- Status: Pending" in text


# ─── Delivery ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_posts_markdown_to_room():
    sent: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200, json={"id": "msg-1"})

    adapter = WebexNotificationAdapter("bot-token", "room-default", transport=httpx.MockTransport(handler))
    await adapter.send_template(_make_assignment(), NotificationTemplate.SA_COMPLETED)
    await adapter.send_status_changes(
        _make_assignment(),
        [StatusChange(AssignmentStatus.ASSIGNED, AssignmentStatus.COMPLETE, AT)],
        channel="room-override",
    )

    assert [str(r.url) for r in sent] == [WEBEX_MESSAGES_URL, WEBEX_MESSAGES_URL]
    assert sent[0].headers["Authorization"] == "Bearer bot-token"
    first, second = (json.loads(r.content) for r in sent)
    assert first["roomId"] == "room-default"
    assert first["markdown"].startswith("**SA Assignment Complete**")
    assert second["roomId"] == "room-override"


@pytest.mark.asyncio
async def test_missing_room_skips_delivery():
    sent: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200)

    adapter = WebexNotificationAdapter("bot-token", transport=httpx.MockTransport(handler))
    await adapter.send_template(_make_assignment(), NotificationTemplate.SA_COMPLETED)
    assert sent == []


@pytest.mark.asyncio
async def test_error_status_raises():
    adapter = WebexNotificationAdapter(
        "bot-token", "room", transport=httpx.MockTransport(lambda request: httpx.Response(401))
    )
    with pytest.raises(httpx.HTTPStatusError):
        await adapter.send_template(_make_assignment(), NotificationTemplate.SA_COMPLETED)
