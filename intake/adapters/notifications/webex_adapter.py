"""Webex messages adapter — implements NotificationPort."""

from __future__ import annotations

import logging

import httpx

from intake.application.ports.notification_port import NotificationPort
from intake.config import settings
from intake.domain.entities.assignment import Assignment
from intake.domain.policies.status_machine import StatusChange
from intake.domain.value_objects.enums import NotificationTemplate

logger = logging.getLogger(__name__)

WEBEX_MESSAGES_URL = "https://webexapis.com/v1/messages"

_TEMPLATE_TITLES = {
    NotificationTemplate.ASSIGNMENT_CREATED: "New Resource Assignment",
    NotificationTemplate.SA_ASSIGNMENT_CREATED: "New SA Assignment",
    NotificationTemplate.SA_AUTO_ASSIGNED: "SA Resources Assigned",
    NotificationTemplate.SA_APPROVAL_REQUESTED: "SA Approval Requested",
    NotificationTemplate.SA_COMPLETED: "SA Assignment Complete",
}


def _headline(assignment: Assignment) -> str:
    name = assignment.customer_name or assignment.opportunity_name or "Unknown customer"
    line = f"{name} ({assignment.opportunity_id})"
    if assignment.opportunity_url:
        line = f"[{line}]({assignment.opportunity_url})"
    return line


def render_status_changes(assignment: Assignment, changes: list[StatusChange]) -> str:
    lines = [f"**Status update** for {_headline(assignment)}"]
    for change in changes:
        arrow = f"**{change.from_status.value}** → **{change.to_status.value}**"
        if change.is_overall:
            lines.append(f"- Assignment: {arrow}")
        else:
            lines.append(f"- {change.assignee} / {change.practice}: {arrow}")
    return "\n".join(lines)


def render_template(assignment: Assignment, template: NotificationTemplate) -> str:
    lines = [f"**{_TEMPLATE_TITLES[template]}**", _headline(assignment)]
    practices = ", ".join(assignment.practices)
    lines.append(f"- Practices: {practices}")
    if assignment.owner:
        lines.append(f"- Account manager: {assignment.owner}")
    if assignment.region:
        lines.append(f"- Region: {assignment.region}")

    assignees = assignment.all_assignees()
    if assignees:
        lines.append(f"- Assigned: {', '.join(assignees)}")
    lines.append(f"- Status: {assignment.status.value}")
    return "\n".join(lines)


class WebexNotificationAdapter(NotificationPort):
    """Posts markdown messages to a Webex room with a bot token."""

    def __init__(
        self,
        bot_token: str | None = None,
        default_room_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = bot_token or settings.webex_bot_token
        self._default_room = default_room_id or settings.webex_default_room_id
        self._transport = transport

    async def send_status_changes(
        self,
        assignment: Assignment,
        changes: list[StatusChange],
        channel: str | None = None,
    ) -> None:
        await self._post(channel, render_status_changes(assignment, changes))

    async def send_template(self, assignment: Assignment, template: NotificationTemplate) -> None:
        await self._post(None, render_template(assignment, template))

    async def _post(self, channel: str | None, markdown: str) -> None:
        room_id = channel or self._default_room
        if not self._token or not room_id:
            logger.warning("Webex bot token or room is not set. Skipping notification.")
            return

        async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
            response = await client.post(
                WEBEX_MESSAGES_URL,
                json={"roomId": room_id, "markdown": markdown},
                headers={"Authorization": f"Bearer {self._token}"},
            )
            response.raise_for_status()
        logger.debug("Posted Webex message to room %s", room_id)
