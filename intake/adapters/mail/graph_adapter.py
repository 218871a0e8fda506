"""Microsoft Graph mailbox adapter — implements MailPort."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import httpx

from intake.application.ports.mail_port import MailPort
from intake.config import settings
from intake.domain.entities.inbound_email import InboundEmail

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
PAGE_SIZE = 50
# Refresh the token this many seconds before Graph says it expires
TOKEN_EXPIRY_MARGIN = 60


def _parse_received(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def _message_to_domain(message: dict) -> InboundEmail:
    sender = (message.get("from") or {}).get("emailAddress") or {}
    return InboundEmail(
        id=message["id"],
        subject=message.get("subject") or "",
        body=(message.get("body") or {}).get("content") or "",
        sender=sender.get("address") or "",
        received_at=_parse_received(message.get("receivedDateTime")),
    )


class GraphMailAdapter(MailPort):
    """Reads unread inbox messages with the client-credentials flow."""

    def __init__(
        self,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        mailbox: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._tenant_id = tenant_id or settings.graph_tenant_id
        self._client_id = client_id or settings.graph_client_id
        self._client_secret = client_secret or settings.graph_client_secret
        self._mailbox = mailbox or settings.graph_mailbox
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=httpx.Timeout(10.0, connect=5.0))

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        response = await client.post(
            TOKEN_URL_TEMPLATE.format(tenant=self._tenant_id),
            data={
                "grant_type": "client_credentials",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "scope": GRAPH_SCOPE,
            },
        )
        response.raise_for_status()
        data = response.json()
        self._token = data["access_token"]
        self._token_expires_at = time.monotonic() + int(data.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN
        return self._token

    async def check_new_mail(self, since: datetime) -> list[InboundEmail]:
        if not self._mailbox:
            raise RuntimeError("GRAPH_MAILBOX is not configured")

        since_utc = since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        url: str | None = f"{GRAPH_BASE_URL}/users/{self._mailbox}/mailFolders/inbox/messages"
        params: dict | None = {
            "$filter": f"isRead eq false and receivedDateTime ge {since_utc}",
            "$orderby": "receivedDateTime asc",
            "$select": "id,subject,body,from,receivedDateTime",
            "$top": str(PAGE_SIZE),
        }

        emails: list[InboundEmail] = []
        async with self._client() as client:
            token = await self._access_token(client)
            headers = {
                "Authorization": f"Bearer {token}",
                "Prefer": 'outlook.body-content-type="text"',
            }
            while url:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                data = response.json()
                emails.extend(_message_to_domain(m) for m in data.get("value", []))
                # nextLink already carries the query string
                url, params = data.get("@odata.nextLink"), None

        logger.info("Fetched %d unread message(s) since %s", len(emails), since_utc)
        return emails

    async def mark_as_read(self, email_id: str) -> None:
        async with self._client() as client:
            token = await self._access_token(client)
            response = await client.patch(
                f"{GRAPH_BASE_URL}/users/{self._mailbox}/messages/{email_id}",
                json={"isRead": True},
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        logger.debug("Marked message %s as read", email_id)
