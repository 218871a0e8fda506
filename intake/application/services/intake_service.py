"""IntakeService — periodic mailbox passes.

One instance per process, created in the app lifespan. A pass fetches unread
mail, runs every email through ``ProcessEmailUseCase`` in receive order and
marks an email read only once its action succeeded. Overlapping passes are
dropped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from intake.application.collaborators import DEFAULT_TIMEOUT_SECONDS, call
from intake.application.ports.mail_port import MailPort
from intake.application.use_cases.process_email import ProcessEmailUseCase
from intake.domain.entities.inbound_email import InboundEmail
from intake.domain.value_objects.enums import ErrorKind
from intake.domain.value_objects.result import Result

logger = logging.getLogger(__name__)


@dataclass
class PassSummary:
    """Counters for one mailbox pass."""

    started_at: datetime
    fetched: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class IntakeService:
    def __init__(
        self,
        mail: MailPort,
        process_email: ProcessEmailUseCase,
        poll_interval_seconds: float = 300,
        lookback_hours: float = 24,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._mail = mail
        self._process_email = process_email
        self._poll_interval = poll_interval_seconds
        self._lookback = timedelta(hours=lookback_hours)
        self._timeout = timeout
        self._running = False
        self._since: datetime | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def since(self) -> datetime | None:
        return self._since

    async def run_pass(self) -> PassSummary | None:
        """Process the mailbox once; returns None when a pass is already running."""
        if self._running:
            logger.info("Mailbox pass already running; skipping this trigger")
            return None

        self._running = True
        try:
            return await self._run_pass()
        finally:
            self._running = False

    async def _run_pass(self) -> PassSummary:
        started = datetime.now(timezone.utc)
        summary = PassSummary(started_at=started)
        since = self._since or started - self._lookback

        fetched = await call("check new mail", self._mail.check_new_mail(since), self._timeout)
        if not fetched.ok:
            summary.errors.append(fetched.error)
            return summary
        emails: list[InboundEmail] = sorted(fetched.value, key=lambda e: e.received_at)
        summary.fetched = len(emails)
        if not emails:
            self._since = started
            return summary

        rules = await self._process_email.load_rules()
        if not rules.ok:
            summary.errors.append(rules.error)
            return summary

        oldest_unprocessed: datetime | None = None
        for email in emails:
            result = await self._handle(email, rules.value)

            if result.ok and result.kind == ErrorKind.RULE_NO_MATCH:
                summary.skipped += 1
                continue

            if result.ok:
                marked = await call(f"mark email {email.id} read", self._mail.mark_as_read(email.id), self._timeout)
                if marked.ok:
                    if result.skipped:
                        summary.skipped += 1
                    else:
                        summary.processed += 1
                    continue
                result = marked

            summary.failed += 1
            summary.errors.append(f"{email.id}: {result.error}")
            if oldest_unprocessed is None or email.received_at < oldest_unprocessed:
                oldest_unprocessed = email.received_at

        self._since = oldest_unprocessed or started
        logger.info(
            "Mailbox pass: fetched=%d processed=%d skipped=%d failed=%d",
            summary.fetched, summary.processed, summary.skipped, summary.failed,
        )
        return summary

    async def _handle(self, email: InboundEmail, rules) -> Result:
        try:
            return await self._process_email.execute(email, rules)
        except Exception as exc:
            logger.exception("Unexpected error processing email %s", email.id)
            return Result.failure(f"unexpected error: {exc}")

    # ─── Background polling ──────────────────────────────────────────

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._poll_forever())
            logger.info("Mailbox polling started (every %ss)", self._poll_interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Mailbox polling stopped")

    async def _poll_forever(self) -> None:
        while True:
            try:
                await self.run_pass()
            except Exception:
                logger.exception("Mailbox pass crashed")
            await asyncio.sleep(self._poll_interval)
