"""
Prompt & Pause Backend — Maintenance Batch Notifier
====================================================

What:  Delivers one personalised email per recipient, in fixed-size batches
       with a pause between batches, and reports per-batch outcomes.
Who:   MaintenanceService.notify_start / notify_complete.

Flow:
    recipients (ordered) ──▶ batches of `batch_size`
        for each batch, sequentially:
            build one EmailMessage per recipient
            email_client.send_batch(...)  ──▶ BatchResult
            sleep(batch_delay) unless this was the last batch
    ──▶ SendSummary

Failure policy:
    - recipient-level rejections and whole-batch non-2xx responses are
      recorded in the BatchResult and the run continues
    - EmailProviderUnavailableError (transport, 401/403, unconfigured)
      propagates and aborts the run; nothing is persisted by the caller
    - no checkpoint: a retried run starts again from the first recipient
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence

from promptpause.schemas.maintenance import (
    BatchResult,
    NotificationType,
    Recipient,
    SendSummary,
)
from promptpause.services.email_client import EmailMessage, ResendEmailClient

logger = logging.getLogger(__name__)

MessageBuilder = Callable[[Recipient], EmailMessage]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class NotifierConfig:
    batch_size: int = 100
    batch_delay_seconds: float = 1.0

    def __post_init__(self):
        if not 1 <= self.batch_size <= 100:
            raise ValueError("batch_size must be between 1 and 100")
        if self.batch_delay_seconds < 0:
            raise ValueError("batch_delay_seconds must not be negative")


def partition(recipients: Sequence[Recipient], size: int) -> List[List[Recipient]]:
    """Split into consecutive batches of `size`, preserving order."""
    return [list(recipients[i:i + size]) for i in range(0, len(recipients), size)]


class MaintenanceNotifier:
    def __init__(
        self,
        email_client: ResendEmailClient,
        config: NotifierConfig,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.email_client = email_client
        self.config = config
        self._sleep = sleep

    async def send(
        self,
        recipients: Sequence[Recipient],
        build_message: MessageBuilder,
        notification_type: NotificationType,
        window_id: uuid.UUID,
    ) -> SendSummary:
        self.email_client.ensure_configured()

        batches = partition(recipients, self.config.batch_size)
        logger.info(
            "Sending %s notification for window %s to %d recipients in %d batches",
            notification_type.value,
            window_id,
            len(recipients),
            len(batches),
        )

        results: List[BatchResult] = []
        for index, batch in enumerate(batches):
            messages = [build_message(r) for r in batch]
            failures = await self.email_client.send_batch(messages)

            result = BatchResult(
                batch_index=index,
                attempted=len(batch),
                succeeded=len(batch) - len(failures),
                failed=failures,
                attempted_emails=[r.email for r in batch],
            )
            results.append(result)
            logger.info(
                "Batch %d/%d for window %s: %d sent, %d failed",
                index + 1,
                len(batches),
                window_id,
                result.succeeded,
                len(result.failed),
            )

            if index < len(batches) - 1:
                await self._sleep(self.config.batch_delay_seconds)

        summary = SendSummary(
            notification_type=notification_type,
            window_id=window_id,
            total_recipients=len(recipients),
            total_succeeded=sum(r.succeeded for r in results),
            total_failed=sum(len(r.failed) for r in results),
            batches=results,
        )
        if summary.total_failed:
            logger.warning(
                "%s notification for window %s finished with %d failures",
                notification_type.value,
                window_id,
                summary.total_failed,
            )
        return summary
