import asyncio
import logging
import secrets
import string
from dataclasses import dataclass, field
from typing import Dict

import httpx

from app.config import Settings
from app.ghl import upsert_contact
from app.models import HandoffPayload
from app.slack import compose_notification, send_notification

logger = logging.getLogger(__name__)

TICKET_ID_LENGTH = 8
_BASE36 = string.digits + string.ascii_uppercase


def generate_ticket_id() -> str:
    """Short uppercase base-36 token for correlating a notification; not guaranteed unique."""

    value = secrets.randbits(48)
    chars = []
    while value:
        value, remainder = divmod(value, 36)
        chars.append(_BASE36[remainder])
    return "".join(reversed(chars))[-TICKET_ID_LENGTH:].rjust(TICKET_ID_LENGTH, "0")


@dataclass
class DispatchResult:
    ticket_id: str
    notified: bool = False
    crm_action: str | None = None
    errors: Dict[str, Exception] = field(default_factory=dict)


async def dispatch_handoff(payload: HandoffPayload, settings: Settings, client: httpx.AsyncClient) -> DispatchResult:
    """Send the Slack notification and the GHL upsert concurrently.

    Both are awaited; a failure in either is logged and never propagated.
    """

    result = DispatchResult(ticket_id=generate_ticket_id())
    text = compose_notification(payload, result.ticket_id)

    notification, crm = await asyncio.gather(
        send_notification(client, settings.slack_webhook_url or "", text),
        upsert_contact(client, settings, payload),
        return_exceptions=True,
    )

    for service, outcome in (("slack", notification), ("ghl", crm)):
        if isinstance(outcome, Exception):
            result.errors[service] = outcome
            logger.error(
                "Handoff dispatch failed",
                exc_info=outcome,
                extra={
                    "service": service,
                    "ticket_id": result.ticket_id,
                    "status_code": getattr(outcome, "upstream_status", None),
                },
            )
        elif isinstance(outcome, BaseException):
            raise outcome

    result.notified = "slack" not in result.errors
    if "ghl" not in result.errors:
        result.crm_action = crm

    logger.info(
        "Handoff dispatched",
        extra={
            "ticket_id": result.ticket_id,
            "notified": result.notified,
            "crm_action": result.crm_action,
        },
    )
    return result
