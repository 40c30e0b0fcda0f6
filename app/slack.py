"""
Slack incoming webhook notifications for handoffs.
Docs: https://api.slack.com/messaging/webhooks
"""

import logging

import httpx

from app.errors import DownstreamError
from app.models import HandoffPayload

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def compose_notification(payload: HandoffPayload, ticket_id: str) -> str:
    """Render the Slack mrkdwn text announcing a handoff."""

    lines = [
        f"{payload.type.label} (#{ticket_id})",
        "",
        f"*Name:* {payload.name}",
        f"*Email:* {payload.email}",
        f"*Phone:* {payload.phone or NOT_AVAILABLE}",
        f"*Location:* {payload.location or NOT_AVAILABLE}",
        "",
        "*Message:*",
        payload.message or "_No message provided_",
        "",
        "*Transcript (context):*",
        payload.transcript or "_No transcript provided_",
    ]
    return "\n".join(lines).strip()


async def send_notification(client: httpx.AsyncClient, webhook_url: str, text: str) -> None:
    """POST the message to the webhook; raise DownstreamError unless Slack accepts it."""

    try:
        resp = await client.post(webhook_url, json={"text": text})
    except httpx.HTTPError as exc:
        raise DownstreamError("slack", f"request failed: {exc!r}") from exc

    if resp.is_error:
        raise DownstreamError("slack", resp.text, status_code=resp.status_code)
    logger.debug("Slack notification delivered", extra={"status_code": resp.status_code})
