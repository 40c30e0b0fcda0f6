"""
GoHighLevel contact upsert, keyed by email.

The v1 contacts API has no upsert call, so a search by email decides
between PATCH on the first match and POST to the collection.
"""

import logging
from typing import Any, Dict, Literal

import httpx

from app.config import Settings
from app.errors import DownstreamError
from app.models import HandoffPayload

logger = logging.getLogger(__name__)

UpsertAction = Literal["created", "updated"]


def _headers(settings: Settings) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.ghl_api_key}",
        "Content-Type": "application/json",
    }


async def find_contact_id(client: httpx.AsyncClient, settings: Settings, email: str) -> str | None:
    """Return the id of the first contact matching ``email``, or None.

    A failed search counts as "no existing contact" so the caller still creates one.
    """

    try:
        resp = await client.get(
            f"{settings.ghl_base_url}/contacts/search",
            params={"query": email},
            headers=_headers(settings),
        )
    except httpx.HTTPError:
        logger.warning("GHL contact search failed", exc_info=True)
        return None

    if resp.is_error:
        logger.warning("GHL contact search returned an error", extra={"status_code": resp.status_code})
        return None

    try:
        body = resp.json()
    except ValueError:
        body = None
    contacts = body.get("contacts") if isinstance(body, dict) else None
    if not isinstance(contacts, list):
        logger.warning("GHL contact search returned an unreadable body")
        return None

    if not contacts or not isinstance(contacts[0], dict):
        return None
    if len(contacts) > 1:
        logger.info("GHL search matched several contacts; using the first", extra={"matches": len(contacts)})
    contact_id = contacts[0].get("id")
    return str(contact_id) if contact_id else None


def build_contact_payload(payload: HandoffPayload, settings: Settings) -> Dict[str, Any]:
    # GHL has no location field on contacts, companyName carries it instead.
    return {
        "locationId": settings.ghl_location_id,
        "firstName": payload.name,
        "lastName": "",
        "email": payload.email,
        "phone": payload.phone or "",
        "companyName": payload.location or "",
        "tags": [payload.type.tag],
        "customField": [
            {"id": settings.ghl_custom_field_transcript, "value": payload.transcript or ""},
        ],
    }


async def upsert_contact(client: httpx.AsyncClient, settings: Settings, payload: HandoffPayload) -> UpsertAction:
    """Update the contact matching the payload email, or create it."""

    contact_id = await find_contact_id(client, settings, payload.email or "")
    body = build_contact_payload(payload, settings)

    if contact_id:
        action: UpsertAction = "updated"
        request = client.patch(f"{settings.ghl_base_url}/contacts/{contact_id}", json=body, headers=_headers(settings))
    else:
        action = "created"
        request = client.post(f"{settings.ghl_base_url}/contacts/", json=body, headers=_headers(settings))

    try:
        resp = await request
    except httpx.HTTPError as exc:
        raise DownstreamError("ghl", f"request failed: {exc!r}") from exc

    if resp.is_error:
        raise DownstreamError("ghl", resp.text, status_code=resp.status_code)

    logger.info("GHL contact %s", action, extra={"contact_id": contact_id})
    return action
