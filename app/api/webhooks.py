"""Webhook handlers for billing/CRM platforms.

Registered without the JWT auth dependency; callers prove themselves with a
shared secret instead.
Handles: Make.com provisioning events (bearer secret),
GoHighLevel lifecycle events (HMAC signature).
"""

import json
from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.cors import build_cors_headers
from app.core.ghl_events import determine_lifecycle_action, parse_delivery
from app.core.logging import get_logger
from app.core.provisioning import ProvisioningError, provision_user
from app.core.provisioning_rules import UnsupportedEventError
from app.core.schemas_provisioning import ProvisioningAccepted, ProvisioningPayload
from app.core.webhook_auth import extract_bearer_token, safe_equals, verify_hmac_signature

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks")

GHL_SIGNATURE_HEADERS = ("x-wh-signature", "x-gohighlevel-signature")
OTHER_METHODS = ["GET", "PUT", "PATCH", "DELETE"]


def _json(body: Any, status_code: int, cors: dict[str, str]) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=cors)


def _parse_json_object(raw: bytes) -> Optional[dict[str, Any]]:
    """Decode a JSON object body; None when it is not valid JSON or not an object."""
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


# ============================================================================
# Make.com provisioning events
# ============================================================================


@router.options("/make")
async def make_webhook_preflight(request: Request):
    """CORS preflight."""
    cors = build_cors_headers(request.headers.get("origin"), get_settings())
    return PlainTextResponse("ok", headers=cors)


@router.api_route("/make", methods=OTHER_METHODS, include_in_schema=False)
async def make_webhook_method_not_allowed(request: Request):
    cors = build_cors_headers(request.headers.get("origin"), get_settings())
    return _json({"error": "Method not allowed"}, 405, cors)


@router.post("/make")
async def make_webhook(request: Request):
    """
    Apply a subscription lifecycle event sent by a Make.com scenario.

    Flow:
    1. Verify the bearer secret (constant-time)
    2. Parse and validate {email, fullName?, event, metadata?}
    3. Provision the user (identity → profile → ban flag)
    """
    settings = get_settings()
    cors = build_cors_headers(request.headers.get("origin"), settings)
    request_id = uuid4().hex

    if not settings.MAKE_WEBHOOK_SECRET:
        logger.error("MAKE_WEBHOOK_SECRET is not configured")
        return _json({"error": "Server configuration error"}, 500, cors)

    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return _json({"error": "Unauthorized: Bearer token missing"}, 401, cors)
    if not safe_equals(token, settings.MAKE_WEBHOOK_SECRET):
        logger.warning("Make webhook: rejected request with invalid bearer token")
        return _json({"error": "Unauthorized"}, 401, cors)

    body = _parse_json_object(await request.body())
    if body is None:
        logger.warning("Make webhook: body is not a JSON object")
        return _json({"error": "Invalid JSON body"}, 400, cors)

    try:
        payload = ProvisioningPayload.model_validate(body)
    except ValidationError as e:
        return _json({"error": "Invalid payload", "details": str(e)}, 400, cors)

    try:
        result = provision_user(payload, request_id=request_id)
    except UnsupportedEventError as e:
        return _json(
            {"error": str(e), "supportedEvents": e.supported_events}, 400, cors
        )
    except ProvisioningError as e:
        content = {"error": e.error}
        if e.status_code >= 500:
            content["details"] = e.details
        return _json(content, e.status_code, cors)

    if isinstance(result, ProvisioningAccepted):
        return _json(result.model_dump(), 202, cors)

    return _json(result.model_dump(mode="json", by_alias=True), 200, cors)


# ============================================================================
# GoHighLevel lifecycle events
# ============================================================================


@router.options("/ghl")
async def ghl_webhook_preflight(request: Request):
    """CORS preflight."""
    cors = build_cors_headers(
        request.headers.get("origin"), get_settings(), GHL_SIGNATURE_HEADERS
    )
    return PlainTextResponse("ok", headers=cors)


@router.api_route("/ghl", methods=OTHER_METHODS, include_in_schema=False)
async def ghl_webhook_method_not_allowed(request: Request):
    cors = build_cors_headers(
        request.headers.get("origin"), get_settings(), GHL_SIGNATURE_HEADERS
    )
    return _json({"error": "Method not allowed"}, 405, cors)


@router.post("/ghl")
async def ghl_webhook(request: Request):
    """
    Handle GoHighLevel workflow webhooks.

    The delivery is classified into a lifecycle event (product ids, event
    type keywords, contact tags) and then provisioned exactly like a Make.com
    event. Unclassifiable deliveries are acknowledged and ignored.
    """
    settings = get_settings()
    cors = build_cors_headers(request.headers.get("origin"), settings, GHL_SIGNATURE_HEADERS)

    if not settings.GHL_WEBHOOK_SECRET:
        logger.error("GHL_WEBHOOK_SECRET is not configured")
        return _json({"error": "Server configuration error"}, 500, cors)

    raw_body = await request.body()
    signature = next(
        (request.headers[h] for h in GHL_SIGNATURE_HEADERS if request.headers.get(h)),
        None,
    )
    if not signature:
        logger.warning("GHL webhook: missing signature header")
        return _json({"error": "Unauthorized"}, 401, cors)
    if not verify_hmac_signature(raw_body, signature, settings.GHL_WEBHOOK_SECRET):
        logger.warning("GHL webhook: signature verification failed")
        return _json({"error": "Unauthorized"}, 401, cors)

    body = _parse_json_object(raw_body)
    if body is None:
        logger.error("GHL webhook: invalid JSON payload")
        return _json({"error": "Invalid JSON payload"}, 400, cors)

    delivery = parse_delivery(body)
    event_id = delivery.event_id

    logger.info(
        f"GHL webhook: event_id={event_id}, type={delivery.event_type}, "
        f"product={delivery.product_id}, tags={sorted(delivery.tags)}"
    )

    if not delivery.contact.email:
        logger.warning("GHL webhook: payload missing contact email, cannot reconcile user")
        return _json(
            {
                "success": False,
                "message": "Webhook ignored: contact email is required.",
                "eventId": event_id,
            },
            202,
            cors,
        )

    action = determine_lifecycle_action(
        event_type=delivery.event_type,
        product_id=delivery.product_id,
        tags=delivery.tags,
        pro_product_ids=settings.ghl_pro_product_ids,
        trial_product_ids=settings.ghl_trial_product_ids,
    )

    if action.event is None:
        logger.info(f"GHL webhook ignored: {action.reason} (event_id={event_id})")
        return _json(
            {"success": True, "action": action.action, "reason": action.reason, "eventId": event_id},
            200,
            cors,
        )

    metadata = {"source": "ghl"}
    if delivery.contact.id:
        metadata["ghl_contact_id"] = delivery.contact.id
    if event_id:
        metadata["ghl_event_id"] = event_id

    payload = ProvisioningPayload(
        email=delivery.contact.email,
        full_name=delivery.contact.name,
        event=action.event.value,
        metadata=metadata,
    )

    try:
        result = provision_user(payload, request_id=event_id or uuid4().hex)
    except (ProvisioningError, UnsupportedEventError) as e:
        logger.error(f"GHL webhook: provisioning failed for event_id={event_id}: {e}")
        return _json({"error": "Internal server error", "eventId": event_id}, 500, cors)

    logger.info(f"GHL webhook processed: event_id={event_id}, action={action.action}")

    return _json(
        {
            "success": True,
            "action": action.action,
            "reason": action.reason,
            "result": result.model_dump(mode="json", by_alias=True),
            "eventId": event_id,
        },
        200,
        cors,
    )
