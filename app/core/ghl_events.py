"""GoHighLevel webhook payload interpretation.

GHL workflows post loosely shaped JSON: the same fact (contact email, event
type, product) can live under several keys depending on the trigger. This
module pulls those fields out and classifies the delivery into a
LifecycleEvent, or decides to ignore it.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from app.core.provisioning_rules import LifecycleEvent

EVENT_ID_PATHS = ["event_id", "eventId", "id", "meta.event_id", "meta.eventId"]
EVENT_TYPE_PATHS = [
    "event",
    "event_type",
    "eventType",
    "type",
    "eventName",
    "meta.event",
    "meta.type",
]
PRODUCT_ID_PATHS = [
    "product.id",
    "productId",
    "product_id",
    "offer.id",
    "offerId",
    "invoice.product_id",
    "meta.product_id",
]
CONTACT_EMAIL_PATHS = ["contact.email", "email", "customer.email", "payload.email"]
CONTACT_ID_PATHS = ["contact.id", "contactId", "customer.id", "customerId"]
CONTACT_NAME_PATHS = ["contact.name", "customer.name"]
FIRST_NAME_PATHS = [
    "contact.first_name",
    "contact.firstName",
    "customer.first_name",
    "customer.firstName",
    "first_name",
    "firstName",
]
LAST_NAME_PATHS = [
    "contact.last_name",
    "contact.lastName",
    "customer.last_name",
    "customer.lastName",
    "last_name",
    "lastName",
]
TAG_PATHS = [["tags"], ["contact", "tags"], ["contact", "tagList"]]

IGNORE = "ignore"


@dataclass
class GhlContact:
    email: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass
class LifecycleAction:
    """Classification result. event is None when the delivery is ignored."""
    event: Optional[LifecycleEvent]
    reason: str

    @property
    def action(self) -> str:
        return self.event.value if self.event else IGNORE


@dataclass
class GhlDelivery:
    """Fields extracted from one GHL webhook body."""
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    product_id: Optional[str] = None
    contact: GhlContact = field(default_factory=GhlContact)
    tags: set[str] = field(default_factory=set)


def get_path(payload: Any, path: Iterable[str]) -> Any:
    """Walk nested dicts; None when any segment is missing."""
    current = payload
    for segment in path:
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        else:
            return None
    return current


def extract_string(payload: Any, paths: Iterable[str]) -> Optional[str]:
    """First non-blank string found at any of the dotted paths, trimmed."""
    for path in paths:
        value = get_path(payload, path.split("."))
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_tags(payload: Any) -> set[str]:
    """Lower-cased tags from list or comma-string tag fields."""
    tags: set[str] = set()
    for path in TAG_PATHS:
        candidate = get_path(payload, path)
        if isinstance(candidate, list):
            tags.update(value.lower() for value in candidate if isinstance(value, str))
        elif isinstance(candidate, str):
            tags.update(
                tag.strip().lower() for tag in candidate.split(",") if tag.strip()
            )
    return tags


def extract_contact(payload: Any) -> GhlContact:
    email = extract_string(payload, CONTACT_EMAIL_PATHS)
    contact_id = extract_string(payload, CONTACT_ID_PATHS)
    first_name = extract_string(payload, FIRST_NAME_PATHS)
    last_name = extract_string(payload, LAST_NAME_PATHS)

    name = extract_string(payload, CONTACT_NAME_PATHS) or " ".join(
        part for part in (first_name, last_name) if part
    ).strip()

    return GhlContact(email=email, id=contact_id, name=name or None)


def parse_delivery(payload: Any) -> GhlDelivery:
    """Extract every field the classifier and provisioning need."""
    event_type = extract_string(payload, EVENT_TYPE_PATHS)
    return GhlDelivery(
        event_id=extract_string(payload, EVENT_ID_PATHS),
        event_type=event_type.lower() if event_type else None,
        product_id=extract_string(payload, PRODUCT_ID_PATHS),
        contact=extract_contact(payload),
        tags=extract_tags(payload),
    )


def determine_lifecycle_action(
    event_type: Optional[str],
    product_id: Optional[str],
    tags: set[str],
    pro_product_ids: set[str],
    trial_product_ids: set[str],
) -> LifecycleAction:
    """Classify a delivery. Checks run in order; the first hit wins.

    Product ids are the most specific signal, then keywords in the event
    type, then contact tags.
    """
    if not event_type and not product_id:
        return LifecycleAction(None, "No actionable event type or product id provided.")

    if product_id:
        if product_id in pro_product_ids:
            return LifecycleAction(
                LifecycleEvent.PRO_SUBSCRIPTION_PURCHASE,
                f"Matched pro product id {product_id}",
            )
        if product_id in trial_product_ids:
            return LifecycleAction(
                LifecycleEvent.TRIAL_STARTED,
                f"Matched trial product id {product_id}",
            )

    if event_type:
        if "trial" in event_type:
            return LifecycleAction(
                LifecycleEvent.TRIAL_STARTED,
                f"Event type indicates trial lifecycle: {event_type}",
            )

        if "payment" in event_type and "failed" in event_type:
            return LifecycleAction(
                LifecycleEvent.PAYMENT_FAILED, f"Payment failure event: {event_type}"
            )

        if "payment" in event_type and any(
            word in event_type for word in ("success", "paid", "recovered")
        ):
            if "recovered" in event_type:
                reason = f"Payment recovered event: {event_type}"
            else:
                reason = f"Payment success event without specific product match: {event_type}"
            return LifecycleAction(LifecycleEvent.PAYMENT_RECOVERED, reason)

        if "recover" in event_type or "reactivat" in event_type:
            return LifecycleAction(
                LifecycleEvent.PAYMENT_RECOVERED, f"Account recovery event: {event_type}"
            )

        if "cancel" in event_type:
            return LifecycleAction(
                LifecycleEvent.SUBSCRIPTION_CANCELLED, f"Cancellation event: {event_type}"
            )

    if any("pro" in tag for tag in tags):
        return LifecycleAction(
            LifecycleEvent.PRO_SUBSCRIPTION_PURCHASE, "Matched pro tag from contact."
        )
    if any("trial" in tag for tag in tags):
        return LifecycleAction(LifecycleEvent.TRIAL_STARTED, "Matched trial tag from contact.")

    return LifecycleAction(None, "No lifecycle transition rules matched.")
