"""User provisioning from billing lifecycle events.

Flow (strictly sequential, each step needs the previous one's output):
1. Normalize email, look up the rule for the event
2. Resolve the auth identity, creating it only when the rule allows, and
   copy CRM link metadata (ghl_contact_id) onto it
3. Read the existing profile
4. Compute full name / role / active
5. Upsert the profile
6. Sync the auth-level ban flag

Nothing is retried or rolled back here. If step 6 fails the profile is
already written; the error is raised so the caller (and its retry) sees it.
"""

import logging
from datetime import UTC, datetime
from typing import Optional, Union

from app.core.logging import get_logger, log_with_context, mask_email
from app.core.provisioning_rules import (
    ProvisioningRule,
    get_provisioning_rule,
    parse_event,
    resolve_role,
)
from app.core.schemas_provisioning import (
    AuthIdentity,
    ProvisioningAccepted,
    ProvisioningPayload,
    ProvisioningResult,
)
from app.db import auth_users as identity_db
from app.db import user_profiles as profile_db

logger = get_logger(__name__)


# ============================================================================
# Errors
# ============================================================================


class ProvisioningError(Exception):
    """Base class for provisioning failures reported to the webhook caller."""

    status_code = 500
    error = "Provisioning failed"

    def __init__(self, details: str = ""):
        self.details = details
        super().__init__(f"{self.error}: {details}" if details else self.error)


class ProvisioningValidationError(ProvisioningError):
    """Payload is unusable; the caller must fix it."""

    status_code = 400

    def __init__(self, error: str):
        self.error = error
        super().__init__()


class IdentityLookupError(ProvisioningError):
    error = "Identity lookup failed"


class IdentityCreationError(ProvisioningError):
    error = "Failed to create user"


class ProfileStoreError(ProvisioningError):
    error = "Database error"


class AuthSyncError(ProvisioningError):
    """Profile was written but the auth ban flag may be stale."""

    error = "Auth sync failed"


# ============================================================================
# Helpers
# ============================================================================


def normalize_email(email: Optional[str]) -> str:
    """Lower-case and trim an email; non-strings normalize to ''."""
    if not isinstance(email, str):
        return ""
    return email.lower().strip()


LINKED_METADATA_KEYS = ("ghl_contact_id",)


def linked_metadata(metadata: Optional[dict]) -> dict[str, str]:
    """Payload metadata entries that link the user to a CRM record.

    These are copied onto the auth user's user_metadata and the profile's
    preferences; every other metadata key is ignored.
    """
    linked: dict[str, str] = {}
    for key in LINKED_METADATA_KEYS:
        value = (metadata or {}).get(key)
        if isinstance(value, str) and value.strip():
            linked[key] = value.strip()
    return linked


def merge_preferences(existing: object, linked: dict[str, str]) -> dict:
    """Stored preferences with the linked entries written over them."""
    preferences = dict(existing) if isinstance(existing, dict) else {}
    preferences.update(linked)
    return preferences


def _first_non_empty(*candidates: Optional[str]) -> str:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return ""


def resolve_full_name(
    payload_name: Optional[str],
    existing_profile: Optional[dict],
    identity: AuthIdentity,
    normalized_email: str,
) -> str:
    """Pick the profile's full name.

    Order: payload name, stored profile name, auth metadata name,
    auth email, normalized email.
    """
    return _first_non_empty(
        payload_name.strip() if isinstance(payload_name, str) else None,
        (existing_profile or {}).get("full_name"),
        identity.full_name,
        identity.email,
        normalized_email,
    )


def _resolve_identity(
    email: str,
    full_name: Optional[str],
    linked: dict[str, str],
    rule: ProvisioningRule,
    request_id: Optional[str],
) -> tuple[Optional[AuthIdentity], bool]:
    """Return (identity, created). identity is None when nothing may be created."""
    try:
        identity = identity_db.find_auth_user_by_email(email)
    except Exception as e:
        logger.error(f"Auth user lookup failed for {mask_email(email)}: {e}")
        raise IdentityLookupError(str(e)) from e

    if identity:
        log_with_context(
            logger, logging.DEBUG, "Found existing auth user",
            request_id=request_id, user_id=identity.id,
        )
        return identity, False

    if not rule.create_if_missing:
        return None, False

    try:
        identity = identity_db.create_auth_user(email, full_name, user_metadata=linked or None)
    except Exception as e:
        logger.error(f"Failed to create auth user for {mask_email(email)}: {e}")
        raise IdentityCreationError(str(e)) from e

    return identity, True


def _sync_linked_metadata(
    identity: AuthIdentity,
    linked: dict[str, str],
    request_id: Optional[str],
) -> None:
    """Copy linked entries onto an existing auth user when they changed.

    The link is informational; a failed metadata write is logged and the
    event is still applied.
    """
    if all(identity.user_metadata.get(key) == value for key, value in linked.items()):
        return

    try:
        identity_db.update_user_metadata(identity.id, {**identity.user_metadata, **linked})
    except Exception as e:
        log_with_context(
            logger, logging.ERROR, f"Failed to update auth user metadata: {e}",
            request_id=request_id, user_id=identity.id,
        )


# ============================================================================
# Entry point
# ============================================================================


def provision_user(
    payload: ProvisioningPayload,
    request_id: Optional[str] = None,
) -> Union[ProvisioningResult, ProvisioningAccepted]:
    """
    Apply one lifecycle event to the matching user.

    Args:
        payload: Parsed webhook body
        request_id: Correlation id for log lines

    Returns:
        ProvisioningResult when the profile was written,
        ProvisioningAccepted when the email is unknown and the event may not create users

    Raises:
        ProvisioningValidationError: Missing email
        UnsupportedEventError: Event outside the LifecycleEvent enumeration
        IdentityLookupError, IdentityCreationError, ProfileStoreError, AuthSyncError:
            Upstream failures, in flow order
    """
    email = normalize_email(payload.email)
    if not email:
        raise ProvisioningValidationError("Email is required")

    event = parse_event(payload.event)
    rule = get_provisioning_rule(event)
    full_name_hint = (payload.full_name or "").strip() or None
    linked = linked_metadata(payload.metadata)

    log_with_context(
        logger, logging.INFO, "Provisioning event received",
        request_id=request_id, event=event.value, email=mask_email(email),
    )

    # Identity
    identity, created = _resolve_identity(email, full_name_hint, linked, rule, request_id)
    if identity is None:
        log_with_context(
            logger, logging.WARNING, "No auth user for event; nothing applied",
            request_id=request_id, event=event.value, email=mask_email(email),
        )
        return ProvisioningAccepted()

    if linked and not created:
        _sync_linked_metadata(identity, linked, request_id)

    # Existing profile
    try:
        existing_profile = profile_db.get_user_profile(identity.id)
    except Exception as e:
        logger.error(f"Failed to fetch profile {identity.id}: {e}")
        raise ProfileStoreError(str(e)) from e

    # Desired state
    full_name = resolve_full_name(payload.full_name, existing_profile, identity, email)
    role = resolve_role(rule, (existing_profile or {}).get("role"))
    active = rule.active

    # Persist
    record = {
        "id": identity.id,
        "full_name": full_name,
        "role": role.value,
        "active": active,
        "status_updated_by": None,
        "status_updated_at": datetime.now(UTC).isoformat(),
    }
    if linked:
        record["preferences"] = merge_preferences(
            (existing_profile or {}).get("preferences"), linked
        )
    try:
        profile_db.upsert_user_profile(record)
    except Exception as e:
        logger.error(f"Failed to upsert profile {identity.id}: {e}")
        raise ProfileStoreError(str(e)) from e

    log_with_context(
        logger, logging.INFO, "Profile upserted",
        request_id=request_id, user_id=identity.id, role=role.value, active=active,
        created=created,
    )

    # Ban flag, only after the profile is durable
    try:
        identity_db.set_ban_status(identity.id, rule.ban_action)
    except Exception as e:
        logger.error(
            f"Ban sync ({rule.ban_action.value}) failed for {identity.id} after profile write: {e}"
        )
        raise AuthSyncError(str(e)) from e

    log_with_context(
        logger, logging.INFO, "Provisioning complete",
        request_id=request_id, user_id=identity.id, ban_action=rule.ban_action.value,
    )

    return ProvisioningResult(
        user_id=identity.id,
        email=email,
        event=event.value,
        role=role,
        active=active,
        created=created,
    )
