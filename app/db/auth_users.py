"""Identity operations against the Supabase auth admin API."""

from typing import Any, Optional

from app.core.config import get_settings
from app.core.logging import get_logger, mask_email
from app.core.provisioning_rules import BanAction
from app.core.schemas_provisioning import AuthIdentity
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

# GoTrue has no "forever"; 100 years is the conventional indefinite ban
INDEFINITE_BAN_DURATION = "876000h"
CLEAR_BAN_DURATION = "none"


def _to_identity(user: Any) -> AuthIdentity:
    return AuthIdentity(
        id=str(user.id),
        email=user.email,
        user_metadata=dict(user.user_metadata or {}),
    )


def find_auth_user_by_email(email: str) -> Optional[AuthIdentity]:
    """Find the auth user with this (already normalized) email.

    The admin API only lists users page by page, so pages are scanned until a
    match or a short page.
    """
    client = get_supabase()
    page_size = get_settings().AUTH_LOOKUP_PAGE_SIZE
    page = 1

    while True:
        users = client.auth.admin.list_users(page=page, per_page=page_size)
        for user in users:
            if (user.email or "").strip().lower() == email:
                return _to_identity(user)
        if len(users) < page_size:
            return None
        page += 1


def create_auth_user(
    email: str,
    full_name: Optional[str] = None,
    user_metadata: Optional[dict[str, Any]] = None,
) -> AuthIdentity:
    """Create a pre-confirmed auth user."""
    client = get_supabase()
    metadata: dict[str, Any] = dict(user_metadata or {})
    if full_name:
        metadata["full_name"] = full_name

    response = client.auth.admin.create_user({
        "email": email,
        "email_confirm": True,
        "user_metadata": metadata,
    })
    if not response or not response.user:
        raise RuntimeError("Auth admin API returned no user")

    logger.info(f"Created auth user {response.user.id} for {mask_email(email)}")
    return _to_identity(response.user)


def set_ban_status(user_id: str, action: BanAction) -> None:
    """Apply a ban action to an auth user. BanAction.NONE makes no call."""
    if action == BanAction.NONE:
        return

    duration = INDEFINITE_BAN_DURATION if action == BanAction.BAN else CLEAR_BAN_DURATION
    client = get_supabase()
    client.auth.admin.update_user_by_id(user_id, {"ban_duration": duration})


def update_user_metadata(user_id: str, user_metadata: dict[str, Any]) -> None:
    """Replace an auth user's user_metadata."""
    client = get_supabase()
    client.auth.admin.update_user_by_id(user_id, {"user_metadata": user_metadata})
