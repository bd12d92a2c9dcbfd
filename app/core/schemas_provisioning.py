"""Pydantic schemas for user provisioning webhooks."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.provisioning_rules import ProfileRole


# ============================================================================
# Inbound payloads
# ============================================================================


class ProvisioningPayload(BaseModel):
    """Body of a provisioning webhook call.

    `email` and `event` are validated by the provisioning flow itself so the
    caller gets the specific 400 message for each.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    event: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


# ============================================================================
# Identity records (Supabase auth users)
# ============================================================================


class AuthIdentity(BaseModel):
    """The parts of an auth user the provisioning flow needs."""
    id: str
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def full_name(self) -> Optional[str]:
        value = self.user_metadata.get("full_name")
        return value if isinstance(value, str) else None


# ============================================================================
# Results
# ============================================================================


class ProvisioningResult(BaseModel):
    """Profile state written for a fully processed event."""
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["ok"] = "ok"
    user_id: str = Field(alias="userId")
    email: str
    event: str
    role: ProfileRole
    active: bool
    created: bool = Field(default=False, exclude=True)


class ProvisioningAccepted(BaseModel):
    """Event acknowledged but nothing to provision (unknown email)."""
    status: Literal["accepted"] = "accepted"
    message: str = "User not found; no changes applied"
