"""Lifecycle event → profile state rules.

Billing/CRM platforms report subscription transitions as one of five
lifecycle events. Each event maps to exactly one ProvisioningRule describing
the role, active flag, ban action, and whether an unknown email may be
provisioned as a new account.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class LifecycleEvent(str, Enum):
    """Billing lifecycle events accepted by the provisioning webhooks."""
    PRO_SUBSCRIPTION_PURCHASE = "pro_subscription_purchase"
    TRIAL_STARTED = "trial_started"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_RECOVERED = "payment_recovered"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"


class BanAction(str, Enum):
    """What to do with the auth-level ban flag after the profile is written."""
    BAN = "ban"
    UNBAN = "unban"
    NONE = "none"


class ProfileRole(str, Enum):
    """Roles stored on user_profiles.role."""
    USER = "user"
    PRO = "pro"
    ADMIN = "admin"


@dataclass(frozen=True)
class ProvisioningRule:
    """Desired profile state for one lifecycle event.

    role=None leaves the stored role unchanged.
    """
    active: bool
    create_if_missing: bool
    ban_action: BanAction
    role: Optional[ProfileRole] = None


class UnsupportedEventError(ValueError):
    """Raised when an event name is not one of the LifecycleEvent values."""

    def __init__(self, event: object):
        self.event = event
        self.supported_events = supported_events()
        super().__init__(f"Unsupported event: {event}")


EVENT_RULES: Mapping[LifecycleEvent, ProvisioningRule] = MappingProxyType({
    LifecycleEvent.PRO_SUBSCRIPTION_PURCHASE: ProvisioningRule(
        role=ProfileRole.PRO,
        active=True,
        create_if_missing=True,
        ban_action=BanAction.UNBAN,
    ),
    LifecycleEvent.TRIAL_STARTED: ProvisioningRule(
        role=ProfileRole.PRO,
        active=True,
        create_if_missing=True,
        ban_action=BanAction.UNBAN,
    ),
    LifecycleEvent.PAYMENT_FAILED: ProvisioningRule(
        active=False,
        create_if_missing=False,
        ban_action=BanAction.BAN,
    ),
    # Recovery never creates: the account is expected to exist from an earlier event
    LifecycleEvent.PAYMENT_RECOVERED: ProvisioningRule(
        role=ProfileRole.PRO,
        active=True,
        create_if_missing=False,
        ban_action=BanAction.UNBAN,
    ),
    LifecycleEvent.SUBSCRIPTION_CANCELLED: ProvisioningRule(
        active=False,
        create_if_missing=False,
        ban_action=BanAction.BAN,
    ),
})


def supported_events() -> list[str]:
    """Event names in declaration order."""
    return [event.value for event in LifecycleEvent]


def parse_event(event: object) -> LifecycleEvent:
    """Coerce a raw event name into a LifecycleEvent.

    Raises:
        UnsupportedEventError: If the value is not a known event
    """
    if isinstance(event, LifecycleEvent):
        return event
    if not isinstance(event, str):
        raise UnsupportedEventError(event)
    try:
        return LifecycleEvent(event)
    except ValueError:
        raise UnsupportedEventError(event) from None


def get_provisioning_rule(event: object) -> ProvisioningRule:
    """Look up the rule for a lifecycle event.

    Raises:
        UnsupportedEventError: If the value is not a known event
    """
    return EVENT_RULES[parse_event(event)]


def resolve_role(rule: ProvisioningRule, existing_role: Optional[str]) -> ProfileRole:
    """Compute the role to persist.

    An existing admin is never downgraded. When the rule leaves the role
    unchanged, the stored role is kept (or 'user' for a new profile).
    """
    if rule.role is not None:
        if existing_role == ProfileRole.ADMIN.value:
            return ProfileRole.ADMIN
        return rule.role

    if existing_role:
        try:
            return ProfileRole(existing_role)
        except ValueError:
            return ProfileRole.USER
    return ProfileRole.USER
