"""Tests for GoHighLevel payload extraction and lifecycle classification."""

import pytest

from app.core.ghl_events import (
    IGNORE,
    determine_lifecycle_action,
    extract_contact,
    extract_string,
    extract_tags,
    get_path,
    parse_delivery,
)
from app.core.provisioning_rules import LifecycleEvent

PRO_IDS = {"prod_pro"}
TRIAL_IDS = {"prod_trial"}


def _classify(event_type=None, product_id=None, tags=()):
    return determine_lifecycle_action(
        event_type=event_type,
        product_id=product_id,
        tags=set(tags),
        pro_product_ids=PRO_IDS,
        trial_product_ids=TRIAL_IDS,
    )


class TestExtraction:
    def test_get_path(self):
        payload = {"contact": {"email": "a@x.com"}}
        assert get_path(payload, ["contact", "email"]) == "a@x.com"
        assert get_path(payload, ["contact", "phone"]) is None
        assert get_path("flat", ["contact"]) is None

    def test_extract_string_skips_blank_values(self):
        payload = {"event_id": "  ", "eventId": " evt_1 "}
        assert extract_string(payload, ["event_id", "eventId"]) == "evt_1"

    def test_extract_string_ignores_non_strings(self):
        assert extract_string({"id": 12}, ["id"]) is None

    def test_tags_from_list_and_comma_string(self):
        payload = {"tags": ["Pro Member", 7], "contact": {"tags": "VIP, trial-user ,"}}
        assert extract_tags(payload) == {"pro member", "vip", "trial-user"}

    def test_contact_name_from_first_and_last(self):
        contact = extract_contact(
            {"contact": {"email": "a@x.com", "id": "c1", "firstName": "Ada", "last_name": "Lovelace"}}
        )
        assert contact.email == "a@x.com"
        assert contact.id == "c1"
        assert contact.name == "Ada Lovelace"

    def test_contact_full_name_wins(self):
        contact = extract_contact({"contact": {"name": "Grace Hopper", "first_name": "G"}})
        assert contact.name == "Grace Hopper"

    def test_contact_without_name(self):
        assert extract_contact({"email": "a@x.com"}).name is None

    def test_parse_delivery(self):
        delivery = parse_delivery(
            {
                "eventId": "evt_9",
                "type": "Payment_Failed",
                "product": {"id": "prod_pro"},
                "customer": {"email": "c@x.com", "id": "cust_1"},
                "tags": ["x"],
            }
        )
        assert delivery.event_id == "evt_9"
        assert delivery.event_type == "payment_failed"
        assert delivery.product_id == "prod_pro"
        assert delivery.contact.email == "c@x.com"
        assert delivery.contact.id == "cust_1"
        assert delivery.tags == {"x"}

    def test_parse_delivery_from_meta(self):
        delivery = parse_delivery({"meta": {"event_id": "m1", "event": "trial", "product_id": "p"}})
        assert (delivery.event_id, delivery.event_type, delivery.product_id) == ("m1", "trial", "p")


class TestClassification:
    def test_nothing_actionable(self):
        action = _classify(tags=["pro"])
        assert action.event is None
        assert action.action == IGNORE
        assert action.reason == "No actionable event type or product id provided."

    def test_pro_product_id(self):
        action = _classify(product_id="prod_pro", event_type="subscription_cancelled")
        assert action.event == LifecycleEvent.PRO_SUBSCRIPTION_PURCHASE
        assert action.reason == "Matched pro product id prod_pro"

    def test_trial_product_id(self):
        assert _classify(product_id="prod_trial").event == LifecycleEvent.TRIAL_STARTED

    @pytest.mark.parametrize(
        "event_type,expected",
        [
            ("trial_started", LifecycleEvent.TRIAL_STARTED),
            ("invoice.payment_failed", LifecycleEvent.PAYMENT_FAILED),
            ("payment_success", LifecycleEvent.PAYMENT_RECOVERED),
            ("payment.paid", LifecycleEvent.PAYMENT_RECOVERED),
            ("payment_recovered", LifecycleEvent.PAYMENT_RECOVERED),
            ("account_reactivated", LifecycleEvent.PAYMENT_RECOVERED),
            ("subscription_cancelled", LifecycleEvent.SUBSCRIPTION_CANCELLED),
            ("order_canceled", LifecycleEvent.SUBSCRIPTION_CANCELLED),
        ],
    )
    def test_event_type_keywords(self, event_type, expected):
        assert _classify(event_type=event_type).event == expected

    def test_trial_keyword_beats_payment_keywords(self):
        assert _classify(event_type="trial_payment_failed").event == LifecycleEvent.TRIAL_STARTED

    def test_payment_success_reason(self):
        action = _classify(event_type="payment_success")
        assert action.reason == "Payment success event without specific product match: payment_success"

    def test_unknown_product_falls_back_to_event_type(self):
        assert _classify(event_type="payment_failed", product_id="prod_other").event == LifecycleEvent.PAYMENT_FAILED

    def test_tags_are_last_resort(self):
        assert _classify(event_type="contact_update", tags=["pro-member"]).event == LifecycleEvent.PRO_SUBSCRIPTION_PURCHASE
        assert _classify(event_type="contact_update", tags=["free-trial"]).event == LifecycleEvent.TRIAL_STARTED

    def test_no_rule_matched(self):
        action = _classify(event_type="contact_update", tags=["newsletter"])
        assert action.event is None
        assert action.reason == "No lifecycle transition rules matched."
