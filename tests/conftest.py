"""Pytest configuration and fixtures."""

import os
from unittest.mock import patch

import pytest

# Set before any app module builds Settings
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
os.environ["ARTEMO_ENV"] = "test"
os.environ["MAKE_WEBHOOK_SECRET"] = "make-test-secret"
os.environ["GHL_WEBHOOK_SECRET"] = "ghl-test-secret"
os.environ["GHL_PRO_PRODUCT_IDS"] = "prod_pro_monthly,prod_pro_annual"
os.environ["GHL_TRIAL_PRODUCT_IDS"] = "prod_trial"

from app.core.config import get_settings  # noqa: E402
from app.core.tool_repository import get_tool_repository  # noqa: E402
from tests.fakes.fake_identity import FakeIdentityBackend  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_caches():
    """Settings and the tool repository are process-wide caches; isolate tests."""
    get_settings.cache_clear()
    get_tool_repository.cache_clear()
    yield
    get_settings.cache_clear()
    get_tool_repository.cache_clear()


@pytest.fixture
def identity_backend():
    """Route the provisioning flow's identity and profile calls to an in-memory fake."""
    backend = FakeIdentityBackend()
    with patch("app.db.auth_users.find_auth_user_by_email", side_effect=backend.find_auth_user_by_email), \
         patch("app.db.auth_users.create_auth_user", side_effect=backend.create_auth_user), \
         patch("app.db.auth_users.update_user_metadata", side_effect=backend.update_user_metadata), \
         patch("app.db.auth_users.set_ban_status", side_effect=backend.set_ban_status), \
         patch("app.db.user_profiles.get_user_profile", side_effect=backend.get_user_profile), \
         patch("app.db.user_profiles.upsert_user_profile", side_effect=backend.upsert_user_profile):
        yield backend
