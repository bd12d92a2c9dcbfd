"""Tests for the tool catalog and pre-fill endpoints."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.core.auth_middleware import AuthContext, require_auth
from app.core.provisioning_rules import ProfileRole
from app.core.schemas_tools import DynamicTool
from app.main import app

client = TestClient(app)

AD_WRITER_ID = "550e8400-e29b-41d4-a716-446655440101"
BLOG_ID = "550e8400-e29b-41d4-a716-446655440105"


def _as(role: ProfileRole, active: bool = True):
    app.dependency_overrides[require_auth] = lambda: AuthContext(
        user_id="user-1", email="u@x.com", token="jwt", role=role, active=active
    )


@pytest.fixture(autouse=True)
def static_catalog():
    """Serve the bundled dataset and reset auth overrides."""
    with patch("app.db.tools.list_all_tools", side_effect=RuntimeError("down")), \
         patch("app.db.tools.list_catalog_tools", side_effect=RuntimeError("down")):
        yield
    app.dependency_overrides.clear()


class TestListTools:
    def test_requires_auth(self):
        response = client.get("/v1/tools")
        assert response.status_code == 401

    def test_lists_static_tools(self):
        _as(ProfileRole.USER)

        response = client.get("/v1/tools")

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "static"
        assert AD_WRITER_ID in [tool["id"] for tool in body["tools"]]

    def test_prompts_hidden_from_non_admins(self):
        _as(ProfileRole.PRO)

        tools = client.get("/v1/tools").json()["tools"]

        assert all(tool["prompt_instructions"] == "" for tool in tools)

    def test_admins_see_prompts(self):
        _as(ProfileRole.ADMIN)

        tools = client.get("/v1/tools").json()["tools"]

        assert any(tool["prompt_instructions"] for tool in tools)

    def test_search(self):
        _as(ProfileRole.USER)

        body = client.get("/v1/tools", params={"q": "blog seo"}).json()

        assert [tool["id"] for tool in body["tools"]] == [BLOG_ID]


class TestGetTool:
    def test_found(self):
        _as(ProfileRole.USER)

        response = client.get(f"/v1/tools/{AD_WRITER_ID}")

        assert response.status_code == 200
        assert response.json()["title"] == "Ad Writer (HAO)"

    def test_not_found(self):
        _as(ProfileRole.USER)

        response = client.get("/v1/tools/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"detail": "Tool not found"}


class TestPrefill:
    def test_partial_prefill(self):
        _as(ProfileRole.PRO)

        response = client.post(
            f"/v1/tools/{BLOG_ID}/prefill",
            json={
                "client_profile": {
                    "id": "cp-1",
                    "name": "Acme",
                    "data": {"audience": "Startup founders", "tone": "Friendly"},
                }
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tool_id"] == BLOG_ID
        assert body["prefilled_answers"] == ["Startup founders", "Friendly"]
        assert body["next_question_index"] == 2
        assert body["has_prefilled_data"] is True
        assert body["all_prefilled"] is False
        assert "• **Who is your target audience?**: Startup founders" in body["welcome_message"]

    def test_no_profile(self):
        _as(ProfileRole.USER)

        body = client.post(f"/v1/tools/{AD_WRITER_ID}/prefill", json={}).json()

        assert body["next_question_index"] == 0
        assert body["has_prefilled_data"] is False
        assert body["welcome_message"] == (
            "Hello! I'm ready to help you with Ad Writer (HAO). Let's get started."
        )

    def test_all_questions_prefilled(self, tmp_path, monkeypatch):
        path = tmp_path / "tools.json"
        path.write_text(
            '[{"id": "t1", "title": "Quick Post", "questions": ['
            '{"id": "q1", "label": "Target audience"}, {"id": "q2", "label": "Tone of voice"}]}]'
        )
        monkeypatch.setenv("STATIC_TOOLS_PATH", str(path))
        _as(ProfileRole.USER)

        body = client.post(
            "/v1/tools/t1/prefill",
            json={"client_profile": {"name": "Acme", "data": {"audience": "Devs", "tone": "Dry"}}},
        ).json()

        assert body["all_prefilled"] is True
        assert body["welcome_message"] == (
            'Perfect! I have all the information I need from your client profile "Acme". '
            "What would you like me to create for Acme with Quick Post?"
        )

    def test_pro_tool_requires_pro_access(self):
        _as(ProfileRole.USER)

        response = client.post(f"/v1/tools/{BLOG_ID}/prefill", json={})

        assert response.status_code == 403
        assert response.json() == {"detail": "Pro subscription required"}

    def test_unknown_tool(self):
        _as(ProfileRole.PRO)

        response = client.post("/v1/tools/nope/prefill", json={})

        assert response.status_code == 404


class TestInactiveTools:
    @pytest.fixture(autouse=True)
    def database_catalog(self):
        tools = [
            DynamicTool(id="t-on", title="Live Tool", active=True, primary_model="claude-x",
                        fallback_models=["claude-y"], prompt_instructions="live prompt"),
            DynamicTool(id="t-off", title="Retired Tool", active=False, primary_model="claude-x",
                        prompt_instructions="old prompt"),
        ]
        with patch("app.db.tools.list_all_tools", return_value=tools):
            yield

    def test_users_do_not_see_inactive_tools(self):
        _as(ProfileRole.USER)

        body = client.get("/v1/tools").json()

        assert body["source"] == "supabase"
        assert [tool["id"] for tool in body["tools"]] == ["t-on"]

    def test_model_settings_hidden_from_non_admins(self):
        _as(ProfileRole.PRO)

        tool = client.get("/v1/tools").json()["tools"][0]

        assert tool["primary_model"] == ""
        assert tool["fallback_models"] == []
        assert tool["prompt_instructions"] == ""

    def test_search_skips_inactive_tools(self):
        _as(ProfileRole.USER)

        body = client.get("/v1/tools", params={"q": "tool"}).json()

        assert [tool["id"] for tool in body["tools"]] == ["t-on"]

    def test_inactive_tool_is_not_found_for_users(self):
        _as(ProfileRole.PRO)

        assert client.get("/v1/tools/t-off").status_code == 404
        assert client.post("/v1/tools/t-off/prefill", json={}).status_code == 404

    def test_admins_see_everything(self):
        _as(ProfileRole.ADMIN)

        tools = {tool["id"]: tool for tool in client.get("/v1/tools").json()["tools"]}

        assert set(tools) == {"t-on", "t-off"}
        assert tools["t-off"]["primary_model"] == "claude-x"
        assert tools["t-on"]["fallback_models"] == ["claude-y"]
        assert client.get("/v1/tools/t-off").status_code == 200


class TestCacheInvalidation:
    def test_admin_only(self):
        _as(ProfileRole.PRO)

        response = client.post("/v1/tools/cache/invalidate")

        assert response.status_code == 403

    def test_admin_invalidates(self):
        _as(ProfileRole.ADMIN)

        response = client.post("/v1/tools/cache/invalidate")

        assert response.status_code == 200
        assert response.json() == {"status": "invalidated"}


def test_inactive_account_is_rejected():
    app.dependency_overrides.clear()
    with patch("app.core.auth_middleware.get_user_profile", return_value={"role": "pro", "active": False}), \
         patch("app.db.supabase_client.get_supabase") as mock_supabase:
        mock_supabase.return_value.auth.get_user.return_value.user.id = "user-1"
        mock_supabase.return_value.auth.get_user.return_value.user.email = "u@x.com"

        response = client.get("/v1/tools", headers={"Authorization": "Bearer jwt"})

    assert response.status_code == 403
    assert response.json() == {"detail": "Account is inactive"}
