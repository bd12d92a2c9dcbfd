"""Database operations for tools and their questions."""

from typing import Any

from app.core.schemas_tools import DynamicTool, ToolQuestion
from app.db.supabase_client import get_supabase

TOOL_SELECT = "*, category:categories(*), questions:tool_questions(*)"


def _row_to_tool(row: dict[str, Any], include_prompt: bool) -> DynamicTool:
    """Map a tools/tool_catalog row (with embedded relations) to a DynamicTool."""
    category = row.get("category") or {}
    questions = sorted(row.get("questions") or [], key=lambda q: q.get("question_order") or 0)

    return DynamicTool(
        id=str(row["id"]),
        title=row.get("title") or "",
        category=category.get("name") or "Other",
        description=row.get("description") or "",
        active=bool(row.get("active", True)),
        featured=bool(row.get("featured", False)),
        is_pro=bool(row.get("is_pro") or False),
        primary_model=(row.get("primary_model") or "") if include_prompt else "",
        fallback_models=(row.get("fallback_models") or []) if include_prompt else [],
        prompt_instructions=row.get("prompt_instructions") if include_prompt else "",
        knowledge_base_file_id=row.get("knowledge_base_file_id"),
        questions=[
            ToolQuestion(
                id=str(q["id"]),
                label=q.get("label") or "",
                type=q.get("type") or "input",
                placeholder=q.get("placeholder"),
                required=bool(q.get("required", False)),
                order=q.get("question_order") or 0,
                options=q.get("options"),
            )
            for q in questions
        ],
    )


def list_all_tools() -> list[DynamicTool]:
    """All tools including inactive ones, with prompts (service role view)."""
    supabase = get_supabase()
    result = (
        supabase.table("tools")
        .select(TOOL_SELECT)
        .order("created_at", desc=True)
        .execute()
    )
    return [_row_to_tool(row, include_prompt=True) for row in result.data or []]


def list_catalog_tools() -> list[DynamicTool]:
    """Active tools from the tool_catalog view (no prompt content)."""
    supabase = get_supabase()
    result = (
        supabase.table("tool_catalog")
        .select(TOOL_SELECT)
        .order("created_at", desc=True)
        .execute()
    )
    return [_row_to_tool(row, include_prompt=False) for row in result.data or []]
