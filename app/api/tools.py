"""API endpoints for the tool catalog and question pre-fill."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth_middleware import AuthContext, require_admin, require_auth
from app.core.client_profile_prefill import (
    generate_all_prefilled_message,
    generate_context_welcome_message,
    prefill_questions_from_client_profile,
)
from app.core.logging import get_logger
from app.core.schemas_tools import (
    DynamicTool,
    PrefillRequest,
    PrefillResponse,
    ToolListResponse,
)
from app.core.tool_repository import get_tool_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/tools")


def _visible_to(tool: DynamicTool, auth: AuthContext) -> Optional[DynamicTool]:
    """The tool as this user may see it, or None when it is hidden.

    Admins see every tool as stored. Everyone else sees only active tools,
    without prompts or model settings (the tool_catalog view of a tool).
    """
    if auth.is_admin:
        return tool
    if not tool.active:
        return None
    return tool.model_copy(
        update={"prompt_instructions": "", "primary_model": "", "fallback_models": []}
    )


def _get_visible_tool(tool_id: str, auth: AuthContext) -> DynamicTool:
    tool = get_tool_repository().get_tool_by_id(tool_id)
    visible = _visible_to(tool, auth) if tool else None
    if visible is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    return visible


@router.get("", response_model=ToolListResponse)
def list_tools(
    q: str | None = Query(None, description="Keyword search over title, description and questions"),
    auth: AuthContext = Depends(require_auth),
):
    """List tools. Pro tools are included for everyone (shown locked in the UI)."""
    repository = get_tool_repository()
    result = repository.search_tools(q) if q else repository.get_tools()
    return ToolListResponse(
        tools=[
            visible for visible in (_visible_to(tool, auth) for tool in result.tools) if visible
        ],
        source=result.source,
    )


@router.post("/cache/invalidate")
def invalidate_tool_cache(auth: AuthContext = Depends(require_admin)):
    """Drop the cached catalog so the next read goes back to the database."""
    get_tool_repository().invalidate_cache()
    logger.info(f"Tool cache invalidated by {auth.user_id}")
    return {"status": "invalidated"}


@router.get("/{tool_id}", response_model=DynamicTool)
def get_tool(tool_id: str, auth: AuthContext = Depends(require_auth)):
    """Get a single tool."""
    return _get_visible_tool(tool_id, auth)


@router.post("/{tool_id}/prefill", response_model=PrefillResponse)
def prefill_tool_questions(
    tool_id: str,
    body: PrefillRequest,
    auth: AuthContext = Depends(require_auth),
):
    """
    Answer a tool's leading questions from a client profile.

    Used when a chat starts with a client profile selected: the UI skips to
    next_question_index and shows welcome_message as the first assistant turn.
    """
    tool = _get_visible_tool(tool_id, auth)
    if tool.is_pro and not auth.has_pro_access:
        raise HTTPException(status_code=403, detail="Pro subscription required")

    profile = body.client_profile
    result = prefill_questions_from_client_profile(
        tool.questions, profile.as_fields() if profile else None
    )

    all_prefilled = bool(tool.questions) and result.next_question_index == len(tool.questions)
    profile_name = profile.name if profile else ""
    if all_prefilled:
        welcome_message = generate_all_prefilled_message(tool.title, profile_name)
    else:
        welcome_message = generate_context_welcome_message(
            tool.title,
            profile_name,
            result.prefilled_questions,
            result.prefilled_answers,
        )

    return PrefillResponse(
        tool_id=tool.id,
        prefilled_answers=result.prefilled_answers,
        prefilled_questions=result.prefilled_questions,
        next_question_index=result.next_question_index,
        has_prefilled_data=result.has_prefilled_data,
        all_prefilled=all_prefilled,
        welcome_message=welcome_message,
    )
