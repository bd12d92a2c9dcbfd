"""Pydantic schemas for AI tools, client profiles, and question pre-fill."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

ToolDataSource = Literal["supabase", "static"]


# ============================================================================
# Tools
# ============================================================================


class ToolQuestion(BaseModel):
    """One step of a tool's structured conversation."""
    id: str
    label: str
    type: str = "input"
    placeholder: Optional[str] = None
    required: bool = False
    order: int
    options: Optional[list[str]] = None


class DynamicTool(BaseModel):
    """An admin-defined AI tool."""
    id: str
    title: str
    category: str = "Other"
    description: str = ""
    active: bool = True
    featured: bool = False
    is_pro: bool = False
    primary_model: str = ""
    fallback_models: list[str] = Field(default_factory=list)
    # Blank when the tool came from the catalog view, which hides prompts
    prompt_instructions: Optional[str] = None
    knowledge_base_file_id: Optional[str] = None
    questions: list[ToolQuestion] = Field(default_factory=list)


class ToolListResponse(BaseModel):
    tools: list[DynamicTool]
    source: ToolDataSource


# ============================================================================
# Client profiles and pre-fill
# ============================================================================


class ClientProfile(BaseModel):
    """A saved client profile (stored in user preferences)."""
    id: Optional[str] = None
    name: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    def as_fields(self) -> dict[str, Any]:
        """Flatten into the field record the pre-fill matcher reads."""
        fields = dict(self.data)
        if self.name:
            fields["name"] = self.name
        return fields


class PrefillRequest(BaseModel):
    client_profile: Optional[ClientProfile] = None


class PrefillResponse(BaseModel):
    tool_id: str
    prefilled_answers: list[str]
    prefilled_questions: list[str]
    next_question_index: int
    has_prefilled_data: bool
    all_prefilled: bool
    welcome_message: str
