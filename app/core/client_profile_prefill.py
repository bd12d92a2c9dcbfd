"""Pre-fill a tool's question sequence from a saved client profile.

Questions are answered strictly in order and matching stops at the first
question the profile cannot answer, so the remaining questions are always a
contiguous tail of the tool's sequence.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Protocol

from app.core.logging import get_logger

logger = get_logger(__name__)


class OrderedQuestion(Protocol):
    label: str
    order: int


@dataclass(frozen=True)
class QuestionFieldMapping:
    priority: int
    patterns: tuple[str, ...]
    field: str


# Checked by priority; the first mapping with a pattern inside the label decides
QUESTION_FIELD_MAPPINGS: tuple[QuestionFieldMapping, ...] = (
    QuestionFieldMapping(
        priority=1,
        patterns=("target audience", "audience", "who is the audience", "target market"),
        field="audience",
    ),
    QuestionFieldMapping(
        priority=2,
        patterns=("tone", "voice", "tone of voice", "writing style", "brand voice"),
        field="tone",
    ),
    QuestionFieldMapping(
        priority=3,
        patterns=("language", "what language", "preferred language"),
        field="language",
    ),
    QuestionFieldMapping(
        priority=4,
        patterns=("client name", "company name", "brand name", "business name"),
        field="name",
    ),
    QuestionFieldMapping(
        priority=5,
        patterns=("sample", "example", "writing sample", "style sample"),
        field="sample",
    ),
)


@dataclass
class PrefillResult:
    prefilled_answers: list[str] = field(default_factory=list)
    prefilled_questions: list[str] = field(default_factory=list)
    next_question_index: int = 0
    has_prefilled_data: bool = False


def find_field_mapping(question_label: str) -> Optional[QuestionFieldMapping]:
    """The highest-priority mapping whose pattern occurs in the label."""
    label = question_label.lower()
    for mapping in sorted(QUESTION_FIELD_MAPPINGS, key=lambda m: m.priority):
        if any(pattern in label for pattern in mapping.patterns):
            return mapping
    return None


def match_question_to_profile_field(
    question_label: str, client_profile: Mapping[str, Any]
) -> Optional[str]:
    """Answer one question from the profile, or None.

    Only the first matching mapping is consulted; an empty field there is a
    miss even if a lower-priority mapping would also match.
    """
    mapping = find_field_mapping(question_label)
    if mapping is None:
        logger.debug(f"Prefill: no field mapping for question '{question_label}'")
        return None

    value = client_profile.get(mapping.field)
    if isinstance(value, str) and value.strip():
        return value.strip()

    logger.debug(f"Prefill: question '{question_label}' maps to empty field '{mapping.field}'")
    return None


def prefill_questions_from_client_profile(
    questions: Iterable[OrderedQuestion],
    client_profile: Optional[Mapping[str, Any]],
) -> PrefillResult:
    """Answer the longest leading run of questions from the profile."""
    result = PrefillResult()
    ordered = sorted(questions or [], key=lambda q: q.order)

    if not client_profile or not ordered:
        return result

    for question in ordered:
        answer = match_question_to_profile_field(question.label, client_profile)
        if answer is None:
            break
        result.prefilled_answers.append(answer)
        result.prefilled_questions.append(question.label)

    result.next_question_index = len(result.prefilled_answers)
    result.has_prefilled_data = result.next_question_index > 0
    return result


def generate_context_welcome_message(
    tool_title: str,
    client_profile_name: str,
    prefilled_questions: list[str],
    prefilled_answers: list[str],
) -> str:
    """Opening chat message listing what was filled in from the profile."""
    if not prefilled_questions:
        return f"Hello! I'm ready to help you with {tool_title}. Let's get started."

    prefilled_list = "\n".join(
        f"• **{question}**: {answer}"
        for question, answer in zip(prefilled_questions, prefilled_answers)
    )

    return (
        f"Hello! I'm ready to help you with {tool_title}.\n\n"
        f'Based on your selected client profile "{client_profile_name}", '
        f"I've automatically filled in the following information:\n\n"
        f"{prefilled_list}\n\n"
        "This saves you time and ensures consistency with your client's requirements. "
        "Let's continue with the remaining questions."
    )


def generate_all_prefilled_message(tool_title: str, client_profile_name: str) -> str:
    """Opening chat message when the profile answered every question."""
    return (
        f'Perfect! I have all the information I need from your client profile "{client_profile_name}". '
        f"What would you like me to create for {client_profile_name} with {tool_title}?"
    )
