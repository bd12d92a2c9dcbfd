"""Tool catalog with cache and fallback sources.

Sources are tried in order until one yields tools:
1. tools table (admin view, includes prompts and inactive tools)
2. tool_catalog view (active tools, prompts hidden)
3. bundled static dataset (app/data/static_tools.json)

The result is cached in process until invalidate_cache() is called. Request
threads share one repository, so cache state is swapped under a lock and
readers work from the snapshot they were handed.
"""

import json
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_tools import DynamicTool, ToolDataSource
from app.db import tools as tools_db

logger = get_logger(__name__)

DEFAULT_STATIC_TOOLS_PATH = Path(__file__).resolve().parent.parent / "data" / "static_tools.json"


@dataclass
class StaticMetadata:
    search_summary: Optional[str] = None
    keywords: Optional[list[str]] = None


@dataclass
class SearchDocument:
    tool: DynamicTool
    text: str


@dataclass
class RepositoryResult:
    tools: list[DynamicTool]
    source: ToolDataSource


def load_static_tools(path: Path) -> tuple[list[DynamicTool], dict[str, StaticMetadata]]:
    """Parse the static dataset; questions without an order get their 1-based position."""
    raw_tools: list[dict[str, Any]] = json.loads(path.read_text(encoding="utf-8"))
    tools: list[DynamicTool] = []
    metadata: dict[str, StaticMetadata] = {}

    for raw in raw_tools:
        raw = dict(raw)
        search_summary = raw.pop("searchSummary", None)
        keywords = raw.pop("keywords", None)
        questions = [
            {**question, "order": question.get("order", index + 1)}
            for index, question in enumerate(raw.pop("questions", None) or [])
        ]
        tool = DynamicTool(**raw, questions=questions)
        if search_summary or keywords:
            metadata[tool.id] = StaticMetadata(search_summary=search_summary, keywords=keywords)
        tools.append(tool)

    return tools, metadata


class ToolRepository:
    """Process-wide tool cache. Use get_tool_repository()."""

    def __init__(self, static_path: Optional[Path] = None):
        self._lock = threading.Lock()
        self._cache: Optional[list[DynamicTool]] = None
        self._cache_source: ToolDataSource = "static"
        self._search_documents: list[SearchDocument] = []
        self._static_tools, self._static_metadata = load_static_tools(
            static_path or DEFAULT_STATIC_TOOLS_PATH
        )
        self._rebuild_search_documents(self._static_tools, "static")

    # ------------------------------------------------------------------
    # Search documents
    # ------------------------------------------------------------------

    def _compose_search_text(self, tool: DynamicTool, source: ToolDataSource) -> str:
        question_labels = " ".join(question.label for question in tool.questions)
        metadata = self._static_metadata.get(tool.id)
        extra = ""
        if metadata:
            extra = " ".join(
                part for part in [metadata.search_summary, *(metadata.keywords or [])] if part
            )

        parts = [
            tool.title,
            tool.category,
            tool.description,
            tool.prompt_instructions or "",
            question_labels,
            extra,
            "" if source == "supabase" else "local demo dataset",
        ]
        return " ".join(part for part in parts if part).lower()

    def _rebuild_search_documents(self, tools: list[DynamicTool], source: ToolDataSource) -> None:
        self._search_documents = [
            SearchDocument(tool=tool, text=self._compose_search_text(tool, source))
            for tool in tools
        ]

    def _store(self, tools: list[DynamicTool], source: ToolDataSource) -> RepositoryResult:
        with self._lock:
            self._cache = tools
            self._cache_source = source
            self._rebuild_search_documents(tools, source)
        return RepositoryResult(tools=tools, source=source)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_tools(self, allow_stale: bool = True) -> RepositoryResult:
        """Return cached tools, or load them from the first source that answers."""
        with self._lock:
            if self._cache is not None and allow_stale:
                return RepositoryResult(tools=self._cache, source=self._cache_source)

        # Fetch outside the lock; concurrent loaders each store a full result
        admin_error: Optional[str] = None
        try:
            tools = tools_db.list_all_tools()
            if tools:
                return self._store(tools, "supabase")
            admin_error = "No tools returned from tools table"
            logger.warning(f"ToolRepository: {admin_error}, trying tool_catalog")
        except Exception as e:
            admin_error = str(e)
            logger.warning(f"ToolRepository: tools table fetch failed ({e}), trying tool_catalog")

        try:
            tools = tools_db.list_catalog_tools()
            logger.info(
                f"ToolRepository: loaded {len(tools)} tools from tool_catalog "
                f"after admin fetch failure: {admin_error}"
            )
            return self._store(tools, "supabase")
        except Exception as e:
            logger.warning(f"ToolRepository: tool_catalog fetch failed ({e}), using static dataset")

        return self._store(self._static_tools, "static")

    def get_searchable_tools(self, allow_stale: bool = True) -> tuple[RepositoryResult, list[SearchDocument]]:
        result = self.get_tools(allow_stale=allow_stale)
        with self._lock:
            if not self._search_documents:
                self._rebuild_search_documents(result.tools, result.source)
            return result, self._search_documents

    def search_tools(self, query: str) -> RepositoryResult:
        """Tools whose search text contains every whitespace-separated query token."""
        result, documents = self.get_searchable_tools()
        tokens = query.lower().split()
        if not tokens:
            return result
        matches = [doc.tool for doc in documents if all(token in doc.text for token in tokens)]
        return RepositoryResult(tools=matches, source=result.source)

    def get_tool_by_id(self, tool_id: str) -> Optional[DynamicTool]:
        """Look in the cache (loading it if needed), then in the static dataset."""
        tools = self.get_tools().tools

        for tool in tools:
            if tool.id == tool_id:
                return tool

        return next((tool for tool in self._static_tools if tool.id == tool_id), None)

    def get_metadata(self, tool_id: str) -> Optional[StaticMetadata]:
        return self._static_metadata.get(tool_id)

    def invalidate_cache(self) -> None:
        with self._lock:
            self._cache = None


@lru_cache(maxsize=1)
def get_tool_repository() -> ToolRepository:
    """Get the process-wide tool repository (cached singleton)."""
    static_path = get_settings().STATIC_TOOLS_PATH
    return ToolRepository(Path(static_path) if static_path else None)
