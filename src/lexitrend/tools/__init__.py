"""Tools the generation capability may call."""

from .base import BaseTool, ToolMetadata
from .search import SEARCH_TOOL_NAME, SearchParams, WebSearchTool

__all__ = ["BaseTool", "ToolMetadata", "WebSearchTool", "SearchParams", "SEARCH_TOOL_NAME"]
