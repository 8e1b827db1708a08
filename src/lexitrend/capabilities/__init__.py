"""External capabilities: generation, search and the messaging boundary.

Protocols define what the engine consumes; GeminiClient and TavilyClient are
the concrete httpx clients; BackgroundHandler/MessagingSearchClient keep the
search key on the background side of a message transport.
"""

from .gemini import GeminiClient, to_gemini_schema
from .messaging import BackgroundHandler, MessageType, MessagingSearchClient, Transport
from .protocols import (
    CredentialProvider,
    GenerationCapability,
    SearchCapability,
    SearchDepth,
    SearchKeyValidator,
    SearchResponse,
    SearchResult,
    ToolInvocation,
    ToolRunResult,
)
from .tavily import TavilyClient

__all__ = [
    "GenerationCapability", "SearchCapability", "SearchKeyValidator", "CredentialProvider", "SearchDepth",
    "SearchResponse", "SearchResult", "ToolInvocation", "ToolRunResult",
    "GeminiClient", "to_gemini_schema", "TavilyClient",
    "BackgroundHandler", "MessagingSearchClient", "MessageType", "Transport",
]
