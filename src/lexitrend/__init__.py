"""LexiTrend: keyword insight engine.

Explains short terms (slang, memes, acronyms) in the reader's language,
optionally grounded with live web search.

Example:
    >>> from lexitrend import build_app
    >>> app = build_app()
    >>> insight = await app.coordinator.analyze("rizz", "en")
    >>> insight.definition
"""

from .app import AppContext, build_app
from .foundation.errors import ErrorKind, LexiTrendError
from .insight import EnhancedInsight, Insight, RequestCoordinator

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "build_app", "AppContext",
    "RequestCoordinator", "Insight", "EnhancedInsight",
    "ErrorKind", "LexiTrendError",
]
