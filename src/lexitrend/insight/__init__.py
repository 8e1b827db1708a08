"""Keyword insight: models, model selection, prompts, generation workflow and the coordinator."""

from .coordinator import RequestCoordinator, estimate_tokens
from .models import EnhancedInsight, Insight, InsightContent, SearchMetadata, Source, StructuredInsight
from .parsing import fallback_confidence, parse_text_insight
from .selection import MODEL_IDS, SUPPORTED_MODELS, ModelTier, fingerprint, request_key, select_model, select_tier
from .workflow import AugmentedGenerationWorkflow, WorkflowRun, WorkflowState, extract_sources, generate_basic

__all__ = [
    "RequestCoordinator", "estimate_tokens",
    "Insight", "EnhancedInsight", "InsightContent", "StructuredInsight", "SearchMetadata", "Source",
    "parse_text_insight", "fallback_confidence",
    "ModelTier", "MODEL_IDS", "SUPPORTED_MODELS", "select_model", "select_tier", "fingerprint", "request_key",
    "AugmentedGenerationWorkflow", "WorkflowRun", "WorkflowState", "extract_sources", "generate_basic",
]
