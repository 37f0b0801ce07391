"""LLM field extraction and multi-source synthesis."""

from .facade import extract_and_synthesize, extract_pages
from .llm import ChatMessage, LLMClient, ToolCallResult, ToolDefinition
from .models import (
    DEFAULT_MODEL,
    Citation,
    ExtractedFieldValue,
    ExtractionConfig,
    ExtractionOutput,
    FieldDefinition,
    FieldMergeBucket,
    LLMUsage,
    MergeCandidate,
    PageExtractionResult,
    PageFieldExtraction,
    ValueGroup,
)
from .synthesis import (
    build_merge_buckets,
    check_source_hint_match,
    group_by_value,
    merge_field,
    select_best_group,
    synthesize_fields,
)

__all__ = [
    "DEFAULT_MODEL",
    "ChatMessage",
    "Citation",
    "ExtractedFieldValue",
    "ExtractionConfig",
    "ExtractionOutput",
    "FieldDefinition",
    "FieldMergeBucket",
    "LLMClient",
    "LLMUsage",
    "MergeCandidate",
    "PageExtractionResult",
    "PageFieldExtraction",
    "ToolCallResult",
    "ToolDefinition",
    "ValueGroup",
    "build_merge_buckets",
    "check_source_hint_match",
    "extract_and_synthesize",
    "extract_pages",
    "group_by_value",
    "merge_field",
    "select_best_group",
    "synthesize_fields",
]
