"""Data models for field schemas, page extractions and merged field values."""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

FieldType = Literal["string", "number", "boolean", "enum", "string[]"]
FieldStatus = Literal["auto", "needs_review", "unknown", "user_edited"]

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class FieldValidation(BaseModel):
    regex: Optional[str] = None
    min_len: Optional[int] = None
    max_len: Optional[int] = None


class FieldDefinition(BaseModel):
    """One field of a tenant's schema version."""

    key: str
    label: str = ""
    type: FieldType = "string"
    required: bool = False
    instructions: str = ""
    enum_options: Optional[List[str]] = None
    validation: Optional[FieldValidation] = None
    confidence_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    source_hints: List[str] = Field(default_factory=list)


class Citation(BaseModel):
    url: str
    snippet: str
    page_title: Optional[str] = None
    retrieved_at: str


class ExtractedFieldValue(BaseModel):
    """Final value of one field after synthesis."""

    key: str
    value: Any = None
    confidence: float = Field(default=0, ge=0, le=1)
    citations: List[Citation] = Field(default_factory=list)
    status: FieldStatus = "unknown"
    reason: Optional[str] = None


class LLMUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: "LLMUsage") -> "LLMUsage":
        return LLMUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


class PageFieldExtraction(BaseModel):
    """A single field value found on one page, before synthesis."""

    key: str
    value: Any
    confidence: float
    snippet: str
    reason: Optional[str] = None


class PageExtractionResult(BaseModel):
    url: str
    page_title: str = ""
    fetched_at: str
    fields: List[PageFieldExtraction] = Field(default_factory=list)
    usage: Optional[LLMUsage] = None


class MergeCandidate(BaseModel):
    """One page's contribution to a field's merge bucket."""

    value: Any
    confidence: float = Field(ge=0, le=1)
    citation: Citation
    reason: Optional[str] = None
    source_hint_match: bool = False


class FieldMergeBucket(BaseModel):
    key: str
    candidates: List[MergeCandidate] = Field(default_factory=list)


class ValueGroup(BaseModel):
    """Candidates that agree on the same normalized value."""

    normalized_value: str
    candidates: List[MergeCandidate]
    total_confidence: float


class ExtractionConfig(BaseModel):
    """Tunables for per-page extraction and synthesis."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    temperature: float = 0
    source_hint_boost: float = 0.15
    default_confidence_threshold: float = 0.75
    extraction_concurrency: int = Field(default=5, ge=1)
    corroboration_boost: float = 0.1
    max_body_chars: int = 12_000
    min_word_count: int = 10

    model_config = ConfigDict(protected_namespaces=())


class ValidationIssue(BaseModel):
    key: str
    type: Literal["regex", "minLen", "maxLen", "enum", "type"]
    message: str


class ExtractionOutput(BaseModel):
    fields: List[ExtractedFieldValue]
    page_results: List[PageExtractionResult]
    usage: LLMUsage = Field(default_factory=LLMUsage)
