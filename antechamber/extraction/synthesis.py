"""Deterministic merge of per-page extractions into one value per field.

Candidates for a field are grouped by normalized value. The group with the
highest summed confidence wins, ties going to the group with more
corroborating pages. Agreement across pages raises confidence by
``corroboration_boost`` per extra page, capped at 1.0. Any disagreement
between groups forces human review regardless of confidence.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import (
    Citation,
    ExtractedFieldValue,
    ExtractionConfig,
    FieldDefinition,
    FieldMergeBucket,
    MergeCandidate,
    PageExtractionResult,
    ValueGroup,
)

logger = logging.getLogger(__name__)


def check_source_hint_match(url: str, source_hints: Optional[Iterable[str]]) -> bool:
    """Return ``True`` when ``url`` contains any hint keyword (case-insensitive)."""
    if not source_hints:
        return False
    lower = url.lower()
    return any(hint.lower() in lower for hint in source_hints if hint)


def _canonical(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (list, tuple)):
        return sorted(
            (_canonical(v) for v in value),
            key=lambda v: json.dumps(v, sort_keys=True, default=str),
        )
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    return value


def normalize_for_comparison(value: Any) -> str:
    """Comparison key for a candidate value.

    Strings compare case-insensitively after trimming; lists compare as the
    sorted list of their normalized members; anything else compares
    structurally.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return _canonical(value)
    return json.dumps(_canonical(value), sort_keys=True, default=str)


def group_by_value(candidates: Sequence[MergeCandidate]) -> List[ValueGroup]:
    """Group candidates by normalized value, in first-seen order."""
    groups: Dict[str, List[MergeCandidate]] = {}
    for candidate in candidates:
        groups.setdefault(normalize_for_comparison(candidate.value), []).append(
            candidate
        )
    return [
        ValueGroup(
            normalized_value=norm,
            candidates=members,
            total_confidence=sum(c.confidence for c in members),
        )
        for norm, members in groups.items()
    ]


def rank_groups(groups: Sequence[ValueGroup]) -> List[ValueGroup]:
    """Order groups best first: total confidence, then candidate count."""
    return sorted(
        groups,
        key=lambda g: (g.total_confidence, len(g.candidates)),
        reverse=True,
    )


def select_best_group(groups: Sequence[ValueGroup]) -> ValueGroup:
    if not groups:
        raise ValueError("select_best_group requires at least one group")
    return rank_groups(groups)[0]


def build_merge_buckets(
    fields: Sequence[FieldDefinition],
    page_results: Sequence[PageExtractionResult],
    config: Optional[ExtractionConfig] = None,
) -> Dict[str, FieldMergeBucket]:
    """Collect every page's extraction for each schema field.

    Extractions for keys outside the schema are dropped. A page whose URL
    matches one of the field's source hints gets its confidence raised by
    ``source_hint_boost``.
    """
    cfg = config or ExtractionConfig()
    by_key = {field.key: field for field in fields}
    buckets = {field.key: FieldMergeBucket(key=field.key) for field in fields}

    for page in page_results:
        for extraction in page.fields:
            field = by_key.get(extraction.key)
            if field is None:
                continue

            hint_match = check_source_hint_match(page.url, field.source_hints)
            confidence = min(1.0, max(0.0, extraction.confidence))
            if hint_match:
                confidence = min(1.0, confidence + cfg.source_hint_boost)

            buckets[field.key].candidates.append(
                MergeCandidate(
                    value=extraction.value,
                    confidence=confidence,
                    citation=Citation(
                        url=page.url,
                        snippet=extraction.snippet,
                        page_title=page.page_title or None,
                        retrieved_at=page.fetched_at,
                    ),
                    reason=extraction.reason,
                    source_hint_match=hint_match,
                )
            )

    return buckets


def _display(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def merge_field(
    field: FieldDefinition,
    bucket: FieldMergeBucket,
    config: Optional[ExtractionConfig] = None,
) -> ExtractedFieldValue:
    """Merge one field's candidates into a value with a disposition."""
    cfg = config or ExtractionConfig()
    threshold = (
        field.confidence_threshold
        if field.confidence_threshold is not None
        else cfg.default_confidence_threshold
    )

    if not bucket.candidates:
        return ExtractedFieldValue(
            key=field.key, value=None, confidence=0, citations=[], status="unknown"
        )

    ranked = rank_groups(group_by_value(bucket.candidates))
    best = ranked[0]

    value = best.candidates[0].value
    citations = [c.citation for c in best.candidates]
    top = max(c.confidence for c in best.candidates)
    confidence = top + cfg.corroboration_boost * (len(best.candidates) - 1)
    confidence = round(min(1.0, max(0.0, confidence)), 6)

    if len(ranked) > 1:
        conflicting = ", ".join(f'"{_display(g.candidates[0].value)}"' for g in ranked)
        logger.debug(f"Field {field.key} has {len(ranked)} conflicting values")
        return ExtractedFieldValue(
            key=field.key,
            value=value,
            confidence=confidence,
            citations=citations,
            status="needs_review",
            reason=f"Conflicting values: {conflicting}",
        )

    if confidence >= threshold:
        return ExtractedFieldValue(
            key=field.key,
            value=value,
            confidence=confidence,
            citations=citations,
            status="auto",
        )

    return ExtractedFieldValue(
        key=field.key,
        value=value,
        confidence=confidence,
        citations=citations,
        status="needs_review",
        reason=f"Confidence {confidence:.2f} below threshold {threshold}",
    )


def synthesize_fields(
    fields: Sequence[FieldDefinition],
    page_results: Sequence[PageExtractionResult],
    config: Optional[ExtractionConfig] = None,
) -> List[ExtractedFieldValue]:
    """Produce one merged value per schema field, in schema order."""
    buckets = build_merge_buckets(fields, page_results, config)
    return [merge_field(field, buckets[field.key], config) for field in fields]
