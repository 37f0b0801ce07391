"""Coercion and validation of raw LLM tool output into page extractions."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, List, Optional, Sequence

from .models import FieldDefinition, PageFieldExtraction

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.5

UNCOERCIBLE = object()


def coerce_value(value: Any, field: FieldDefinition) -> Any:
    """Coerce ``value`` to the field's type.

    Returns ``UNCOERCIBLE`` when the value cannot be represented as that type.
    """
    if value is None:
        return UNCOERCIBLE

    if field.type == "string":
        return value if isinstance(value, str) else str(value)

    if field.type == "number":
        if isinstance(value, bool):
            return UNCOERCIBLE
        try:
            number = float(value)
        except (TypeError, ValueError):
            return UNCOERCIBLE
        if not math.isfinite(number):
            return UNCOERCIBLE
        return int(number) if number.is_integer() else number

    if field.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lower = value.strip().lower()
            if lower in ("true", "yes"):
                return True
            if lower in ("false", "no"):
                return False
        return UNCOERCIBLE

    if field.type == "enum":
        wanted = str(value).strip().lower()
        for option in field.enum_options or []:
            if option.strip().lower() == wanted:
                return option
        return UNCOERCIBLE

    if field.type == "string[]":
        if isinstance(value, list):
            return [str(v) for v in value]
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return UNCOERCIBLE

    return value


def evidence_penalty(value: Any, snippet: str) -> float:
    """Confidence penalty when the snippet does not contain the value."""
    snippet_lower = snippet.lower()

    if isinstance(value, str):
        value_lower = value.lower().strip()
        if value_lower in snippet_lower:
            return 0.0
        words = [w for w in re.split(r"\s+", value_lower) if len(w) > 3]
        matching = [w for w in words if w in snippet_lower]
        if matching and len(matching) >= len(words) * 0.5:
            return 0.1
        return 0.4

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if str(value) in snippet_lower:
            return 0.0
        return 0.3

    # booleans and lists: trust the model
    return 0.0


def parse_extraction_result(
    raw: Any, fields: Sequence[FieldDefinition]
) -> List[PageFieldExtraction]:
    """Turn the ``extract_fields`` tool input into page extractions.

    Unknown keys, entries without a snippet, values that cannot be coerced
    and anything under ``MIN_CONFIDENCE`` after the evidence penalty are
    dropped.
    """
    if not isinstance(raw, dict):
        return []
    extractions = raw.get("extractions")
    if not isinstance(extractions, list):
        return []

    field_map = {f.key: f for f in fields}
    results: List[PageFieldExtraction] = []

    for item in extractions:
        if not isinstance(item, dict):
            continue

        key = item.get("key")
        field = field_map.get(key) if isinstance(key, str) else None
        if field is None:
            continue

        snippet = item.get("snippet")
        snippet = snippet.strip() if isinstance(snippet, str) else ""
        if not snippet:
            continue

        coerced = coerce_value(item.get("value"), field)
        if coerced is UNCOERCIBLE:
            continue

        try:
            confidence = float(item.get("confidence"))
        except (TypeError, ValueError):
            confidence = 0.0
        if not math.isfinite(confidence):
            confidence = 0.0
        confidence = max(0.0, min(1.0, confidence))

        penalty = evidence_penalty(coerced, snippet)
        if penalty > 0:
            confidence = max(0.0, confidence - penalty)
            logger.debug(f"Penalized confidence for {key} by {penalty}")

        if confidence < MIN_CONFIDENCE:
            logger.debug(f"Skipping low confidence extraction for {key}: {confidence:.2f}")
            continue

        reason: Optional[str] = item.get("reason")
        reason = reason.strip() if isinstance(reason, str) and reason.strip() else None

        results.append(
            PageFieldExtraction(
                key=key,
                value=coerced,
                confidence=confidence,
                snippet=snippet,
                reason=reason,
            )
        )

    return results
