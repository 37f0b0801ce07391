"""Schema constraint checks applied to synthesized field values."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Sequence

from .models import ExtractedFieldValue, FieldDefinition, ValidationIssue

logger = logging.getLogger(__name__)

_TYPE_CHECKS = {
    "string": (lambda v: isinstance(v, str), "string"),
    "number": (
        lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
        "number",
    ),
    "boolean": (lambda v: isinstance(v, bool), "boolean"),
    "enum": (lambda v: isinstance(v, str), "string (enum)"),
    "string[]": (lambda v: isinstance(v, list), "string[]"),
}


def validate_field(
    field: FieldDefinition, extracted: ExtractedFieldValue
) -> List[ValidationIssue]:
    """Check one value against its definition.

    Unknown values and ``None`` are not validated.
    """
    if extracted.status == "unknown" or extracted.value is None:
        return []

    value = extracted.value
    check, expected = _TYPE_CHECKS[field.type]
    if not check(value):
        return [
            ValidationIssue(
                key=field.key,
                type="type",
                message=f"Expected {expected}, got {type(value).__name__}",
            )
        ]

    issues: List[ValidationIssue] = []
    rules = field.validation

    if isinstance(value, str) and rules is not None:
        if rules.regex:
            try:
                matched = re.search(rules.regex, value) is not None
            except re.error:
                logger.warning(f"Invalid regex for field {field.key}: {rules.regex}")
                matched = True
            if not matched:
                issues.append(
                    ValidationIssue(
                        key=field.key,
                        type="regex",
                        message=f'Value "{value}" does not match pattern {rules.regex}',
                    )
                )

        if rules.min_len is not None and len(value) < rules.min_len:
            issues.append(
                ValidationIssue(
                    key=field.key,
                    type="minLen",
                    message=f"Value length {len(value)} is below minimum {rules.min_len}",
                )
            )

        if rules.max_len is not None and len(value) > rules.max_len:
            issues.append(
                ValidationIssue(
                    key=field.key,
                    type="maxLen",
                    message=f"Value length {len(value)} exceeds maximum {rules.max_len}",
                )
            )

    if field.type == "enum" and field.enum_options:
        if value.lower() not in (opt.lower() for opt in field.enum_options):
            issues.append(
                ValidationIssue(
                    key=field.key,
                    type="enum",
                    message=(
                        f'Value "{value}" is not a valid option. '
                        f"Valid: {', '.join(field.enum_options)}"
                    ),
                )
            )

    return issues


def validate_all_fields(
    fields: Sequence[FieldDefinition], extracted: Sequence[ExtractedFieldValue]
) -> List[ValidationIssue]:
    field_map = {f.key: f for f in fields}
    issues: List[ValidationIssue] = []
    for value in extracted:
        field = field_map.get(value.key)
        if field is not None:
            issues.extend(validate_field(field, value))
    return issues


def apply_validation_results(
    extracted: Sequence[ExtractedFieldValue], issues: Sequence[ValidationIssue]
) -> List[ExtractedFieldValue]:
    """Demote fields with issues to ``needs_review``. Inputs are not mutated."""
    by_key: Dict[str, List[ValidationIssue]] = {}
    for issue in issues:
        by_key.setdefault(issue.key, []).append(issue)

    results: List[ExtractedFieldValue] = []
    for value in extracted:
        field_issues = by_key.get(value.key)
        if not field_issues:
            results.append(value)
            continue
        messages = "; ".join(i.message for i in field_issues)
        reason = f"{value.reason}; {messages}" if value.reason else messages
        results.append(
            value.model_copy(update={"status": "needs_review", "reason": reason})
        )
    return results
