"""Prompt and tool construction for per-page field extraction."""

from __future__ import annotations

from typing import Sequence

from ..crawl import ExtractedPage
from .llm import ToolDefinition
from .models import FieldDefinition

EXTRACTION_TOOL_NAME = "extract_fields"


def truncate_text(text: str, max_chars: int) -> str:
    """Truncate at a word boundary, appending a marker if truncated."""
    if len(text) <= max_chars:
        return text
    truncated = text[:max_chars]
    last_space = truncated.rfind(" ")
    cutoff = last_space if last_space > 0 else max_chars
    return truncated[:cutoff] + " [...truncated]"


def build_system_prompt() -> str:
    return "\n".join(
        [
            "You are a precise data extraction assistant.",
            "Your task is to extract structured field values from a web page.",
            "",
            "Rules:",
            "- Extract ONLY the fields listed in the schema.",
            "- For each field you extract, provide a verbatim text snippet from the page as evidence.",
            "- Assign a confidence score between 0 and 1 for each extracted value.",
            "- If a field cannot be found on the page, do NOT include it in the results.",
            "- Do NOT fabricate or hallucinate values. Only extract what is explicitly present on the page.",
            "- For enum fields, match to the closest option (case-insensitive). If no option matches, skip the field.",
            "- Provide a brief reason for low-confidence extractions (below 0.7).",
        ]
    )


def _describe_field(field: FieldDefinition) -> str:
    lines = [f"- {field.key} ({field.type}): {field.label or field.key}"]
    if field.instructions:
        lines.append(f"  Instructions: {field.instructions}")
    if field.enum_options:
        lines.append(f"  Options: {', '.join(field.enum_options)}")
    if field.validation and field.validation.regex:
        lines.append(f"  Regex: {field.validation.regex}")
    return "\n".join(lines)


def build_user_message(
    fields: Sequence[FieldDefinition],
    page: ExtractedPage,
    max_body_chars: int = 12_000,
) -> str:
    """Field list followed by the page content."""
    headings = ""
    if page.headings:
        headings = "Headings:\n" + "\n".join(f"- {h}" for h in page.headings)

    parts = [
        "## Fields to Extract",
        "",
        "\n".join(_describe_field(f) for f in fields),
        "",
        "## Page Content",
        "",
        f"URL: {page.url}",
        f"Title: {page.title}",
        f"Description: {page.meta_description}" if page.meta_description else "",
        headings,
        "",
        "Body Text:",
        truncate_text(page.body_text, max_body_chars),
    ]
    return "\n".join(p for p in parts if p)


def build_extraction_tool(fields: Sequence[FieldDefinition]) -> ToolDefinition:
    """Tool whose input schema constrains the model to cited extractions."""
    return ToolDefinition(
        name=EXTRACTION_TOOL_NAME,
        description="Extract structured field values from the page content with citations.",
        input_schema={
            "type": "object",
            "properties": {
                "extractions": {
                    "type": "array",
                    "description": "List of extracted field values",
                    "items": {
                        "type": "object",
                        "properties": {
                            "key": {
                                "type": "string",
                                "enum": [f.key for f in fields],
                                "description": "The field key from the schema",
                            },
                            "value": {"description": "The extracted value"},
                            "confidence": {
                                "type": "number",
                                "minimum": 0,
                                "maximum": 1,
                                "description": "Confidence score between 0 and 1",
                            },
                            "snippet": {
                                "type": "string",
                                "description": "Verbatim text snippet from the page that supports this extraction",
                            },
                            "reason": {
                                "type": "string",
                                "description": "Brief explanation for the extraction, especially for low-confidence values",
                            },
                        },
                        "required": ["key", "value", "confidence", "snippet"],
                    },
                }
            },
            "required": ["extractions"],
        },
    )
