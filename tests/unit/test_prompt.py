from antechamber.crawl import ExtractedPage
from antechamber.extraction.models import FieldDefinition, FieldValidation
from antechamber.extraction.prompt import (
    EXTRACTION_TOOL_NAME,
    build_extraction_tool,
    build_system_prompt,
    build_user_message,
    truncate_text,
)

FIELDS = [
    FieldDefinition(key="company_name", label="Company name", instructions="Legal name"),
    FieldDefinition(key="plan", type="enum", enum_options=["Basic", "Pro"]),
    FieldDefinition(key="zip", validation=FieldValidation(regex=r"^\d{5}$")),
]


def test_truncate_text_at_word_boundary():
    assert truncate_text("short", 10) == "short"
    assert truncate_text("hello wonderful world", 12) == "hello [...truncated]"


def test_user_message_lists_fields_and_page():
    page = ExtractedPage(
        url="https://acme.test/about",
        title="About Acme",
        body_text="Acme builds widgets.",
        headings=["Who we are"],
        meta_description="Widgets since 1900",
        word_count=3,
        fetched_at="2024-01-01T00:00:00Z",
    )
    message = build_user_message(FIELDS, page)

    assert "- company_name (string): Company name" in message
    assert "Instructions: Legal name" in message
    assert "Options: Basic, Pro" in message
    assert "Regex: ^\\d{5}$" in message
    assert "URL: https://acme.test/about" in message
    assert "Description: Widgets since 1900" in message
    assert "- Who we are" in message
    assert message.endswith("Acme builds widgets.")


def test_extraction_tool_schema():
    tool = build_extraction_tool(FIELDS)
    assert tool.name == EXTRACTION_TOOL_NAME
    item = tool.input_schema["properties"]["extractions"]["items"]
    assert item["properties"]["key"]["enum"] == ["company_name", "plan", "zip"]
    assert item["required"] == ["key", "value", "confidence", "snippet"]
    assert "verbatim" in build_system_prompt()
