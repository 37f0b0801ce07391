"""Submission and schema-version storage used by the onboarding workflow."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Protocol, Tuple

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import NotFoundError, ValidationError
from .extraction.models import ExtractedFieldValue, FieldDefinition

logger = logging.getLogger(__name__)

SubmissionStatus = Literal["pending", "draft", "confirmed", "failed"]


class Submission(BaseModel):
    id: str
    tenant_id: str
    schema_id: str
    schema_version: int
    website_url: str
    status: SubmissionStatus = "pending"
    fields: Any = Field(default_factory=list)
    edit_history: Any = Field(default_factory=list)


class SchemaVersion(BaseModel):
    schema_id: str
    tenant_id: str
    version: int
    name: str = ""
    fields: Any = Field(default_factory=list)


class EditHistoryEntry(BaseModel):
    field_key: str
    old_value: Any = None
    new_value: Any = None
    edited_at: str
    edited_by: str


_field_definitions = TypeAdapter(List[FieldDefinition])
_extracted_fields = TypeAdapter(List[ExtractedFieldValue])
_edit_history = TypeAdapter(List[EditHistoryEntry])


def parse_field_definitions(data: Any) -> List[FieldDefinition]:
    """Parse stored field definitions, rejecting malformed data."""
    try:
        fields = _field_definitions.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError("Stored field definitions are malformed", str(e))
    keys = [f.key for f in fields]
    if len(keys) != len(set(keys)):
        raise ValidationError("Field keys must be unique within a schema version")
    return fields


def parse_extracted_fields(data: Any) -> List[ExtractedFieldValue]:
    """Parse stored extracted fields.

    Malformed data yields an empty list so that legacy rows written before
    the current shape remain readable.
    """
    try:
        return _extracted_fields.validate_python(data)
    except PydanticValidationError:
        logger.warning("Discarding malformed stored extracted fields")
        return []


def parse_edit_history(data: Any) -> List[EditHistoryEntry]:
    """Parse stored edit history, with the same legacy fallback as fields."""
    try:
        return _edit_history.validate_python(data)
    except PydanticValidationError:
        logger.warning("Discarding malformed stored edit history")
        return []


class SubmissionStore(Protocol):
    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        """Return the submission or ``None``."""

    async def get_schema_version(
        self, tenant_id: str, schema_id: str, version: int
    ) -> Optional[SchemaVersion]:
        """Return the tenant-scoped schema version or ``None``."""

    async def save_draft(
        self, submission_id: str, fields: List[ExtractedFieldValue]
    ) -> None:
        """Store extracted fields and move the submission to ``draft``."""


class InMemorySubmissionStore(SubmissionStore):
    """Dictionary-backed store for tests and local runs."""

    def __init__(self) -> None:
        self.submissions: Dict[str, Submission] = {}
        self.schema_versions: Dict[Tuple[str, str, int], SchemaVersion] = {}

    def add_submission(self, submission: Submission) -> None:
        self.submissions[submission.id] = submission

    def add_schema_version(self, schema_version: SchemaVersion) -> None:
        key = (schema_version.tenant_id, schema_version.schema_id, schema_version.version)
        self.schema_versions[key] = schema_version

    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        return self.submissions.get(submission_id)

    async def get_schema_version(
        self, tenant_id: str, schema_id: str, version: int
    ) -> Optional[SchemaVersion]:
        return self.schema_versions.get((tenant_id, schema_id, version))

    async def save_draft(
        self, submission_id: str, fields: List[ExtractedFieldValue]
    ) -> None:
        submission = self.submissions.get(submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        submission.fields = [f.model_dump(mode="json") for f in fields]
        submission.status = "draft"
