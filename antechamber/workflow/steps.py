"""Steps of the ``generate_onboarding_draft`` workflow."""

from __future__ import annotations

import logging
from typing import List, Literal

from pydantic import BaseModel, Field

from ..crawl import ArtifactKey, ExtractedPage, validate_url
from ..errors import NotFoundError
from ..extraction.cost import estimate_cost_usd
from ..extraction.facade import extract_and_synthesize
from ..extraction.models import ExtractedFieldValue, FieldDefinition, LLMUsage
from ..submissions import parse_field_definitions
from .contracts import StepDefinition, WorkflowContext, WorkflowDefinition


class STEP_NAMES:
    VALIDATE = "validate"
    CRAWL = "crawl"
    EXTRACT = "extract"
    PERSIST_DRAFT = "persist_draft"


class ValidateOutput(BaseModel):
    schema_id: str
    schema_version: int
    fields: List[FieldDefinition]
    website_url: str
    tenant_id: str


class CrawlOutput(BaseModel):
    origin: str
    pages: List[ExtractedPage] = Field(default_factory=list)
    artifact_keys: List[ArtifactKey] = Field(default_factory=list)
    skipped_urls: List[str] = Field(default_factory=list)
    page_count: int = 0


class ExtractOutput(BaseModel):
    fields: List[ExtractedFieldValue] = Field(default_factory=list)
    page_result_count: int = 0
    usage: LLMUsage = Field(default_factory=LLMUsage)
    estimated_cost_usd: float = 0.0


class PersistDraftOutput(BaseModel):
    submission_id: str
    field_count: int
    status: Literal["draft"] = "draft"


def _require(dependency, name: str):
    if dependency is None:
        raise RuntimeError(f"Workflow dependency '{name}' is not configured")
    return dependency


async def validate_step(ctx: WorkflowContext) -> ValidateOutput:
    store = _require(ctx.deps.submissions, "submissions")

    ctx.log("Loading submission...")
    submission = await store.get_submission(ctx.submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    ctx.log(f"Submission loaded: {submission.website_url}")

    version = await store.get_schema_version(
        submission.tenant_id, submission.schema_id, submission.schema_version
    )
    if version is None:
        raise NotFoundError("Schema version not found")

    fields = parse_field_definitions(version.fields)
    ctx.log(f"Schema version {submission.schema_version} has {len(fields)} fields")

    ctx.log(f"Validating URL: {submission.website_url}")
    await validate_url(submission.website_url)
    ctx.log("URL validation passed")

    return ValidateOutput(
        schema_id=submission.schema_id,
        schema_version=submission.schema_version,
        fields=fields,
        website_url=submission.website_url,
        tenant_id=submission.tenant_id,
    )


async def crawl_step(ctx: WorkflowContext) -> CrawlOutput:
    crawler = _require(ctx.deps.crawler, "crawler")
    validated = ctx.get_step_output(STEP_NAMES.VALIDATE, ValidateOutput)

    ctx.log(f"Starting crawl of {validated.website_url}")
    result = await crawler.crawl(validated.website_url, ctx.run_id)

    ctx.log(
        f"Crawl complete: {len(result.pages)} pages fetched, "
        f"{len(result.skipped_urls)} skipped"
    )
    if result.skipped_urls:
        more = "..." if len(result.skipped_urls) > 5 else ""
        ctx.log(f"Skipped URLs: {', '.join(result.skipped_urls[:5])}{more}", logging.DEBUG)

    return CrawlOutput(
        origin=result.origin,
        pages=result.pages,
        artifact_keys=result.artifact_keys,
        skipped_urls=result.skipped_urls,
        page_count=len(result.pages),
    )


async def extract_step(ctx: WorkflowContext) -> ExtractOutput:
    llm_client = _require(ctx.deps.llm_client, "llm_client")
    validated = ctx.get_step_output(STEP_NAMES.VALIDATE, ValidateOutput)
    crawled = ctx.get_step_output(STEP_NAMES.CRAWL, CrawlOutput)

    ctx.log(
        f"Starting LLM extraction for {len(validated.fields)} fields "
        f"from {crawled.page_count} pages"
    )
    result = await extract_and_synthesize(
        validated.fields, crawled.pages, llm_client, ctx.deps.extraction
    )

    found = sum(1 for f in result.fields if f.confidence > 0 and f.value is not None)
    ctx.log(f"Extraction complete: {found}/{len(result.fields)} fields have values")

    return ExtractOutput(
        fields=result.fields,
        page_result_count=len(result.page_results),
        usage=result.usage,
        estimated_cost_usd=estimate_cost_usd(result.usage, ctx.deps.extraction.model),
    )


async def persist_draft_step(ctx: WorkflowContext) -> PersistDraftOutput:
    store = _require(ctx.deps.submissions, "submissions")
    extracted = ctx.get_step_output(STEP_NAMES.EXTRACT, ExtractOutput)

    ctx.log(f"Persisting {len(extracted.fields)} extracted fields")
    await store.save_draft(ctx.submission_id, extracted.fields)
    ctx.log("Submission status updated to draft")

    return PersistDraftOutput(
        submission_id=ctx.submission_id, field_count=len(extracted.fields)
    )


VALIDATE_STEP = StepDefinition(
    name=STEP_NAMES.VALIDATE,
    run=validate_step,
    retry_policy={"max_attempts": 1, "timeout_ms": 10_000},
    output_model=ValidateOutput,
)

CRAWL_STEP = StepDefinition(
    name=STEP_NAMES.CRAWL,
    run=crawl_step,
    retry_policy={"max_attempts": 3, "timeout_ms": 180_000},
    output_model=CrawlOutput,
)

EXTRACT_STEP = StepDefinition(
    name=STEP_NAMES.EXTRACT,
    run=extract_step,
    retry_policy={"max_attempts": 2, "timeout_ms": 300_000},
    output_model=ExtractOutput,
)

PERSIST_DRAFT_STEP = StepDefinition(
    name=STEP_NAMES.PERSIST_DRAFT,
    run=persist_draft_step,
    retry_policy={"max_attempts": 3, "timeout_ms": 15_000},
    output_model=PersistDraftOutput,
)

GENERATE_ONBOARDING_DRAFT = WorkflowDefinition(
    name="generate_onboarding_draft",
    steps=(VALIDATE_STEP, CRAWL_STEP, EXTRACT_STEP, PERSIST_DRAFT_STEP),
)
