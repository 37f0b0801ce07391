"""Single entry point for LLM extraction and synthesis.

Pipeline:
    1. per-page LLM extraction, at most ``extraction_concurrency`` at once
    2. deterministic synthesis/merge per field
    3. normalization (phone, address, company name)
    4. schema constraint validation
"""

from __future__ import annotations

import asyncio
import logging
from functools import reduce
from typing import Optional, Sequence

from ..crawl import ExtractedPage
from .cost import estimate_cost_usd
from .llm import LLMClient
from .models import (
    ExtractionConfig,
    ExtractionOutput,
    FieldDefinition,
    LLMUsage,
    PageExtractionResult,
)
from .normalize import normalize_field_value
from .page_extractor import extract_fields_from_page
from .synthesis import synthesize_fields
from .validate import apply_validation_results, validate_all_fields

logger = logging.getLogger(__name__)


async def extract_pages(
    pages: Sequence[ExtractedPage],
    fields: Sequence[FieldDefinition],
    llm_client: LLMClient,
    config: ExtractionConfig,
) -> list[PageExtractionResult]:
    """Run per-page extraction with bounded concurrency, keeping page order.

    The first failing page cancels every page still queued or in flight
    before the error is re-raised.
    """
    semaphore = asyncio.Semaphore(config.extraction_concurrency)

    async def _extract(page: ExtractedPage) -> PageExtractionResult:
        async with semaphore:
            return await extract_fields_from_page(page, fields, llm_client, config)

    tasks = [asyncio.ensure_future(_extract(page)) for page in pages]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.warning(f"Page extraction aborted, cancelled {len(pending)} pending pages")
        raise


async def extract_and_synthesize(
    fields: Sequence[FieldDefinition],
    pages: Sequence[ExtractedPage],
    llm_client: LLMClient,
    config: Optional[ExtractionConfig] = None,
) -> ExtractionOutput:
    cfg = config or ExtractionConfig()

    logger.info(
        f"Starting extraction for {len(fields)} fields from {len(pages)} pages "
        f"(concurrency: {cfg.extraction_concurrency})"
    )
    page_results = await extract_pages(pages, fields, llm_client, cfg)

    synthesized = synthesize_fields(fields, page_results, cfg)
    found = sum(1 for f in synthesized if f.value is not None and f.confidence > 0)
    logger.info(f"Synthesis complete: {found}/{len(synthesized)} fields have values")

    synthesized = [
        f.model_copy(update={"value": normalize_field_value(f.key, f.value)})
        for f in synthesized
    ]

    issues = validate_all_fields(fields, synthesized)
    if issues:
        logger.info(f"Found {len(issues)} validation issues")
    synthesized = apply_validation_results(synthesized, issues)

    usage = reduce(
        lambda total, r: total + r.usage if r.usage else total,
        page_results,
        LLMUsage(),
    )
    logger.info(
        f"Extraction pipeline complete: {usage.input_tokens} input / "
        f"{usage.output_tokens} output tokens, ~${estimate_cost_usd(usage, cfg.model):.4f}"
    )
    return ExtractionOutput(fields=synthesized, page_results=page_results, usage=usage)
