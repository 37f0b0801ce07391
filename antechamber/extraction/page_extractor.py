from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

from ..crawl import ExtractedPage
from .llm import ChatMessage, LLMClient
from .models import ExtractionConfig, FieldDefinition, PageExtractionResult
from .parser import parse_extraction_result
from .prompt import build_extraction_tool, build_system_prompt, build_user_message

logger = logging.getLogger(__name__)


async def extract_fields_from_page(
    page: ExtractedPage,
    fields: Sequence[FieldDefinition],
    llm_client: LLMClient,
    config: Optional[ExtractionConfig] = None,
) -> PageExtractionResult:
    """Extract field candidates from one page with a single LLM tool call.

    Pages with fewer than ``min_word_count`` words are skipped without
    calling the model.
    """
    cfg = config or ExtractionConfig()

    if page.word_count < cfg.min_word_count:
        logger.info(
            f"Skipping page ({page.word_count} words < {cfg.min_word_count} min): {page.url}"
        )
        return PageExtractionResult(
            url=page.url, page_title=page.title, fetched_at=page.fetched_at
        )

    logger.info(f"Extracting from page: {page.url} ({page.word_count} words)")
    started = time.monotonic()

    tool = build_extraction_tool(fields)
    result = await llm_client.chat_with_tools(
        build_system_prompt(),
        [ChatMessage(role="user", content=build_user_message(fields, page, cfg.max_body_chars))],
        [tool],
        model=cfg.model,
        max_tokens=cfg.max_tokens,
        temperature=cfg.temperature,
        tool_choice=tool.name,
    )

    parsed = parse_extraction_result(result.input, fields)
    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        f"LLM response for {page.url} in {elapsed_ms}ms, found {len(parsed)}/{len(fields)} fields"
    )

    return PageExtractionResult(
        url=page.url,
        page_title=page.title,
        fetched_at=page.fetched_at,
        fields=parsed,
        usage=result.usage,
    )
