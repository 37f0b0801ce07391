"""Assemble a configured workflow runner."""

from __future__ import annotations

from typing import Optional

from .config import AntechamberConfig, build_llm_client, load_config
from .crawl import Crawler
from .extraction.llm import LLMClient
from .persistence import WorkflowRunRepository, get_repository
from .submissions import SubmissionStore
from .workflow import WorkflowDeps, WorkflowRunner


def build_runner(
    submissions: SubmissionStore,
    crawler: Crawler,
    config: Optional[AntechamberConfig] = None,
    llm_client: Optional[LLMClient] = None,
    repository: Optional[WorkflowRunRepository] = None,
) -> WorkflowRunner:
    """Create a :class:`WorkflowRunner` driven by ``config``.

    ``config.retry`` becomes the workflow-default retry policy and
    ``config.extraction`` the extraction settings seen by every step. The
    LLM client and run repository are built from the same config unless
    given.
    """
    config = config or load_config()
    deps = WorkflowDeps(
        submissions=submissions,
        crawler=crawler,
        llm_client=llm_client or build_llm_client(config),
        extraction=config.extraction,
    )
    return WorkflowRunner(
        deps,
        repository or get_repository(config),
        default_policy=config.retry,
    )
