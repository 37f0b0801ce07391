"""Antechamber: durable onboarding workflows and multi-source field synthesis."""

from .config import AntechamberConfig, load_config
from .errors import AppError, NotFoundError, StepTimeoutError, ValidationError
from .extraction import extract_and_synthesize, synthesize_fields
from .persistence import get_repository
from .workflow import (
    GENERATE_ONBOARDING_DRAFT,
    RetryPolicy,
    StepDefinition,
    WorkflowDefinition,
    WorkflowDeps,
    WorkflowRunner,
)
from .runtime import build_runner

__version__ = "0.1.0"
__all__ = [
    "AntechamberConfig",
    "AppError",
    "GENERATE_ONBOARDING_DRAFT",
    "NotFoundError",
    "RetryPolicy",
    "StepDefinition",
    "StepTimeoutError",
    "ValidationError",
    "WorkflowDefinition",
    "WorkflowDeps",
    "WorkflowRunner",
    "build_runner",
    "extract_and_synthesize",
    "get_repository",
    "load_config",
    "synthesize_fields",
]
