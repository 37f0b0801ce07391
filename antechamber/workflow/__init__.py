"""Durable, resumable step execution for intake workflows."""

from .policy import DEFAULT_RETRY_POLICY, RetryPolicy
from .models import StepRecord, WorkflowRun
from .contracts import (
    StepDefinition,
    StepOutputs,
    WorkflowContext,
    WorkflowDefinition,
    WorkflowDeps,
)
from .step_runner import StepRunner
from .runner import WorkflowRunner
from .steps import GENERATE_ONBOARDING_DRAFT, STEP_NAMES

__all__ = [
    "DEFAULT_RETRY_POLICY",
    "GENERATE_ONBOARDING_DRAFT",
    "RetryPolicy",
    "STEP_NAMES",
    "StepDefinition",
    "StepOutputs",
    "StepRecord",
    "StepRunner",
    "WorkflowContext",
    "WorkflowDefinition",
    "WorkflowDeps",
    "WorkflowRun",
    "WorkflowRunner",
]
