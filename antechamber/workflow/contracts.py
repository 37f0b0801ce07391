"""Core contracts for defining workflows and passing data between steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
)

from pydantic import BaseModel

from ..errors import StepOutputUnavailable
from ..extraction.models import ExtractionConfig

if TYPE_CHECKING:
    from ..crawl import Crawler
    from ..extraction.llm import LLMClient
    from ..submissions import SubmissionStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

StepFn = Callable[["WorkflowContext"], Awaitable[Any]]


@dataclass(frozen=True)
class StepDefinition:
    """One named unit of work within a workflow.

    ``retry_policy`` holds a partial override merged over the workflow
    defaults. ``output_model`` rehydrates a cached JSON output when the step
    is skipped on resume.
    """

    name: str
    run: StepFn
    retry_policy: Optional[Mapping[str, Any]] = None
    output_model: Optional[Type[BaseModel]] = None


@dataclass(frozen=True)
class WorkflowDefinition:
    """Immutable, ordered list of steps."""

    name: str
    steps: Tuple[StepDefinition, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        names = [step.name for step in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(
                f"Workflow {self.name!r} has duplicate step names: {duplicates}"
            )

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]


class StepOutputs:
    """Append-only store of step outputs keyed by step name."""

    def __init__(self) -> None:
        self._outputs: Dict[str, Any] = {}

    def record(self, step_name: str, output: Any) -> None:
        if step_name in self._outputs:
            raise ValueError(f'Step output "{step_name}" already recorded')
        self._outputs[step_name] = output

    def get(self, step_name: str, model: Optional[Type[ModelT]] = None) -> Any:
        """Return the output of ``step_name``.

        When ``model`` is given, a dict output (e.g. one read back from
        storage) is validated into that model.
        """
        if step_name not in self._outputs:
            raise StepOutputUnavailable(step_name)
        value = self._outputs[step_name]
        if model is not None and not isinstance(value, model):
            return model.model_validate(value)
        return value

    def __contains__(self, step_name: object) -> bool:
        return step_name in self._outputs

    def names(self) -> list[str]:
        return list(self._outputs)


@dataclass
class WorkflowDeps:
    """Collaborators made available to every step."""

    submissions: Optional["SubmissionStore"] = None
    crawler: Optional["Crawler"] = None
    llm_client: Optional["LLMClient"] = None
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)


@dataclass
class WorkflowContext:
    """Per-execution context threaded through each step."""

    deps: WorkflowDeps
    workflow_name: str
    run_id: str
    submission_id: str
    outputs: StepOutputs = field(default_factory=StepOutputs)

    def get_step_output(
        self, step_name: str, model: Optional[Type[ModelT]] = None
    ) -> Any:
        return self.outputs.get(step_name, model)

    def log(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, f"[workflow:{self.workflow_name}:{self.run_id}] {message}")
