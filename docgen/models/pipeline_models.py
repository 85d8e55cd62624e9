from enum import Enum
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from docgen.core.config import settings

STEP_STARTED = "step_started"


class LLMProvider(str, Enum):
    """Generation providers reachable through an OpenAI-compatible API."""

    OPENROUTER = "openrouter"
    OPENAI = "openai"
    GEMINI = "gemini"


class StepSpec(BaseModel):
    """Declarative description of one generation step.

    `parser` names a strategy registered in
    `docgen.generation_logic.result_parsing`. `requires_steps` restricts the
    context to the named earlier steps; `has_dependencies=False` isolates the
    step from every earlier step.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    instruction_text: str
    parser: str | None = None
    requires_steps: frozenset[str] | None = None
    has_dependencies: bool = True


class CompletedStep(BaseModel):
    """One entry of a run's append-only completed-step log."""

    model_config = ConfigDict(frozen=True)

    name: str
    content: str


class SectionResult(BaseModel):
    """A generated section, or a transient `step_started` event in streaming runs."""

    name: str
    kind: Literal["event", "text"]
    data: str
    summary: str
    parsed_data: Any = None


class ParseOutcome(BaseModel):
    value: Any = None
    failed: bool = False


class ProjectFacts(BaseModel):
    """Read-only snapshot of the descriptive fields of the project being generated."""

    model_config = ConfigDict(frozen=True)

    project_id: str | None = None
    description: str | None = None
    targets: str | None = None
    type: str | None = None
    scope: str | None = None

    def prompt_payload(self) -> dict[str, Any]:
        """Fields exposed to the generator (the project id is kept out of prompts)."""
        return self.model_dump(include={"description", "targets", "type", "scope"})


class PromptConfig(BaseModel):
    """Backend selection plus the caller identity used for quota/telemetry downstream."""

    provider: LLMProvider = Field(default_factory=lambda: LLMProvider(settings.default_provider))
    model_name: str = Field(default_factory=lambda: settings.model_id)
    user_id: str | None = None
    prompt_type: str | None = None
