from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Sequence
from typing import Any
from uuid import uuid4

from docgen.core.config import settings
from docgen.generation_logic.context_assembly import assemble_context
from docgen.generation_logic.prompt_composition import compose_prompt
from docgen.generation_logic.result_parsing import parse_result
from docgen.generation_logic.step_validation import validate_steps
from docgen.models.pipeline_models import STEP_STARTED
from docgen.models.pipeline_models import CompletedStep
from docgen.models.pipeline_models import ProjectFacts
from docgen.models.pipeline_models import PromptConfig
from docgen.models.pipeline_models import SectionResult
from docgen.models.pipeline_models import StepSpec
from docgen.services.llm import GenerationBackend

logger = logging.getLogger(__name__)

EventConsumer = Callable[[SectionResult], Awaitable[None]]


def _summary(step: StepSpec, facts: ProjectFacts | None) -> str:
    if facts is not None and facts.project_id:
        return f"{step.name} for Project {facts.project_id}"
    return step.name


def _annotate(parsed: Any, status: str, step_name: str) -> dict[str, Any]:
    annotation = {"status": status, "stepName": step_name}
    if parsed is None:
        return annotation
    if isinstance(parsed, dict):
        return {**parsed, **annotation}
    return {"value": parsed, **annotation}


class _StepPipeline:
    """Shared per-step driving logic for the batch and streaming executors."""

    def __init__(
        self,
        backend: GenerationBackend,
        config: PromptConfig | None = None,
        include_facts: bool | None = None,
    ):
        self.backend = backend
        self.config = config or PromptConfig()
        self.include_facts = settings.include_project_facts if include_facts is None else include_facts

    def _config_for(self, step: StepSpec) -> PromptConfig:
        return self.config.model_copy(update={"prompt_type": self.config.prompt_type or step.name})

    async def _execute_step(
        self,
        run_id: str,
        step: StepSpec,
        completed: tuple[CompletedStep, ...],
        facts: ProjectFacts | None,
    ) -> tuple[tuple[CompletedStep, ...], SectionResult]:
        """Run one step and return the extended completed log plus the step's text result."""
        logger.info("[%s] Generating section '%s'", run_id, step.name)
        context = assemble_context(completed, step)
        request = compose_prompt(context, facts, step, include_facts=self.include_facts)

        try:
            raw = await self.backend.generate(request, self._config_for(step))
        except Exception as e:
            logger.error("[%s] Generation failed for step '%s': %s", run_id, step.name, str(e))
            raise

        content = self.backend.clean(raw)
        completed = (*completed, CompletedStep(name=step.name, content=content))
        outcome = parse_result(content, step)
        if outcome.failed:
            logger.warning("[%s] Step '%s' produced unparseable output; continuing", run_id, step.name)

        logger.info("[%s] Section '%s' generated: %d chars", run_id, step.name, len(content))
        result = SectionResult(
            name=step.name,
            kind="text",
            data=content,
            summary=_summary(step, facts),
            parsed_data=outcome.value,
        )
        return completed, result


class PipelineExecutor(_StepPipeline):
    """Runs steps sequentially and returns all results once every step has finished."""

    async def run(self, steps: Sequence[StepSpec], facts: ProjectFacts | None) -> list[SectionResult]:
        validate_steps(steps)
        run_id = str(uuid4())
        logger.info("[%s] Starting batch pipeline run with %d steps", run_id, len(steps))

        completed: tuple[CompletedStep, ...] = ()
        results: list[SectionResult] = []
        for step in steps:
            completed, result = await self._execute_step(run_id, step, completed, facts)
            results.append(result)

        logger.info("[%s] Batch pipeline run completed", run_id)
        return results


class StreamingPipelineExecutor(_StepPipeline):
    """Runs steps sequentially, handing a started event and a completed result per step to a consumer.

    The consumer is awaited on every event, so a slow consumer throttles the run.
    """

    async def run(
        self,
        steps: Sequence[StepSpec],
        facts: ProjectFacts | None,
        on_event: EventConsumer,
    ) -> None:
        validate_steps(steps)
        run_id = str(uuid4())
        logger.info("[%s] Starting streaming pipeline run with %d steps", run_id, len(steps))

        completed: tuple[CompletedStep, ...] = ()
        for step in steps:
            await on_event(
                SectionResult(
                    name=step.name,
                    kind="event",
                    data=STEP_STARTED,
                    summary=f"Starting {step.name}",
                    parsed_data=_annotate(None, "started", step.name),
                )
            )

            completed, result = await self._execute_step(run_id, step, completed, facts)
            result = result.model_copy(update={"parsed_data": _annotate(result.parsed_data, "completed", step.name)})
            await on_event(result)

        logger.info("[%s] Streaming pipeline run completed", run_id)
