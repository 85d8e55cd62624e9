import logging
from collections.abc import Sequence

from docgen.models.pipeline_models import CompletedStep
from docgen.models.pipeline_models import StepSpec

logger = logging.getLogger(__name__)


def format_completed_step(step: CompletedStep) -> str:
    return f"## {step.name}\n\n{step.content}\n\n---\n"


def assemble_context(completed: Sequence[CompletedStep], spec: StepSpec) -> str:
    """Build the context text a step may see from the steps completed before it.

    Steps declared with `has_dependencies=False` see nothing. A non-empty
    `requires_steps` restricts the context to those steps, kept in completion
    order. Otherwise every completed step is included.
    """
    if not spec.has_dependencies:
        logger.debug("No context needed for step '%s' (no dependencies)", spec.name)
        return ""

    if spec.requires_steps:
        selected = [step for step in completed if step.name in spec.requires_steps]
        logger.debug(
            "Built context for step '%s' from %d required steps: [%s]",
            spec.name,
            len(selected),
            ", ".join(step.name for step in selected),
        )
    else:
        selected = list(completed)
        logger.debug("Built context for step '%s' from all %d previous steps", spec.name, len(selected))

    return "".join(format_completed_step(step) for step in selected)
