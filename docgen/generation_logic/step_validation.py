import logging
from collections.abc import Sequence

from docgen.core.exceptions import StepSpecError
from docgen.generation_logic.result_parsing import is_registered
from docgen.models.pipeline_models import StepSpec

logger = logging.getLogger(__name__)


def validate_steps(steps: Sequence[StepSpec]) -> None:
    """Reject step lists the pipeline cannot run in declaration order.

    Raises:
        StepSpecError: on a duplicate step name, a `requires_steps` entry that
            does not name an earlier step, or an unregistered parser.
    """
    declared: set[str] = set()
    for index, step in enumerate(steps):
        if step.name in declared:
            raise StepSpecError(f"Duplicate step name '{step.name}' at position {index}")

        if step.requires_steps:
            missing = sorted(step.requires_steps - declared)
            if missing:
                raise StepSpecError(
                    f"Step '{step.name}' requires steps not declared before it: {', '.join(missing)}"
                )
            if not step.has_dependencies:
                logger.warning(
                    "Step '%s' lists required steps but has_dependencies is False; they will be ignored",
                    step.name,
                )

        if step.parser is not None and not is_registered(step.parser):
            raise StepSpecError(f"Step '{step.name}' uses unknown parser '{step.parser}'")

        declared.add(step.name)
