import json
import logging

from docgen.models.pipeline_models import ProjectFacts
from docgen.models.pipeline_models import StepSpec
from docgen.services.llm import render_prompt_template

logger = logging.getLogger(__name__)

STEP_PROMPT_TEMPLATE = "step_prompt.jinja2"
STEP_PROMPT_WITH_CONTEXT_TEMPLATE = "step_prompt_with_context.jinja2"


def compose_prompt(
    context: str,
    facts: ProjectFacts | None,
    spec: StepSpec,
    include_facts: bool = True,
) -> str:
    """Render the request sent to the backend for one step.

    With an empty context the step is framed on its own; otherwise the
    context is fenced first and the generator is told to build on it. The
    project details block is left out entirely when `include_facts` is off
    or no facts were supplied.
    """
    project_details = None
    if include_facts and facts is not None:
        project_details = json.dumps(facts.prompt_payload(), indent=2, ensure_ascii=False)

    template_name = STEP_PROMPT_WITH_CONTEXT_TEMPLATE if context else STEP_PROMPT_TEMPLATE
    prompt = render_prompt_template(
        template_name,
        step_name=spec.name,
        instructions=spec.instruction_text,
        context=context,
        project_details=project_details,
    )
    logger.debug(
        "Composed prompt for step '%s' with template %s: %d chars",
        spec.name,
        template_name,
        len(prompt),
    )
    return prompt
