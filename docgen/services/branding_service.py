from __future__ import annotations

import json
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any

from docgen.core.exceptions import PipelineError
from docgen.generation_logic.result_parsing import PARSE_ERROR_MESSAGE
from docgen.models.pipeline_models import PromptConfig
from docgen.models.pipeline_models import SectionResult
from docgen.models.pipeline_models import StepSpec
from docgen.models.project_models import Project
from docgen.models.project_models import SectionModel
from docgen.models.project_models import extract_project_description
from docgen.services.llm import GenerationBackend
from docgen.services.llm import render_prompt_template
from docgen.services.pipeline import PipelineExecutor
from docgen.services.pipeline import StreamingPipelineExecutor

logger = logging.getLogger(__name__)

PALETTE_COUNT = 4
LOGO_COUNT = 3

COLORS_TYPOGRAPHY_STEP = "Colors and Typography Generation"
LOGO_STEP = "Logo Generation"

# (step name, instruction template, inherits context from earlier steps)
BRANDING_STEPS: list[tuple[str, str, bool]] = [
    ("Brand Header", "branding/brand_header.jinja2", False),
    ("Logo System", "branding/logo_system.jinja2", False),
    ("Color Palette", "branding/color_palette.jinja2", False),
    ("Typography", "branding/typography.jinja2", False),
    ("Usage Guidelines", "branding/usage_guidelines.jinja2", True),
    ("Brand Footer", "branding/brand_footer.jinja2", False),
]

StreamCallback = Callable[[SectionResult], Awaitable[None]]


def to_section(result: SectionResult) -> SectionModel:
    return SectionModel(name=result.name, type=result.kind, data=result.data, summary=result.summary)


def _is_parse_failure(parsed: dict[str, Any]) -> bool:
    return parsed.get("error") == PARSE_ERROR_MESSAGE and "content" in parsed and len(parsed) == 2


class BrandingService:
    """Generates the branding kit of a project and its candidate visual assets."""

    def __init__(self, backend: GenerationBackend):
        logger.info("Initializing BrandingService")
        self.backend = backend

    def branding_context(self, project: Project) -> str:
        """Project description extended with the branding assets already chosen for the project."""
        branding = project.analysis_result.branding
        return (
            extract_project_description(project)
            + "\n\nHere is the project branding colors: "
            + json.dumps(branding.colors)
            + "\n\nHere is the project branding typography: "
            + json.dumps(branding.typography)
            + "\n\nHere is the project branding logo: "
            + json.dumps(branding.logo)
        )

    def branding_steps(self, project: Project) -> list[StepSpec]:
        context = self.branding_context(project)
        return [
            StepSpec(
                name=name,
                instruction_text=context + "\n\n" + render_prompt_template(template),
                has_dependencies=has_dependencies,
            )
            for name, template, has_dependencies in BRANDING_STEPS
        ]

    async def generate_branding(
        self,
        project: Project,
        stream_callback: StreamCallback | None = None,
        user_id: str | None = None,
    ) -> list[SectionModel]:
        """Generate the branding sections of `project`.

        With a `stream_callback`, every pipeline event is forwarded to it as
        soon as it is produced; otherwise the steps run in batch mode. Only
        completed sections are returned. Storing them is up to the caller.
        """
        logger.info("Generating branding for projectId: %s (streaming: %s)", project.id, stream_callback is not None)
        steps = self.branding_steps(project)
        facts = project.to_facts()
        config = PromptConfig(user_id=user_id, prompt_type="branding")

        try:
            if stream_callback is None:
                results = await PipelineExecutor(self.backend, config).run(steps, facts)
                return [to_section(result) for result in results]

            sections: list[SectionModel] = []

            async def collect(result: SectionResult) -> None:
                logger.debug("Received streamed result for step: %s (%s)", result.name, result.kind)
                if result.kind == "text":
                    sections.append(to_section(result))
                await stream_callback(result)

            await StreamingPipelineExecutor(self.backend, config).run(steps, facts, collect)
            return sections
        except Exception:
            logger.error("Error generating branding for projectId %s", project.id)
            raise
        finally:
            logger.info("Completed branding generation for projectId %s", project.id)

    async def generate_logo_colors_and_typography(
        self,
        project: Project,
        user_id: str | None = None,
    ) -> dict[str, list[Any]]:
        """Generate candidate color schemes, typography sets and logos for `project`.

        Returns a dict with `logos`, `colors` and `typography` lists. A step
        whose output could not be parsed contributes an empty list.
        """
        if not project.id:
            raise PipelineError("Project must have an id to generate logos, colors and typography.")
        logger.info("Generating logo colors and typography for userId: %s, projectId: %s", user_id, project.id)

        description = extract_project_description(project)
        steps = [
            StepSpec(
                name=COLORS_TYPOGRAPHY_STEP,
                instruction_text=description
                + "\n\n"
                + render_prompt_template("branding/colors_typography_generation.jinja2", palette_count=PALETTE_COUNT),
                parser="json_object",
                has_dependencies=False,
            ),
            StepSpec(
                name=LOGO_STEP,
                instruction_text=render_prompt_template("branding/logo_generation.jinja2", logo_count=LOGO_COUNT),
                parser="json",
                requires_steps=frozenset({COLORS_TYPOGRAPHY_STEP}),
            ),
        ]
        config = PromptConfig(user_id=user_id, prompt_type="branding_assets")
        colors_typography, logos = await PipelineExecutor(self.backend, config).run(steps, project.to_facts())

        assets = colors_typography.parsed_data
        if not isinstance(assets, dict) or _is_parse_failure(assets):
            logger.warning("Colors and typography output for project %s could not be parsed", project.id)
            assets = {}
        logo_list = logos.parsed_data
        if not isinstance(logo_list, list):
            logger.warning("Logo output for project %s could not be parsed", project.id)
            logo_list = []

        return {
            "logos": logo_list,
            "colors": list(assets.get("colors") or []),
            "typography": list(assets.get("typography") or []),
        }
