"""In-memory project storage used by the HTTP layer."""

import logging
from datetime import datetime
from datetime import timezone
from uuid import uuid4

from docgen.core.exceptions import ProjectNotFoundError
from docgen.models.project_models import AnalysisResult
from docgen.models.project_models import Branding
from docgen.models.project_models import BrandingUpdate
from docgen.models.project_models import Project
from docgen.models.project_models import ProjectCreate
from docgen.models.project_models import SectionModel

logger = logging.getLogger(__name__)


class ProjectStore:
    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}

    def create(self, payload: ProjectCreate) -> Project:
        project = Project(
            id=str(uuid4()),
            name=payload.name,
            description=payload.description,
            targets=payload.targets,
            type=payload.type,
            scope=payload.scope,
            analysis_result=AnalysisResult(
                business_plan=payload.business_plan,
                branding=payload.branding or Branding(),
            ),
        )
        self._projects[project.id] = project
        logger.info("Created project %s", project.id)
        return project.model_copy(deep=True)

    def get(self, project_id: str) -> Project:
        try:
            return self._projects[project_id].model_copy(deep=True)
        except KeyError:
            logger.warning("Project not found with ID: %s", project_id)
            raise ProjectNotFoundError(f"Project not found with ID: {project_id}") from None

    def save_branding_sections(self, project_id: str, sections: list[SectionModel]) -> Project:
        """Replace the branding sections of a project, keeping its chosen assets."""
        project = self.get(project_id)
        now = datetime.now(timezone.utc)
        branding = project.analysis_result.branding
        project.analysis_result.branding = branding.model_copy(
            update={
                "sections": sections,
                "created_at": branding.created_at or now,
                "updated_at": now,
            }
        )
        self._projects[project_id] = project
        logger.info("Successfully updated project %s with %d branding sections", project_id, len(sections))
        return project.model_copy(deep=True)

    def save_generated_assets(self, project_id: str, assets: dict[str, list]) -> Project:
        project = self.get(project_id)
        branding = project.analysis_result.branding
        project.analysis_result.branding = branding.model_copy(
            update={
                "generated_logos": assets.get("logos", []),
                "generated_colors": assets.get("colors", []),
                "generated_typography": assets.get("typography", []),
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self._projects[project_id] = project
        return project.model_copy(deep=True)

    def update_branding(self, project_id: str, update: BrandingUpdate) -> Project:
        """Merge the fields set on `update` into the project's branding kit."""
        project = self.get(project_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        merged = {**project.analysis_result.branding.model_dump(), **changes}
        merged["updated_at"] = datetime.now(timezone.utc)
        project.analysis_result.branding = Branding.model_validate(merged)
        self._projects[project_id] = project
        logger.info("Successfully updated branding fields %s for project %s", sorted(changes), project_id)
        return project.model_copy(deep=True)

    def reset_branding(self, project_id: str) -> Project:
        """Replace the project's branding kit with an empty one."""
        project = self.get(project_id)
        project.analysis_result.branding = Branding()
        self._projects[project_id] = project
        logger.info("Successfully reset branding for project %s", project_id)
        return project.model_copy(deep=True)


project_store = ProjectStore()
