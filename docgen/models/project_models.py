from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic import Field

from docgen.models.pipeline_models import ProjectFacts

PROJECT_DESCRIPTION_SECTION = "Project Description"


class SectionModel(BaseModel):
    """A persisted section of a generated document."""

    name: str
    type: str
    data: str
    summary: str


class DocumentSections(BaseModel):
    sections: list[SectionModel] = Field(default_factory=list)


class Branding(BaseModel):
    """Branding kit of a project: generated sections plus the chosen visual assets."""

    sections: list[SectionModel] = Field(default_factory=list)
    colors: dict[str, Any] | None = None
    typography: dict[str, Any] | None = None
    logo: dict[str, Any] | None = None
    generated_logos: list[dict[str, Any]] = Field(default_factory=list)
    generated_colors: list[dict[str, Any]] = Field(default_factory=list)
    generated_typography: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BrandingUpdate(BaseModel):
    """Partial update of a project's branding kit; only the fields sent are applied."""

    sections: list[SectionModel] | None = None
    colors: dict[str, Any] | None = None
    typography: dict[str, Any] | None = None
    logo: dict[str, Any] | None = None
    generated_logos: list[dict[str, Any]] | None = None
    generated_colors: list[dict[str, Any]] | None = None
    generated_typography: list[dict[str, Any]] | None = None


class AnalysisResult(BaseModel):
    business_plan: DocumentSections | None = None
    branding: Branding = Field(default_factory=Branding)


class Project(BaseModel):
    """Represents the document-under-generation and everything generated for it so far."""

    id: str | None = None
    name: str | None = None
    description: str = ""
    targets: str | None = None
    type: str | None = None
    scope: str | None = None
    analysis_result: AnalysisResult = Field(default_factory=AnalysisResult)

    def to_facts(self) -> ProjectFacts:
        """Snapshot the descriptive fields handed to the step prompts."""
        return ProjectFacts(
            project_id=self.id,
            description=self.description,
            targets=self.targets,
            type=self.type,
            scope=self.scope,
        )


class ProjectCreate(BaseModel):
    """Payload accepted by the project creation endpoint."""

    name: str | None = None
    description: str = Field(..., min_length=1)
    targets: str | None = None
    type: str | None = None
    scope: str | None = None
    business_plan: DocumentSections | None = None
    branding: Branding | None = None


def extract_project_description(project: Project) -> str:
    """Return the project description followed by the business plan's description section, if any."""
    business_plan_description = ""
    business_plan = project.analysis_result.business_plan
    if business_plan is not None:
        for section in business_plan.sections:
            if section.name == PROJECT_DESCRIPTION_SECTION:
                business_plan_description = section.data
                break
    return project.description + "\n\n" + business_plan_description
