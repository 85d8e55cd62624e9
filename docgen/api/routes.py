import logging
from functools import lru_cache
from typing import Any
from uuid import uuid4

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Header
from fastapi import HTTPException
from fastapi import status
from fastapi.responses import StreamingResponse

from docgen.core.exceptions import ProjectNotFoundError
from docgen.core.security import verify_api_key
from docgen.generation_logic.stream_orchestrator import _stream_branding_generation
from docgen.models.project_models import Branding
from docgen.models.project_models import BrandingUpdate
from docgen.models.project_models import Project
from docgen.models.project_models import ProjectCreate
from docgen.services.branding_service import BrandingService
from docgen.services.llm import GenerationBackend
from docgen.services.llm import OpenAIBackend
from docgen.services.project_store import ProjectStore
from docgen.services.project_store import project_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", dependencies=[Depends(verify_api_key)])


@lru_cache
def get_generation_backend() -> GenerationBackend:
    return OpenAIBackend()


def get_project_store() -> ProjectStore:
    return project_store


def get_branding_service(backend: GenerationBackend = Depends(get_generation_backend)) -> BrandingService:
    return BrandingService(backend)


def _load_project(store: ProjectStore, project_id: str) -> Project:
    try:
        return store.get(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/projects", status_code=status.HTTP_201_CREATED, tags=["Projects"])
async def create_project(
    payload: ProjectCreate,
    store: ProjectStore = Depends(get_project_store),
) -> Project:
    return store.create(payload)


@router.get("/projects/{project_id}", tags=["Projects"])
async def get_project(project_id: str, store: ProjectStore = Depends(get_project_store)) -> Project:
    return _load_project(store, project_id)


@router.get("/brandings/generate/{project_id}", tags=["Branding"])
async def generate_branding(
    project_id: str,
    x_user_id: str | None = Header(default=None),
    service: BrandingService = Depends(get_branding_service),
    store: ProjectStore = Depends(get_project_store),
) -> StreamingResponse:
    """Generate the branding kit of a project, streaming NDJSON events as each section is produced.

    Stream events:
    - `section`: a pipeline event (`kind` "event" when a step starts, "text" when it completes).
    - `data`: the stored branding sections once every step has completed.
    - `error`: generation failed; no further events follow.
    - `finished`: the stream completed successfully.
    """
    request_id = str(uuid4())
    logger.info("[%s] /brandings/generate called for project %s", request_id, project_id)
    _load_project(store, project_id)

    return StreamingResponse(
        _stream_branding_generation(project_id, service, store, user_id=x_user_id),
        media_type="application/x-ndjson",
    )


@router.post("/brandings/colors-and-typography/{project_id}", tags=["Branding"])
async def generate_colors_and_typography(
    project_id: str,
    x_user_id: str | None = Header(default=None),
    service: BrandingService = Depends(get_branding_service),
    store: ProjectStore = Depends(get_project_store),
) -> dict[str, Any]:
    """Generate candidate color schemes, typography sets and logos, and store them on the project."""
    project = _load_project(store, project_id)
    assets = await service.generate_logo_colors_and_typography(project, user_id=x_user_id)
    store.save_generated_assets(project_id, assets)
    logger.info(
        "Generated %d logos, %d color schemes and %d typography sets for project %s",
        len(assets["logos"]),
        len(assets["colors"]),
        len(assets["typography"]),
        project_id,
    )
    return assets


@router.get("/brandings/{project_id}", tags=["Branding"])
async def get_branding(project_id: str, store: ProjectStore = Depends(get_project_store)) -> Branding:
    return _load_project(store, project_id).analysis_result.branding


@router.put("/brandings/{project_id}", tags=["Branding"])
async def update_branding(
    project_id: str,
    payload: BrandingUpdate,
    store: ProjectStore = Depends(get_project_store),
) -> Branding:
    """Apply a partial update (chosen colors, typography, logo or edited sections) to a project's branding."""
    _load_project(store, project_id)
    return store.update_branding(project_id, payload).analysis_result.branding


@router.delete("/brandings/{project_id}", tags=["Branding"])
async def reset_branding(project_id: str, store: ProjectStore = Depends(get_project_store)) -> Branding:
    _load_project(store, project_id)
    return store.reset_branding(project_id).analysis_result.branding
