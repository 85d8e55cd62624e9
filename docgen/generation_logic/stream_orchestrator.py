import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from uuid import uuid4

from docgen.core.exceptions import PipelineError
from docgen.core.exceptions import ProjectNotFoundError
from docgen.core.exceptions import StepSpecError
from docgen.models.pipeline_models import SectionResult
from docgen.services.branding_service import BrandingService
from docgen.services.llm import LLMError
from docgen.services.project_store import ProjectStore

__all__ = [
    "_create_stream_event",
    "_stream_branding_generation",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# NDJSON event helper
# ---------------------------------------------------------------------------


def _create_stream_event(
    event_type: str,
    message: str | None = None,
    payload: dict[str, Any] | None = None,
) -> str:
    """Serialize a stream event dict to an NDJSON line."""
    event: dict[str, Any] = {"type": event_type}
    if message is not None:
        event["message"] = message
    if payload is not None:
        event["payload"] = payload
    return json.dumps(event) + "\n"


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, StepSpecError):
        return f"Invalid generation steps: {str(exc)}"
    if isinstance(exc, PipelineError):
        return f"Pipeline processing error: {str(exc)}"
    if isinstance(exc, LLMError):
        return f"Language model processing error: {str(exc)}"
    return f"An unexpected server error occurred: {str(exc)}"


# ---------------------------------------------------------------------------
# Branding generation stream
# ---------------------------------------------------------------------------


async def _stream_branding_generation(
    project_id: str,
    service: BrandingService,
    store: ProjectStore,
    user_id: str | None = None,
) -> AsyncIterator[str]:
    """Run the streaming branding pipeline and yield its events as NDJSON lines.

    Pipeline events pass through a single-slot queue and the pipeline waits
    until each line has been handed to the transport before it continues.
    """
    request_id = str(uuid4())
    logger.info("[%s] Initiating streaming branding generation for project %s", request_id, project_id)

    try:
        project = store.get(project_id)
    except ProjectNotFoundError as e:
        yield _create_stream_event("error", message=str(e))
        return

    queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue(maxsize=1)

    async def forward(result: SectionResult) -> None:
        await queue.put(("section", result))
        await queue.join()

    async def produce() -> None:
        try:
            sections = await service.generate_branding(project, stream_callback=forward, user_id=user_id)
        except Exception as e:
            await queue.put(("error", e))
        else:
            await queue.put(("done", sections))

    producer = asyncio.create_task(produce())
    try:
        while True:
            kind, item = await queue.get()
            if kind == "section":
                yield _create_stream_event("section", payload=item.model_dump())
                queue.task_done()
                continue

            queue.task_done()
            if kind == "error":
                logger.error("[%s] Branding generation failed: %s", request_id, str(item))
                yield _create_stream_event("error", message=_error_message(item))
                return

            updated = store.save_branding_sections(project_id, item)
            yield _create_stream_event(
                "data",
                message="Branding generation complete.",
                payload={"sections": [section.model_dump() for section in updated.analysis_result.branding.sections]},
            )
            yield _create_stream_event("finished", message="Stream completed successfully.")
            return
    finally:
        if not producer.done():
            producer.cancel()
        logger.info("[%s] Stream generation logic finished.", request_id)
