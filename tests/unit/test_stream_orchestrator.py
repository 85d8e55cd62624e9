import json

import pytest

from docgen.generation_logic.stream_orchestrator import _create_stream_event
from docgen.generation_logic.stream_orchestrator import _stream_branding_generation
from docgen.models.pipeline_models import SectionResult
from docgen.models.project_models import ProjectCreate
from docgen.models.project_models import SectionModel
from docgen.services.llm import LLMError
from docgen.services.project_store import ProjectStore


class FakeBrandingService:
    """Emits a started/completed pair per name, optionally failing before a name."""

    def __init__(self, names=("Brand Header", "Brand Footer"), fail_before=None):
        self.names = names
        self.fail_before = fail_before
        self.emitted = []

    async def generate_branding(self, project, stream_callback=None, user_id=None):
        sections = []
        for name in self.names:
            await stream_callback(
                SectionResult(name=name, kind="event", data="step_started", summary=f"Starting {name}")
            )
            self.emitted.append(name)
            if name == self.fail_before:
                raise LLMError("quota exceeded")
            result = SectionResult(name=name, kind="text", data=f"<{name}>", summary=name)
            sections.append(SectionModel(name=name, type="text", data=result.data, summary=name))
            await stream_callback(result)
        return sections


@pytest.fixture
def store():
    return ProjectStore()


@pytest.fixture
def project_id(store):
    return store.create(ProjectCreate(description="A bakery")).id


async def _collect(stream):
    return [json.loads(line) async for line in stream]


def test_create_stream_event():
    line = _create_stream_event("status", message="hi")
    assert line.endswith("\n")
    assert json.loads(line) == {"type": "status", "message": "hi"}


@pytest.mark.asyncio
async def test_stream_happy_path(store, project_id):
    events = await _collect(_stream_branding_generation(project_id, FakeBrandingService(), store))

    assert [e["type"] for e in events] == ["section", "section", "section", "section", "data", "finished"]
    assert events[0]["payload"]["kind"] == "event"
    assert events[1]["payload"] == {
        "name": "Brand Header",
        "kind": "text",
        "data": "<Brand Header>",
        "summary": "Brand Header",
        "parsed_data": None,
    }
    assert [s["name"] for s in events[4]["payload"]["sections"]] == ["Brand Header", "Brand Footer"]
    assert [s.name for s in store.get(project_id).analysis_result.branding.sections] == ["Brand Header", "Brand Footer"]


@pytest.mark.asyncio
async def test_stream_backend_failure(store, project_id):
    service = FakeBrandingService(fail_before="Brand Footer")
    events = await _collect(_stream_branding_generation(project_id, service, store))

    assert [e["type"] for e in events] == ["section", "section", "section", "error"]
    assert events[-1]["message"] == "Language model processing error: quota exceeded"
    assert store.get(project_id).analysis_result.branding.sections == []


@pytest.mark.asyncio
async def test_stream_unknown_project(store):
    events = await _collect(_stream_branding_generation("missing", FakeBrandingService(), store))
    assert events == [{"type": "error", "message": "Project not found with ID: missing"}]


@pytest.mark.asyncio
async def test_pipeline_waits_for_the_stream_consumer(store, project_id):
    service = FakeBrandingService()
    stream = _stream_branding_generation(project_id, service, store)

    first = json.loads(await stream.__anext__())
    assert first["payload"]["name"] == "Brand Header"
    assert service.emitted == []

    await stream.__anext__()
    assert service.emitted == ["Brand Header"]
    await stream.aclose()
