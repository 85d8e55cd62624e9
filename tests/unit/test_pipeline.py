import pytest

from docgen.core.exceptions import StepSpecError
from docgen.generation_logic.context_assembly import assemble_context
from docgen.models.pipeline_models import PromptConfig
from docgen.models.pipeline_models import StepSpec
from docgen.services.llm import LLMError
from docgen.services.llm import clean_ai_text
from docgen.services.pipeline import PipelineExecutor

HEADER = StepSpec(name="Header", instruction_text="Write the header.", has_dependencies=False)
BODY = StepSpec(name="Body", instruction_text="Write the body.", requires_steps=["Header"])
FOOTER = StepSpec(name="Footer", instruction_text="Write the footer.")
STEPS = [HEADER, BODY, FOOTER]


@pytest.fixture
def recorded_contexts(monkeypatch):
    contexts: dict[str, str] = {}

    def recording_assemble(completed, spec):
        contexts[spec.name] = assemble_context(completed, spec)
        return contexts[spec.name]

    monkeypatch.setattr("docgen.services.pipeline.assemble_context", recording_assemble)
    return contexts


@pytest.mark.asyncio
async def test_end_to_end_contexts(stub_backend, facts, recorded_contexts):
    results = await PipelineExecutor(stub_backend).run(STEPS, facts)

    assert recorded_contexts["Header"] == ""
    assert recorded_contexts["Body"] == "## Header\n\nHeader-OUT\n\n---\n"
    assert recorded_contexts["Footer"] == "## Header\n\nHeader-OUT\n\n---\n## Body\n\nBody-OUT\n\n---\n"

    assert [r.name for r in results] == ["Header", "Body", "Footer"]
    assert [r.data for r in results] == ["Header-OUT", "Body-OUT", "Footer-OUT"]
    assert all(r.kind == "text" for r in results)
    assert results[0].summary == "Header for Project p-1"
    assert all(r.parsed_data is None for r in results)


@pytest.mark.asyncio
async def test_requests_are_issued_in_order_with_previous_output(stub_backend, facts):
    await PipelineExecutor(stub_backend).run(STEPS, facts)

    assert stub_backend.steps_called == ["Header", "Body", "Footer"]
    header_request, body_request, footer_request = (request for request, _ in stub_backend.calls)
    assert "PREVIOUS CONTEXT" not in header_request
    assert "Header-OUT" in body_request
    assert "Header-OUT" in footer_request and "Body-OUT" in footer_request


@pytest.mark.asyncio
async def test_parse_failure_does_not_stop_the_run(stub_backend_factory, facts):
    backend = stub_backend_factory(responses={"Colors": "not json"})
    steps = [
        StepSpec(name="Colors", instruction_text="c", parser="json"),
        StepSpec(name="Logo", instruction_text="l"),
    ]

    results = await PipelineExecutor(backend).run(steps, facts)

    assert results[0].parsed_data == {"error": "Parsing error", "content": "not json"}
    assert results[0].data == "not json"
    assert results[1].data == "Logo-OUT"


@pytest.mark.asyncio
async def test_parsed_value_is_attached(stub_backend_factory, facts):
    backend = stub_backend_factory(responses={"Colors": '{"colors": []}'})
    results = await PipelineExecutor(backend).run(
        [StepSpec(name="Colors", instruction_text="c", parser="json_object")], facts
    )
    assert results[0].parsed_data == {"colors": []}


@pytest.mark.asyncio
async def test_backend_failure_aborts_the_run(stub_backend_factory, facts):
    backend = stub_backend_factory(fail_on={"Body"})

    with pytest.raises(LLMError):
        await PipelineExecutor(backend).run(STEPS, facts)

    assert backend.steps_called == ["Header", "Body"]


@pytest.mark.asyncio
async def test_runs_are_deterministic(stub_backend_factory, facts):
    first = await PipelineExecutor(stub_backend_factory()).run(STEPS, facts)
    second = await PipelineExecutor(stub_backend_factory()).run(STEPS, facts)
    assert [r.model_dump_json() for r in first] == [r.model_dump_json() for r in second]


@pytest.mark.asyncio
async def test_invalid_steps_rejected_before_any_call(stub_backend, facts):
    steps = [StepSpec(name="Body", instruction_text="b", requires_steps=["Header"]), HEADER]
    with pytest.raises(StepSpecError):
        await PipelineExecutor(stub_backend).run(steps, facts)
    assert stub_backend.calls == []


@pytest.mark.asyncio
async def test_empty_step_list(stub_backend, facts):
    assert await PipelineExecutor(stub_backend).run([], facts) == []


@pytest.mark.asyncio
async def test_cleaned_text_is_stored_and_passed_on(stub_backend_factory, facts):
    backend = stub_backend_factory(responses={"Header": "```html\n<h1>Hi</h1>\n```"}, clean=clean_ai_text)

    results = await PipelineExecutor(backend).run([HEADER, BODY], facts)

    assert results[0].data == "<h1>Hi</h1>"
    body_request = backend.calls[1][0]
    assert "## Header\n\n<h1>Hi</h1>\n\n---\n" in body_request
    assert "```" not in body_request


@pytest.mark.asyncio
async def test_facts_toggle(stub_backend, facts):
    await PipelineExecutor(stub_backend, include_facts=False).run([HEADER], facts)
    assert "PROJECT DETAILS" not in stub_backend.calls[0][0]


@pytest.mark.asyncio
async def test_summary_without_project_id(stub_backend):
    results = await PipelineExecutor(stub_backend).run([HEADER], None)
    assert results[0].summary == "Header"
    assert "PROJECT DETAILS" not in stub_backend.calls[0][0]


@pytest.mark.asyncio
async def test_config_is_forwarded_with_step_prompt_type(stub_backend, facts):
    config = PromptConfig(model_name="test-model", user_id="user-9")
    await PipelineExecutor(stub_backend, config).run([HEADER, BODY], facts)

    sent = [c for _, c in stub_backend.calls]
    assert [c.prompt_type for c in sent] == ["Header", "Body"]
    assert all(c.model_name == "test-model" and c.user_id == "user-9" for c in sent)
    assert config.prompt_type is None
