import pytest

from docgen.models.pipeline_models import ProjectFacts
from docgen.models.pipeline_models import PromptConfig
from docgen.services.llm import LLMError


class StubBackend:
    """GenerationBackend double.

    Answers each request with `responses[step]` (or "<step>-OUT"), where the
    step is read from the prompt type the executor puts in the config. Steps
    listed in `fail_on` raise LLMError.
    """

    def __init__(self, responses=None, fail_on=(), clean=None):
        self.responses = dict(responses or {})
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, PromptConfig]] = []
        self._clean = clean

    async def generate(self, request: str, config: PromptConfig) -> str:
        self.calls.append((request, config))
        step = config.prompt_type
        if step in self.fail_on:
            raise LLMError(f"backend down for {step}")
        return self.responses.get(step, f"{step}-OUT")

    def clean(self, raw_text: str) -> str:
        return self._clean(raw_text) if self._clean else raw_text

    @property
    def steps_called(self) -> list[str]:
        return [config.prompt_type for _, config in self.calls]


@pytest.fixture
def stub_backend_factory():
    return StubBackend


@pytest.fixture
def stub_backend():
    return StubBackend()


@pytest.fixture
def facts():
    return ProjectFacts(
        project_id="p-1",
        description="A coffee subscription service",
        targets="Remote workers",
        type="B2C",
        scope="Europe",
    )
