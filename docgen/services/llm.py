import json
import logging
import pathlib
import re
from typing import Any
from typing import Protocol
from uuid import uuid4

import httpx
import jinja2
from openai import AsyncOpenAI
from openai import OpenAIError

from docgen.core.config import settings
from docgen.core.exceptions import ConfigurationError
from docgen.models.pipeline_models import LLMProvider
from docgen.models.pipeline_models import PromptConfig

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when LLM call fails"""


class JSONParsingError(Exception):
    """Raised when JSON parsing fails"""


# --- Reusable Jinja2 Environment ---
PROMPT_DIR = pathlib.Path(__file__).parent / "prompt_templates"
env: jinja2.Environment | None = None
try:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(PROMPT_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )
    logger.info("Jinja2 environment initialized successfully for path: %s", PROMPT_DIR)
except Exception:
    logger.exception("Failed to initialize Jinja2 environment at %s", PROMPT_DIR)
    env = None


def render_prompt_template(template_name: str, **context: Any) -> str:
    """Render a prompt template from PROMPT_DIR, mapping loader problems to ConfigurationError."""
    if env is None:
        logger.error("Jinja2 environment not initialized, cannot render %s", template_name)
        raise ConfigurationError("Template environment not available.")
    try:
        return env.get_template(template_name).render(**context)
    except jinja2.TemplateNotFound:
        logger.error("Template not found: %s", template_name)
        raise ConfigurationError(f"Template '{template_name}' not found.") from None
    except jinja2.UndefinedError as e:
        logger.error("Template %s rendered with missing variables: %s", template_name, e)
        raise ConfigurationError(f"Template '{template_name}' is missing a variable: {e}") from e


# ---------------------------------------------------------------
# Provider wiring. Every provider speaks the OpenAI chat API.
# ---------------------------------------------------------------
PROVIDER_BASE_URLS: dict[LLMProvider, str | None] = {
    LLMProvider.OPENROUTER: "https://openrouter.ai/api/v1",
    LLMProvider.OPENAI: None,
    LLMProvider.GEMINI: "https://generativelanguage.googleapis.com/v1beta/openai/",
}

timeout_config = httpx.Timeout(
    settings.LLM_CONNECT_TIMEOUT,
    read=settings.LLM_READ_TIMEOUT,
)


def _api_key_for(provider: LLMProvider) -> str | None:
    return {
        LLMProvider.OPENROUTER: settings.openrouter_api_key,
        LLMProvider.OPENAI: settings.openai_api_key,
        LLMProvider.GEMINI: settings.gemini_api_key,
    }[provider]


def build_client(provider: LLMProvider) -> AsyncOpenAI:
    api_key = _api_key_for(provider)
    if not api_key:
        raise LLMError(f"No API key configured for provider '{provider.value}'")
    default_headers = None
    if provider is LLMProvider.OPENROUTER:
        default_headers = {"X-Title": "docgen"}
    # Failed generation calls are surfaced to the pipeline as-is, never retried.
    return AsyncOpenAI(
        base_url=PROVIDER_BASE_URLS[provider],
        api_key=api_key,
        default_headers=default_headers,
        timeout=timeout_config,
        max_retries=0,
    )


class GenerationBackend(Protocol):
    """What the pipeline needs from a text-generation service."""

    async def generate(self, request: str, config: PromptConfig) -> str: ...

    def clean(self, raw_text: str) -> str: ...


class OpenAIBackend:
    """GenerationBackend over OpenAI-compatible chat completion endpoints."""

    def __init__(self, clients: dict[LLMProvider, AsyncOpenAI] | None = None):
        self._clients: dict[LLMProvider, AsyncOpenAI] = dict(clients or {})

    def _client_for(self, provider: LLMProvider) -> AsyncOpenAI:
        if provider not in self._clients:
            self._clients[provider] = build_client(provider)
        return self._clients[provider]

    async def generate(self, request: str, config: PromptConfig) -> str:
        request_id = str(uuid4())
        logger.info(
            "[%s] Making LLM API call with provider: %s, model: %s, prompt type: %s",
            request_id,
            config.provider.value,
            config.model_name,
            config.prompt_type,
        )
        client = self._client_for(config.provider)

        try:
            rsp = await client.chat.completions.create(
                model=config.model_name,
                messages=[{"role": "user", "content": request}],
                max_tokens=settings.llm_max_tokens,
                temperature=settings.llm_temperature,
                user=config.user_id or "anonymous",
            )
        except OpenAIError as e:
            logger.error("[%s] OpenAI API error: %s", request_id, str(e), exc_info=True)
            raise LLMError(f"OpenAI API error: {str(e)}") from e
        except Exception as e:
            logger.exception("[%s] Unexpected error in LLM call", request_id)
            raise LLMError(f"Unexpected error in LLM call: {str(e)}") from e

        logger.debug("[%s] Raw LLM response structure: %s", request_id, str(rsp))

        if not rsp or not getattr(rsp, "choices", None):
            logger.error("[%s] Invalid response structure from LLM API: %s", request_id, str(rsp))
            raise LLMError(f"Invalid response structure from LLM API: {str(rsp)}")

        first_choice = rsp.choices[0]
        if getattr(first_choice, "message", None) is None:
            logger.error("[%s] Missing 'message' in LLM API response: %s", request_id, str(first_choice))
            raise LLMError(f"Missing 'message' in LLM API response: {str(first_choice)}")

        content = getattr(first_choice.message, "content", None)
        if content is None:
            logger.error("[%s] No content in message: %s", request_id, str(first_choice.message))
            raise LLMError(f"No content in message: {str(first_choice.message)}")

        logger.debug("[%s] LLM response received, length: %d chars", request_id, len(content))
        return content

    def clean(self, raw_text: str) -> str:
        return clean_ai_text(raw_text)


# ---------------------------------------------------------------
# Response cleaning
# ---------------------------------------------------------------
_FENCED_RESPONSE = re.compile(r"^```[\w-]*\s*\n?([\s\S]*?)\n?\s*```$")


def clean_ai_text(text: str) -> str:
    """Strip surrounding whitespace and a markdown code fence wrapping the whole response."""
    if not text:
        return ""
    stripped = text.strip()
    match = _FENCED_RESPONSE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


# ---------------------------------------------------------------
# JSON extractor helper
# ---------------------------------------------------------------
def extract_json(text: str) -> Any:
    """Attempts to robustly extract and parse JSON from LLM responses, handling markdown fences and extraneous text."""
    request_id = str(uuid4())
    logger.debug("[%s] Attempting to parse JSON response, length: %d", request_id, len(text))

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("[%s] Initial JSON parse failed, attempting extraction strategies...", request_id)

    # Strategy 1: Markdown Code Fence Extraction
    match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(1))
            logger.info("[%s] Successfully parsed JSON from markdown code fence.", request_id)
            return result
        except json.JSONDecodeError:
            logger.warning("[%s] Failed to parse JSON from fenced block, trying next strategy...", request_id)

    # Strategy 2: raw_decode from each object/array marker in turn
    decoder = json.JSONDecoder()
    starts = [pos for pos, char in enumerate(text) if char in "{["]
    if not starts:
        logger.error("[%s] No JSON object or array marker found in response", request_id)
        raise JSONParsingError("No JSON object or array marker found in response")
    for start in starts:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            continue
        logger.info("[%s] Successfully parsed JSON using raw_decode at offset %d.", request_id, start)
        return obj
    logger.error("[%s] Failed to parse JSON using raw_decode from %d candidate offsets", request_id, len(starts))
    raise JSONParsingError("All strategies to parse JSON from LLM response failed.")
