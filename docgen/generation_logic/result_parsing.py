"""Named parser strategies for step output, and the never-failing wrapper the pipeline uses.

Steps refer to parsers by name (`StepSpec.parser`), so a step list stays plain
data and every parser can be exercised on its own.
"""

import logging
from collections.abc import Callable
from typing import Any

from docgen.models.pipeline_models import ParseOutcome
from docgen.models.pipeline_models import StepSpec
from docgen.services.llm import JSONParsingError
from docgen.services.llm import extract_json

logger = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "Parsing error"

ParserFn = Callable[[str], Any]

_PARSERS: dict[str, ParserFn] = {}


def register_parser(name: str) -> Callable[[ParserFn], ParserFn]:
    """Decorator registering `fn` as the parser strategy called `name`."""

    def decorator(fn: ParserFn) -> ParserFn:
        if name in _PARSERS and _PARSERS[name] is not fn:
            raise ValueError(f"Parser '{name}' is already registered")
        _PARSERS[name] = fn
        return fn

    return decorator


def get_parser(name: str) -> ParserFn:
    try:
        return _PARSERS[name]
    except KeyError:
        raise KeyError(f"Unknown parser '{name}'") from None


def is_registered(name: str) -> bool:
    return name in _PARSERS


@register_parser("json")
def parse_json(text: str) -> Any:
    return extract_json(text)


@register_parser("json_object")
def parse_json_object(text: str) -> dict[str, Any]:
    data = extract_json(text)
    if not isinstance(data, dict):
        raise JSONParsingError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_result(raw_text: str, spec: StepSpec) -> ParseOutcome:
    """Run the step's parser over its cleaned output. Never raises.

    Steps without a parser yield no value. Any failure (including an
    unregistered parser name) yields a fallback payload carrying the raw
    text, flagged as failed.
    """
    if spec.parser is None:
        return ParseOutcome(value=None, failed=False)

    try:
        value = get_parser(spec.parser)(raw_text)
    except Exception as e:
        logger.error("Error parsing step '%s' with parser '%s': %s", spec.name, spec.parser, e)
        return ParseOutcome(value={"error": PARSE_ERROR_MESSAGE, "content": raw_text}, failed=True)

    logger.info("Successfully parsed step '%s' with parser '%s'", spec.name, spec.parser)
    return ParseOutcome(value=value, failed=False)
