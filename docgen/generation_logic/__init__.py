"""Generation logic package.

This package groups the pieces of the step-based generation pipeline that do
not talk to the backend themselves: context assembly, prompt composition,
result parsing, step validation and the NDJSON stream orchestration.
Keeping them here allows `docgen/api/routes.py` to stay minimal and focused on
HTTP routing while core business logic lives in composable modules.
"""

from .context_assembly import assemble_context  # noqa: F401
from .prompt_composition import compose_prompt  # noqa: F401
from .result_parsing import parse_result  # noqa: F401
from .result_parsing import register_parser  # noqa: F401
from .step_validation import validate_steps  # noqa: F401
