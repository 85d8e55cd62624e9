"""Core custom exceptions for the application."""


class PipelineError(Exception):
    """Base exception for pipeline-related errors."""


class ConfigurationError(PipelineError):
    """Exception for configuration-related errors (e.g., missing templates, invalid settings)."""


class StepSpecError(PipelineError):
    """Raised when a list of steps is inconsistent (duplicate names, forward references, unknown parsers)."""


class ProjectNotFoundError(PipelineError):
    """Raised when a project cannot be found in the project store."""
