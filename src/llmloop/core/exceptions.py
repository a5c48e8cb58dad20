"""Exceptions raised while rendering prompts, calling backends, invoking tools and parsing replies."""

from __future__ import annotations


class LLMLoopError(Exception):
    """Base class for all llmloop errors."""


class RateLimitError(LLMLoopError):
    """The backend signaled throttling (HTTP 429).

    Parameters
    ----------
    until_reset_ms : float | None
        Milliseconds until the backend accepts requests again, if the backend said so.
    """

    def __init__(self, until_reset_ms: float | None = None, message: str | None = None):
        self.until_reset_ms = until_reset_ms
        super().__init__(message or f"Rate limited (reset in {until_reset_ms} ms)")


class BackendError(LLMLoopError):
    """Non-200 response other than rate limiting, or a response missing required fields."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class GenerationError(LLMLoopError, RuntimeError):
    """Generation could not complete (retries exhausted, tool calling did not converge)."""


class ToolError(LLMLoopError):
    """Base class for tool declaration and invocation errors."""


class UnknownToolError(ToolError, KeyError):
    """A requested tool name has no match in the active toolset."""

    def __str__(self) -> str:
        # KeyError quotes its message
        return str(self.args[0]) if self.args else ""


class ArgumentDecodeError(ToolError, ValueError):
    """Tool arguments failed to parse, or a required parameter is missing or mistyped."""


class ToolDefinitionError(ToolError, TypeError):
    """A tool declaration is inconsistent with its function or uses an unmappable type."""


class TemplateError(LLMLoopError, ValueError):
    """A prompt template is malformed, references an undeclared variable, or never converges."""


class ParserError(LLMLoopError, ValueError):
    """A reply could not be parsed into the requested structure."""


class ParserInvariantViolation(LLMLoopError, RuntimeError):
    """The reply parser failed to make progress. This is a bug."""


class ConfigurationError(LLMLoopError, RuntimeError):
    """Required configuration (e.g. an API key) is missing."""
