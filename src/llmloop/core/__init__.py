"""Core components: prompt templates, reply parsers, tools, and the generation loop."""

from .chain import Chain
from .embed import DeepinfraTextEmbedder, TextEmbedder
from .exceptions import (
    ArgumentDecodeError,
    BackendError,
    ConfigurationError,
    GenerationError,
    LLMLoopError,
    ParserError,
    ParserInvariantViolation,
    RateLimitError,
    TemplateError,
    ToolDefinitionError,
    ToolError,
    UnknownToolError,
)
from .llm import LLM
from .parsers import (
    JsonParser,
    ListNode,
    MarkdownLikeParser,
    MarkdownListParser,
    PlaintextParser,
    ReplyParser,
    YamlParser,
    to_json,
)
from .template import (
    ConversationTemplate,
    JinjaMessageTemplate,
    MessageTemplate,
    PromptMessageTemplate,
    PromptTemplate,
    StaticMessageTemplate,
)
from .tool import ParamSpec, Tool, ToolDescriptor, param, tool, toolize
from .tools import Toolset

__all__ = [
    # Generation
    "LLM",
    "Chain",
    "TextEmbedder",
    "DeepinfraTextEmbedder",
    # Templates
    "PromptTemplate",
    "MessageTemplate",
    "StaticMessageTemplate",
    "PromptMessageTemplate",
    "JinjaMessageTemplate",
    "ConversationTemplate",
    # Parsers
    "ReplyParser",
    "MarkdownLikeParser",
    "MarkdownListParser",
    "JsonParser",
    "PlaintextParser",
    "YamlParser",
    "ListNode",
    "to_json",
    # Tools
    "ParamSpec",
    "ToolDescriptor",
    "Tool",
    "Toolset",
    "param",
    "tool",
    "toolize",
    # Exceptions
    "LLMLoopError",
    "RateLimitError",
    "BackendError",
    "GenerationError",
    "ToolError",
    "UnknownToolError",
    "ArgumentDecodeError",
    "ToolDefinitionError",
    "TemplateError",
    "ParserError",
    "ParserInvariantViolation",
    "ConfigurationError",
]
