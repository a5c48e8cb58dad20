"""Functions and helpers for tool use.

A tool is declared explicitly: a ToolDescriptor (name, brief, ordered parameter specs) next to
a plain function. The two phases are separate:

- `Tool.describe()` returns the descriptor used to build function-calling schemas.
- `Tool.invoke()` decodes a JSON argument object against the descriptor and calls the function.

Parameter types are written by the author as python annotations (`str`, `int | None`,
`list[str]`, ...) and mapped to the schema type tags; the function signature itself is only
checked for consistency with the declaration.
"""

from __future__ import annotations

import contextlib
import inspect
import json
import logging
import re
from typing import Any, Awaitable, Callable, Literal, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .exceptions import ArgumentDecodeError, ToolDefinitionError
from ..types.base import JSON, SemanticType
from ..types.core import Chatlog, ToolResultEntry
from ..types.utils import item_type, semantic_type, unwrap_optional
from ..utilities import to_snake_case

logger = logging.getLogger(__name__)

ToolFunction = Callable[..., Union[Any, Awaitable[Any]]]

DocstringStyle = Literal["google", "numpy", "sphinx"]


def _detect_docstring_style(doc: str) -> DocstringStyle:
    """Detect the style of a docstring.

    As of Feb 2025, the automatic style detection in griffe is an Insiders feature. This code approximates it.

    Ref: https://github.com/openai/openai-agents-python/blob/8d906f88f02d30b3cf6068e5de88a5f1e4bafd82/src/agents/function_schema.py#L87-L129
    """
    scores: dict[DocstringStyle, int] = {"sphinx": 0, "numpy": 0, "google": 0}

    sphinx_patterns = [r"^:param\s", r"^:type\s", r"^:return:", r"^:rtype:"]
    for pattern in sphinx_patterns:
        if re.search(pattern, doc, re.MULTILINE):
            scores["sphinx"] += 1

    numpy_patterns = [
        r"^Parameters\s*\n\s*-{3,}",
        r"^Returns\s*\n\s*-{3,}",
        r"^Yields\s*\n\s*-{3,}",
    ]
    for pattern in numpy_patterns:
        if re.search(pattern, doc, re.MULTILINE):
            scores["numpy"] += 1

    google_patterns = [r"^(Args|Arguments):", r"^(Returns):", r"^(Raises):"]
    for pattern in google_patterns:
        if re.search(pattern, doc, re.MULTILINE):
            scores["google"] += 1

    max_score = max(scores.values())
    if max_score == 0:
        return "google"

    # Priority order: sphinx > numpy > google in case of tie
    styles: list[DocstringStyle] = ["sphinx", "numpy", "google"]
    for style in styles:
        if scores[style] == max_score:
            return style

    return "google"


@contextlib.contextmanager
def _suppress_griffe_logging():
    """Suppresses warnings about missing annotations for params."""
    logger = logging.getLogger("griffe")
    previous_level = logger.getEffectiveLevel()
    logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        logger.setLevel(previous_level)


def _parse_docstring(fn: Callable) -> list | None:
    from griffe import Docstring

    doc = inspect.getdoc(fn)
    if not doc:
        return None

    with _suppress_griffe_logging():
        docstring = Docstring(doc, lineno=1, parser=_detect_docstring_style(doc))
        return docstring.parse()


def extract_function_description(fn: Callable) -> str | None:
    """Extract the description from a function's docstring."""
    from griffe import DocstringSectionKind

    parsed = _parse_docstring(fn)
    if parsed is None:
        return None

    return next((section.value for section in parsed if section.kind == DocstringSectionKind.text), None)


def extract_param_descriptions(fn: Callable) -> dict[str, str]:
    """Extract the parameter descriptions from a function's docstring."""
    from griffe import DocstringSectionKind

    parsed = _parse_docstring(fn)
    if parsed is None:
        return {}

    return {
        param.name: param.description
        for section in parsed
        if section.kind == DocstringSectionKind.parameters
        for param in section.value
    }


class ParamSpec(BaseModel):
    """One documented tool parameter."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    type: SemanticType
    required: bool
    description: str = ""
    items: SemanticType | None = Field(default=None, description="Element type, for arrays")
    annotation: Any = Field(default=str, exclude=True, description="Static type arguments are decoded to")
    default: Any = Field(default=None, exclude=True, description="Value used when an optional parameter is absent")

    def to_schema(self) -> dict[str, JSON]:
        schema: dict[str, JSON] = {"type": self.type, "description": self.description}
        if self.type == "array":
            schema["items"] = {"type": self.items} if self.items else {}
        return schema


def param(name: str, annotation: Any = str, description: str = "", default: Any = None) -> ParamSpec:
    """Declare a tool parameter.

    The schema type is inferred from the annotation; `Optional[T]` is described as T and
    marked not required.

    Raises
    ------
    ToolDefinitionError
        If the annotation cannot be mapped to a schema type.

    Examples
    --------
    >>> param("path", str, "file to read").type
    'string'
    >>> param("limit", int | None, "max lines").required
    False
    """
    inner, optional = unwrap_optional(annotation)
    try:
        type_ = semantic_type(inner)
    except TypeError as e:
        raise ToolDefinitionError(f"Parameter '{name}': {e}") from e

    return ParamSpec(
        name=name,
        type=type_,
        required=not optional,
        description=description,
        items=item_type(inner) if type_ == "array" else None,
        annotation=annotation,
        default=default,
    )


class ToolDescriptor(BaseModel):
    """Static metadata for one tool: name, one-line brief, and ordered parameters."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, pattern=r"^[a-zA-Z0-9_-]+$")
    brief: str = ""
    params: tuple[ParamSpec, ...] = ()

    def to_schema(self) -> dict[str, JSON]:
        """Project the descriptor into a function-calling schema."""
        return {
            "name": self.name,
            "description": self.brief,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.params},
                "required": [p.name for p in self.params if p.required],
            },
        }

    def to_openai_tool(self) -> dict[str, JSON]:
        return {"type": "function", "function": self.to_schema()}


def result_to_text(result: Any) -> str:
    """Serialize a tool result to the text sent back to the model."""
    if isinstance(result, str):
        return result
    elif isinstance(result, BaseModel):
        return result.model_dump_json()
    try:
        return json.dumps(result)
    except (TypeError, ValueError) as e:
        logger.debug(f"Could not serialize result as json string: {e}")
        return str(result)


class Tool:
    """A ToolDescriptor paired with the function that implements it.

    Parameters
    ----------
    descriptor : ToolDescriptor
        The declared name, brief, and parameters.
    func : Callable
        Sync or async function; called with one keyword argument per declared parameter.
    takes_chatlog : bool
        If True, the current Chatlog is passed as the first positional argument.
        It is never read from the model's arguments.
    """

    def __init__(self, descriptor: ToolDescriptor, func: ToolFunction, takes_chatlog: bool = False):
        self._descriptor = descriptor
        self._func = func
        self._takes_chatlog = takes_chatlog
        self._adapters = {p.name: TypeAdapter(p.annotation) for p in descriptor.params}

        self.__name__ = descriptor.name
        self.__doc__ = descriptor.brief

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def takes_chatlog(self) -> bool:
        return self._takes_chatlog

    def describe(self) -> ToolDescriptor:
        """Return the tool's descriptor."""
        return self._descriptor

    def to_schema(self) -> dict[str, JSON]:
        return self._descriptor.to_schema()

    def _single_string_param(self) -> ParamSpec | None:
        required = [p for p in self._descriptor.params if p.required]
        if len(required) == 1 and required[0].type == "string":
            return required[0]
        return None

    def decode_arguments(self, payload: Any) -> dict[str, Any]:
        """Decode a JSON argument object into keyword arguments for the function.

        A bare (non-object) value is accepted when the tool has exactly one required string parameter.

        Raises
        ------
        ArgumentDecodeError
            If the payload is not an object, a required parameter is missing,
            or a value cannot be decoded to the parameter's type.
        """
        if not isinstance(payload, Mapping):
            single = self._single_string_param()
            if single is None or not isinstance(payload, str):
                raise ArgumentDecodeError(f"Arguments for '{self.name}' must be a JSON object, got {payload!r}")
            payload = {single.name: payload}

        kwargs: dict[str, Any] = {}
        for spec in self._descriptor.params:
            if spec.name not in payload or payload[spec.name] is None:
                if spec.required:
                    raise ArgumentDecodeError(f"Missing required parameter '{spec.name}' for tool '{self.name}'")
                kwargs[spec.name] = spec.default
                continue
            try:
                kwargs[spec.name] = self._adapters[spec.name].validate_python(payload[spec.name])
            except ValidationError as e:
                raise ArgumentDecodeError(
                    f"Parameter '{spec.name}' of tool '{self.name}' could not be decoded: {e}"
                ) from e
        return kwargs

    @staticmethod
    def parse_arguments(arguments: str) -> Any:
        """Parse a serialized argument string; text that is not JSON is returned as-is."""
        if not arguments.strip():
            return {}
        try:
            return json.loads(arguments)
        except json.JSONDecodeError:
            return arguments

    async def invoke(self, payload: Any, chatlog: Chatlog | None = None) -> str:
        """Decode the arguments, call the function, and return its result as text."""
        kwargs = self.decode_arguments(payload)
        args = (chatlog if chatlog is not None else Chatlog(),) if self._takes_chatlog else ()

        logger.debug(f"Invoking {self.name} with params: {kwargs}")
        result = self._func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result_to_text(result)

    async def invoke_json(self, arguments: str, chatlog: Chatlog | None = None) -> str:
        """Invoke with a serialized (JSON) argument string."""
        return await self.invoke(self.parse_arguments(arguments), chatlog)

    @staticmethod
    def respond(tool_call_id: str, result: Any) -> ToolResultEntry:
        """Wrap a tool result as the chat entry answering `tool_call_id`."""
        if not tool_call_id:
            raise ValueError("tool_call_id is required")
        return ToolResultEntry(tool_call_id=tool_call_id, content=result_to_text(result))

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, params={[p.name for p in self._descriptor.params]})"


def _fill_descriptions(func: Callable, params: Sequence[ParamSpec]) -> tuple[ParamSpec, ...]:
    documented = extract_param_descriptions(func) if any(not p.description for p in params) else {}
    return tuple(
        p if p.description else p.model_copy(update={"description": (documented.get(p.name) or "").strip()})
        for p in params
    )


def _check_signature(func: Callable, params: Sequence[ParamSpec], takes_chatlog: bool) -> None:
    sig = inspect.signature(func)
    names = [name for name in sig.parameters if name not in ("self", "cls")]
    if takes_chatlog:
        if not names:
            raise ToolDefinitionError(f"{func.__name__} must accept the chatlog as its first argument")
        names = names[1:]

    if len(names) != len(params):
        raise ToolDefinitionError(
            f"Argument size does not match: {func.__name__} takes {len(names)} parameters, {len(params)} documented"
        )
    missing = [p.name for p in params if p.name not in names]
    if missing:
        raise ToolDefinitionError(f"Documented parameters {missing} are not parameters of {func.__name__}")


def toolize(
    func: ToolFunction,
    *,
    name: str | None = None,
    brief: str | None = None,
    params: Sequence[ParamSpec] = (),
    takes_chatlog: bool = False,
) -> Tool:
    """Pair a function with its declaration.

    The name defaults to the snake_cased function name; the brief and any empty parameter
    descriptions are taken from the docstring.

    Raises
    ------
    ToolDefinitionError
        If the declared parameters do not match the function's parameters.
    """
    _check_signature(func, params, takes_chatlog)

    if brief is None:
        brief = (extract_function_description(func) or "").strip()
        if not brief:
            logger.warning(f"Tool {func.__name__} has no brief; models will not know when to use it.")

    descriptor = ToolDescriptor(
        name=name or to_snake_case(func.__name__),
        brief=brief,
        params=_fill_descriptions(func, params),
    )
    return Tool(descriptor, func, takes_chatlog=takes_chatlog)


def tool(
    func: ToolFunction | None = None,
    *,
    name: str | None = None,
    brief: str | None = None,
    params: Sequence[ParamSpec] = (),
    takes_chatlog: bool = False,
) -> Tool | Callable[[ToolFunction], Tool]:
    """Decorate a function into a Tool.

    Can be used either as a bare decorator (@tool) for functions without parameters,
    or with a declaration (@tool(brief=..., params=[...])).

    Examples
    --------
    >>> @tool(brief="Run a bash command", params=[param("command", str, "command to run")])
    ... async def execute_bash(command: str) -> str:
    ...     return "Hello, world"
    >>> execute_bash.describe().params[0].name
    'command'
    """

    def decorator(f: ToolFunction) -> Tool:
        return toolize(f, name=name, brief=brief, params=params, takes_chatlog=takes_chatlog)

    if func is not None:
        return decorator(func)
    return decorator
