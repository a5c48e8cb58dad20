"""Components for composable prompting.

A PromptTemplate expands `{variable}` placeholders in a string. Variable values may themselves
contain placeholders; rendering repeats until nothing is left to expand, and refuses to loop
forever on cyclic definitions.

Sometimes we want to predefine the entries of a conversation. A MessageTemplate defines the
role and the template used to render one ChatEntry:

- StaticMessageTemplate renders the same content every time.
- PromptMessageTemplate renders with a PromptTemplate.
- JinjaMessageTemplate renders with a jinja2 Template, optionally validating variables with pydantic.

A ConversationTemplate renders an ordered sequence of MessageTemplates (or fixed entries) into a Chatlog.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence, Type

from jinja2 import StrictUndefined, Template as JinjaTemplate
from jinja2.exceptions import TemplateError as JinjaTemplateError
from pydantic import BaseModel, ValidationError
from typing_extensions import override, runtime_checkable  # TODO: import from typing when drop support for 3.11

from .exceptions import TemplateError
from ..types.core import ChatEntry, Chatlog, Role

logger = logging.getLogger(__name__)


class PromptTemplate:
    """Render `{variable}` placeholders.

    - A backslash escapes the following character; escaped text is kept verbatim.
    - A newline inside a placeholder cancels it.
    - Substitution repeats so that variables may refer to other variables.

    Examples
    --------
    >>> prompt = PromptTemplate("Your name is {name}", {"name": "Tom"})
    >>> prompt.render()
    'Your name is Tom'
    """

    max_render_rounds: int = 6

    def __init__(self, prompt: str, variables: Mapping[str, Any] | None = None):
        self.prompt = prompt
        self.variables: dict[str, str] = {}
        for name, value in (variables or {}).items():
            self.set_variable(name, value)

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value if isinstance(value, str) else str(value)

    def render(self) -> str:
        """Substitute variables until no placeholder remains.

        Raises
        ------
        TemplateError
            If the prompt is malformed, references an undeclared variable,
            or substitution does not converge within `max_render_rounds`.
        """
        rendered = self.prompt
        for _ in range(self.max_render_rounds):
            varset = self.extract_vars(rendered)
            if not varset:
                return rendered
            for var in varset:
                if var not in self.variables:
                    raise TemplateError(f"Variable '{var}' not found in variables map")
                rendered = rendered.replace("{" + var + "}", self.variables[var])

        if self.extract_vars(rendered):
            raise TemplateError(
                f"Variable replacements haven't converged after {self.max_render_rounds} runs. "
                "Please check for circular dependencies."
            )
        return rendered

    @staticmethod
    def extract_vars(prompt: str) -> set[str]:
        """Return the names of all unescaped placeholders in the prompt."""
        prompt_vars: set[str] = set()
        varname: list[str] = []
        in_var = False
        i = 0
        while i < len(prompt):
            ch = prompt[i]
            if ch == "\\":
                if i + 1 >= len(prompt):
                    raise TemplateError("Escape character at end of prompt")
                # skip the escaped character
                i += 2
                if in_var:
                    varname.append(prompt[i - 1])
                continue

            if ch == "{" and not in_var:
                in_var = True
            elif ch == "}" and in_var:
                in_var = False
                prompt_vars.add("".join(varname))
                varname = []
            elif ch == "\n" and in_var:
                in_var = False
                varname = []
            elif in_var:
                if ch == "{":
                    raise TemplateError("Nested curly braces in prompt")
                varname.append(ch)
            i += 1

        if in_var:
            raise TemplateError("Unmatched curly brace in prompt")
        return prompt_vars


@runtime_checkable
class MessageTemplate(Protocol):
    """Render one ChatEntry from a role, a template, and template variables."""

    role: Role
    template: Any

    def render(self, template_vars: Mapping[str, Any] | BaseModel | None = None) -> ChatEntry:
        """Render the entry."""
        raise NotImplementedError


class StaticMessageTemplate(MessageTemplate):
    """Render fixed content; template variables are ignored.

    Examples
    --------
        >>> template = StaticMessageTemplate(role="system", template="You are a helpful assistant.")
        >>> template.render().content
        'You are a helpful assistant.'
    """

    def __init__(self, role: Role, template: str):
        self.role = role
        self.template = template

    @override
    def render(self, template_vars: Mapping[str, Any] | BaseModel | None = None) -> ChatEntry:
        return ChatEntry(role=self.role, content=self.template)


def _as_dict(template_vars: Mapping[str, Any] | BaseModel | None) -> dict[str, Any]:
    if template_vars is None:
        return {}
    if isinstance(template_vars, BaseModel):
        return template_vars.model_dump()
    return dict(template_vars)


class PromptMessageTemplate(MessageTemplate):
    """Render with a PromptTemplate using `{variable}` placeholders."""

    def __init__(self, role: Role, template: str | PromptTemplate):
        self.role = role
        self.template = template if isinstance(template, PromptTemplate) else PromptTemplate(template)

    @override
    def render(self, template_vars: Mapping[str, Any] | BaseModel | None = None) -> ChatEntry:
        prompt = PromptTemplate(self.template.prompt, {**self.template.variables, **_as_dict(template_vars)})
        return ChatEntry(role=self.role, content=prompt.render())


class JinjaMessageTemplate(MessageTemplate):
    """Jinja2 template renderer.

    Uses StrictUndefined so that missing variables fail instead of rendering empty.

    Args:
        role: The role for rendered entries
        template: Jinja template string or Template instance
        validation_model: Optional Pydantic model for variable validation

    Examples
    --------
        >>> class UserVars(BaseModel):
        ...     name: str
        ...     age: int
        >>> template = JinjaMessageTemplate(
        ...     role="user",
        ...     template="Hi, I'm {{name}}, {{age}} years old",
        ...     validation_model=UserVars,
        ... )
        >>> template.render({"name": "Bob", "age": 42}).content
        "Hi, I'm Bob, 42 years old"
    """

    def __init__(
        self,
        role: Role,
        template: str | JinjaTemplate,
        validation_model: Type[BaseModel] | None = None,
    ):
        self.role = role
        self.template = template
        self.validation_model = validation_model

    @property
    def template(self) -> JinjaTemplate:
        """Jinja Template that defines the entry content for each render."""
        return self._template

    @template.setter
    def template(self, template: str | JinjaTemplate):
        if isinstance(template, JinjaTemplate):
            # ensure we raise an exception when a variable is present in the template but it is not passed
            template.environment.undefined = StrictUndefined
            self._template = template
        else:
            self._template = JinjaTemplate(template, undefined=StrictUndefined)

    @override
    def render(self, template_vars: Mapping[str, Any] | BaseModel | None = None) -> ChatEntry:
        vars_ = _as_dict(template_vars)
        try:
            if self.validation_model is not None:
                vars_ = self.validation_model(**vars_).model_dump()
            content = self.template.render(**vars_)
        except (ValidationError, JinjaTemplateError) as e:
            raise TemplateError(f"Failed to render {self.role} template: {e}") from e
        return ChatEntry(role=self.role, content=content)


class ConversationTemplate:
    """Render an ordered sequence of templates and fixed entries into a Chatlog."""

    def __init__(self, conversation_spec: Sequence[MessageTemplate | ChatEntry]):
        if not conversation_spec:
            raise ValueError("Conversation list cannot be empty")
        if not all(isinstance(item, (MessageTemplate, ChatEntry)) for item in conversation_spec):
            raise TypeError("Conversation list must contain only MessageTemplates or ChatEntries")
        self.conversation_spec = list(conversation_spec)

    def render(self, template_vars: Mapping[str, Any] | BaseModel | None = None) -> Chatlog:
        chatlog = Chatlog()
        for item in self.conversation_spec:
            chatlog.append(item if isinstance(item, ChatEntry) else item.render(template_vars))
        return chatlog
