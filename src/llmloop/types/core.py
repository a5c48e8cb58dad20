from __future__ import annotations

import base64
import logging
from typing import Annotated, Any, Iterator, Literal, Self, Union, overload

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

Role = Literal["assistant", "system", "tool", "user"]


# Content parts are a tagged union on 'type'
class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str = Field(description="A remote image url or a base64 data url")


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl

    @classmethod
    def from_url(cls, url: str) -> ImagePart:
        return cls(image_url=ImageUrl(url=url))

    @classmethod
    def from_file(cls, path: str, mime: str | None = None) -> ImagePart:
        """Attach a local image file as a data url."""
        from ..utilities.files import data_url_from_file

        return cls(image_url=ImageUrl(url=data_url_from_file(path, mime=mime)))


class ImageBlobPart(BaseModel):
    type: Literal["image_blob"] = "image_blob"
    data: bytes = Field(description="Raw image bytes")
    mime: str = Field(description="MIME type of the image, e.g. 'image/png'")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime};base64,{self.to_base64()}"


Part = Annotated[Union[TextPart, ImagePart, ImageBlobPart], Field(discriminator="type")]


class ToolCallFunction(BaseModel, extra="ignore"):
    name: str
    arguments: str = Field(description="JSON-encoded argument object")


class ToolCall(BaseModel, extra="ignore"):
    id: str
    function: ToolCallFunction
    type: Literal["function"] = "function"


class ChatEntry(BaseModel):
    content: str | list[Part] = Field(description="Plain text, or an ordered list of content parts.")
    role: Role = Field(description="The role of the entry author.")
    tool_calls: list[ToolCall] | None = Field(default=None, description="Tool invocations requested by the model.")
    tool_call_id: str | None = Field(default=None, description="The tool_call.id that requested this result.")

    @model_validator(mode="after")
    def _tool_result_has_id(self) -> Self:
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("'tool' entries require a tool_call_id")
        return self

    @property
    def text(self) -> str:
        """Concatenated text content; image parts are skipped."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if isinstance(part, TextPart))


class SystemEntry(ChatEntry):
    role: Literal["system"] = "system"


class UserEntry(ChatEntry):
    role: Literal["user"] = "user"


class AssistantEntry(ChatEntry):
    role: Literal["assistant"] = "assistant"
    content: str | list[Part] = ""


class ToolResultEntry(ChatEntry):
    role: Literal["tool"] = "tool"
    content: str = Field(description="The result of the tool call.")
    tool_call_id: str = Field(description="The tool_call.id that requested this result.")


class ChatlogBuilder:
    def __init__(self):
        self.entries: list[ChatEntry] = []

    def add_system(self, content: str | list[Part]) -> Self:
        """Append a system entry; returns the builder for chaining."""
        self.entries.append(SystemEntry(content=content))
        return self

    def add_user(self, content: str | list[Part]) -> Self:
        """Append a user entry; returns the builder for chaining."""
        self.entries.append(UserEntry(content=content))
        return self

    def add_assistant(self, content: str | list[Part]) -> Self:
        """Append an assistant entry; returns the builder for chaining."""
        self.entries.append(AssistantEntry(content=content))
        return self

    def build(self) -> Chatlog:
        return Chatlog(entries=self.entries)


class Chatlog(BaseModel):
    """Ordered, append-only conversation history.

    Tool-result entries are checked on append: their tool_call_id must match a tool call
    requested by an earlier entry.
    """

    entries: list[ChatEntry] = Field(default_factory=list, description="The entries of the conversation.")

    @model_validator(mode="after")
    def _tool_results_follow_calls(self) -> Self:
        seen: set[str] = set()
        for entry in self.entries:
            self._check_tool_result(entry, seen)
            seen.update(call.id for call in entry.tool_calls or [])
        return self

    @staticmethod
    def _check_tool_result(entry: ChatEntry, requested: set[str]) -> None:
        if entry.role == "tool" and entry.tool_call_id not in requested:
            raise ValueError(f"Tool result '{entry.tool_call_id}' does not answer any preceding tool call")

    @classmethod
    def builder(cls) -> ChatlogBuilder:
        """Obtain a ChatlogBuilder.

        Examples
        --------
        >>> chatlog = Chatlog.builder().add_system("Be brief.").add_user("Hi!").build()
        >>> len(chatlog)
        2
        """
        return ChatlogBuilder()

    def tool_call_ids(self) -> set[str]:
        return {call.id for entry in self.entries for call in entry.tool_calls or []}

    def find_tool_call(self, tool_call_id: str, before: int | None = None) -> ToolCall | None:
        """Return the most recent tool call with the given id, searching entries before index `before`."""
        for entry in reversed(self.entries[:before]):
            for call in entry.tool_calls or []:
                if call.id == tool_call_id:
                    return call
        return None

    def append(self, entry: ChatEntry) -> None:
        self._check_tool_result(entry, self.tool_call_ids())
        self.entries.append(entry)

    def extend(self, entries: list[ChatEntry]) -> None:
        for entry in entries:
            self.append(entry)

    def to_string(self) -> str:
        """Render as 'role: content' lines."""
        lines = []
        for entry in self.entries:
            if not isinstance(entry.content, str):
                raise TypeError("Chatlog entry is not a string")
            lines.append(f"{entry.role}: {entry.content}\n")
        return "".join(lines)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ChatEntry]:  # type: ignore[override]
        return iter(self.entries)

    @overload
    def __getitem__(self, idx: int) -> ChatEntry: ...
    @overload
    def __getitem__(self, idx: slice) -> list[ChatEntry]: ...
    def __getitem__(self, idx):
        return self.entries[idx]

    def __add__(self, other: Chatlog) -> Chatlog:
        return Chatlog(entries=[*self.entries, *other.entries])


class GenerationConfig(BaseModel):
    """Sampling options for one generation; unset options are left to the backend."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: str | list[str] | None = None

    def request_params(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ModelTurn(BaseModel):
    """One parsed backend response: why generation stopped, any text, any requested tool calls."""

    finish_reason: str | None = None
    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
