from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from .core import ModelTurn, ToolCall

logger = logging.getLogger(__name__)


# OpenAI-compatible chat completion response
class ChatCompletionMessage(BaseModel, extra="ignore"):
    role: str | None = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    refusal: str | None = None


class ChatCompletionChoice(BaseModel, extra="ignore"):
    # not a Literal; compatible servers report vendor-specific reasons
    finish_reason: str | None = None
    message: ChatCompletionMessage
    index: int = 0


class ChatCompletion(BaseModel, extra="ignore"):
    id: int | str | None = None
    choices: list[ChatCompletionChoice]

    def to_turn(self) -> ModelTurn:
        """Convert the first choice to a ModelTurn."""
        choice = self.choices[0]
        return ModelTurn(
            finish_reason=choice.finish_reason,
            content=choice.message.content,
            tool_calls=choice.message.tool_calls or [],
        )


def error_detail(body: Any) -> str | None:
    """Pull a human-readable message out of an error response body."""
    if not isinstance(body, dict):
        return None
    if isinstance(body.get("detail"), str):
        return body["detail"]
    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    return None
