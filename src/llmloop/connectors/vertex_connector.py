"""Connector for the Gemini `generateContent` API."""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from uuid import uuid4

from typing_extensions import override

from .common import check_response
from ..core.exceptions import BackendError
from ..core.llm import LLM, SleepFunction
from ..core.tools import Toolset
from ..types.base import JSON, TOOL_CALLS_FINISH_REASON
from ..types.core import (
    ChatEntry,
    Chatlog,
    GenerationConfig,
    ImageBlobPart,
    ImagePart,
    ModelTurn,
    TextPart,
    ToolCall,
    ToolCallFunction,
)
from ..utilities.http import RequestsTransport, Transport, normalize_host

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

# GenerationConfig field -> generationConfig key
CONFIG_KEYS = {
    "max_tokens": "maxOutputTokens",
    "temperature": "temperature",
    "top_p": "topP",
    "frequency_penalty": "frequencyPenalty",
    "presence_penalty": "presencePenalty",
    "stop": "stopSequences",
}


def _image_part(part: ImagePart | ImageBlobPart) -> dict[str, JSON]:
    if isinstance(part, ImageBlobPart):
        return {"inlineData": {"mimeType": part.mime, "data": part.to_base64()}}

    url = part.image_url.url
    match = DATA_URL_PATTERN.match(url)
    if match:
        return {"inlineData": {"mimeType": match["mime"], "data": match["data"]}}
    return {"fileData": {"fileUri": url}}


def _content_parts(entry: ChatEntry) -> list[dict[str, JSON]]:
    if isinstance(entry.content, str):
        return [{"text": entry.content}] if entry.content else []
    return [{"text": part.text} if isinstance(part, TextPart) else _image_part(part) for part in entry.content]


def _tool_response(entry: ChatEntry, history: Chatlog, position: int) -> dict[str, JSON]:
    call = history.find_tool_call(entry.tool_call_id or "", before=position)
    if call is None:
        raise ValueError(f"No tool call found for result '{entry.tool_call_id}'")
    try:
        response = json.loads(entry.text)
    except json.JSONDecodeError:
        response = entry.text
    if not isinstance(response, dict):
        response = {"result": response}
    return {"functionResponse": {"name": call.function.name, "response": response}}


def _arguments(call: ToolCall) -> dict[str, JSON]:
    args = json.loads(call.function.arguments) if call.function.arguments.strip() else {}
    return args if isinstance(args, dict) else {"value": args}


class VertexAIConnector(LLM):
    """Gemini models via `v1beta/models/<model>:generateContent`.

    System entries are sent as `systemInstruction`; assistant entries use the role "model";
    tool calls and results are sent as `functionCall` and `functionResponse` parts.
    """

    def __init__(
        self,
        model_name: str,
        base_url: str = "https://generativelanguage.googleapis.com/",
        api_key: str = "",
        transport: Transport | None = None,
        sleep: SleepFunction | None = None,
    ):
        super().__init__(sleep=sleep)
        self.model_name = model_name
        self.api_key = api_key
        self.transport = transport or RequestsTransport()
        self.url = f"{normalize_host(base_url)}/v1beta/models/{model_name}:generateContent"

    @staticmethod
    def build_contents(history: Chatlog) -> tuple[dict[str, JSON] | None, list[dict[str, JSON]]]:
        """Split the chatlog into the system instruction and the list of contents."""
        system_parts: list[dict[str, JSON]] = []
        contents: list[dict[str, Any]] = []

        for position, entry in enumerate(history):
            if entry.role == "system":
                system_parts.extend(_content_parts(entry))
                continue

            if entry.role == "tool":
                role, parts = "user", [_tool_response(entry, history, position)]
            elif entry.role == "assistant":
                role = "model"
                parts = _content_parts(entry) + [
                    {"functionCall": {"name": call.function.name, "args": _arguments(call)}}
                    for call in entry.tool_calls or []
                ]
            else:
                role, parts = "user", _content_parts(entry)

            # consecutive function responses belong to one turn
            if contents and contents[-1]["role"] == role and entry.role == "tool":
                contents[-1]["parts"].extend(parts)
            else:
                contents.append({"role": role, "parts": parts})

        system = {"parts": system_parts} if system_parts else None
        return system, contents

    @staticmethod
    def generation_config(config: GenerationConfig) -> dict[str, JSON]:
        params = config.request_params()
        if isinstance(params.get("stop"), str):
            params["stop"] = [params["stop"]]
        return {CONFIG_KEYS[key]: value for key, value in params.items()}

    def build_request(self, history: Chatlog, config: GenerationConfig, tools: Toolset) -> dict[str, JSON]:
        system, contents = self.build_contents(history)
        body: dict[str, Any] = {"contents": contents}
        if system:
            body["systemInstruction"] = system
        if generation_config := self.generation_config(config):
            body["generationConfig"] = generation_config
        if tools:
            body["tools"] = [{"functionDeclarations": tools.schemas()}]
        return body

    @staticmethod
    def parse_response(payload: Any) -> ModelTurn:
        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not candidates:
            raise BackendError("Server response does not contain any candidates")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part["text"] for part in parts if "text" in part)
        tool_calls = [
            ToolCall(
                id=part["functionCall"].get("id") or f"call_{uuid4().hex}",
                function=ToolCallFunction(
                    name=part["functionCall"]["name"],
                    arguments=json.dumps(part["functionCall"].get("args") or {}),
                ),
            )
            for part in parts
            if "functionCall" in part
        ]

        finish_reason = TOOL_CALLS_FINISH_REASON if tool_calls else (candidate.get("finishReason") or "stop").lower()
        return ModelTurn(finish_reason=finish_reason, content=text or None, tool_calls=tool_calls)

    @override
    async def complete(self, history: Chatlog, config: GenerationConfig, tools: Toolset) -> ModelTurn:
        body = self.build_request(history, config, tools)
        logger.debug(f"Request: {body}")

        headers = {"x-goog-api-key": self.api_key, "Accept": "application/json"}
        response = await self.transport.issue_request(self.url, headers, body)
        return self.parse_response(check_response(response))
