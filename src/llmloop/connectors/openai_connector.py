"""Connector for OpenAI-compatible chat completion endpoints.

Most hosted inference services (DeepInfra, Perplexity, vLLM, ...) accept the same schema,
so this connector works with any of them given the right `base_url`.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any
from urllib.parse import urlsplit

from pydantic import ValidationError
from typing_extensions import override

from .common import check_response
from ..core.exceptions import BackendError
from ..core.llm import LLM, SleepFunction
from ..core.tools import Toolset
from ..types.base import JSON
from ..types.core import ChatEntry, Chatlog, GenerationConfig, ImageBlobPart, ImagePart, ModelTurn
from ..types.openai_compat import ChatCompletion
from ..utilities.http import RequestsTransport, Transport, normalize_host

logger = logging.getLogger(__name__)


def serialize_entry(entry: ChatEntry) -> dict[str, JSON]:
    """Convert a ChatEntry to an OpenAI message object."""
    message: dict[str, Any] = {"role": entry.role}

    if isinstance(entry.content, str):
        message["content"] = entry.content
    else:
        message["content"] = [
            ImagePart.from_url(part.to_data_url()).model_dump()
            if isinstance(part, ImageBlobPart)
            else part.model_dump()
            for part in entry.content
        ]

    if entry.tool_calls:
        message["tool_calls"] = [call.model_dump() for call in entry.tool_calls]
        if not entry.content:
            message["content"] = None
    if entry.tool_call_id:
        message["tool_call_id"] = entry.tool_call_id
    return message


class OpenAIConnector(LLM):
    """Chat completions over `<base_url>/chat/completions`.

    Parameters
    ----------
    model_name : str
        Model identifier sent with each request, e.g. "gpt-4o-mini".
    base_url : str
        Scheme, host, and optional path prefix of the API.
    api_key : str
        Sent as a bearer token.
    transport : Transport, optional
        Defaults to a shared-session `RequestsTransport`.
    """

    def __init__(
        self,
        model_name: str,
        base_url: str = "https://api.openai.com/",
        api_key: str = "",
        transport: Transport | None = None,
        sleep: SleepFunction | None = None,
    ):
        super().__init__(sleep=sleep)
        self.model_name = model_name
        self.api_key = api_key
        self.transport = transport or RequestsTransport()

        host = normalize_host(base_url)
        base_path = urlsplit(base_url).path or "/"
        self.url = host + posixpath.normpath(posixpath.join(base_path, "chat/completions"))

    def build_request(self, history: Chatlog, config: GenerationConfig, tools: Toolset) -> dict[str, JSON]:
        body: dict[str, Any] = {
            "model": self.model_name,
            "messages": [serialize_entry(entry) for entry in history],
            **config.request_params(),
        }
        if tools:
            body["tools"] = [t.describe().to_openai_tool() for t in tools]
        return body

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    @override
    async def complete(self, history: Chatlog, config: GenerationConfig, tools: Toolset) -> ModelTurn:
        body = self.build_request(history, config, tools)
        logger.debug(f"Request: {body}")

        response = await self.transport.issue_request(self.url, self.headers, body)
        payload = check_response(response)

        try:
            completion = ChatCompletion.model_validate(payload)
        except ValidationError as e:
            raise BackendError(f"Failed to parse response: {e}", status=response.status) from e
        if not completion.choices:
            raise BackendError("Server response does not contain any choices", status=response.status)
        return completion.to_turn()
