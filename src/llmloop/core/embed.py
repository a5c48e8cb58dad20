"""Text embedding backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

from typing_extensions import override

from .exceptions import BackendError
from ..utilities.http import RequestsTransport, Transport, normalize_host

logger = logging.getLogger(__name__)


class TextEmbedder(ABC):
    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed one text."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts; backends with a batch endpoint should override this."""
        return [await self.embed(text) for text in texts]


class DeepinfraTextEmbedder(TextEmbedder):
    """Embeddings from DeepInfra's inference API (`POST /v1/inference/<model>`)."""

    def __init__(
        self,
        model_name: str,
        base_url: str = "https://api.deepinfra.com",
        api_key: str = "",
        transport: Transport | None = None,
    ):
        self.model_name = model_name
        self.api_key = api_key
        self.transport = transport or RequestsTransport()
        self.url = f"{normalize_host(base_url)}/v1/inference/{model_name}"

    @override
    async def embed(self, text: str) -> list[float]:
        return (await self.embed_batch([text]))[0]

    @override
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        response = await self.transport.issue_request(self.url, headers, {"inputs": list(texts)})
        logger.debug(f"status = {response.status}")

        try:
            payload = response.json()
        except ValueError as e:
            raise BackendError(f"Failed to parse response: {e}", status=response.status) from e

        if response.status != 200:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise BackendError(str(error or response.body), status=response.status)

        embeddings = payload.get("embeddings") if isinstance(payload, dict) else None
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            raise BackendError("Server response does not contain one embedding per input", status=response.status)
        return embeddings
