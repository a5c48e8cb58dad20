"""Connectors for vendor chat-completion APIs."""

from .openai_connector import OpenAIConnector
from .vertex_connector import VertexAIConnector

__all__ = [
    "OpenAIConnector",
    "VertexAIConnector",
]
