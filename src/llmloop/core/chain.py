from __future__ import annotations

import logging
from typing import Any, Sequence

from .llm import LLM
from .parsers import PlaintextParser, ReplyParser
from .template import PromptTemplate
from .tool import Tool
from .tools import Toolset
from ..types.core import AssistantEntry, Chatlog, GenerationConfig, SystemEntry, UserEntry

logger = logging.getLogger(__name__)


class Chain:
    """A running conversation with one LLM, seeded with a rendered system prompt.

    Each `generate()` appends the user input and the reply to `chatlog`,
    so later turns see the earlier ones.

    Examples
    --------
    >>> chain = Chain(llm, MarkdownLikeParser(), PromptTemplate("You are {persona}.", {"persona": "a pirate"}))
    >>> await chain.run("Describe your ship. Reply as 'name: ...' and 'crew: ...'")
    {'name': 'Black Pearl', 'crew': '12'}
    """

    def __init__(self, llm: LLM, parser: ReplyParser | None = None, prompt: PromptTemplate | str | None = None):
        self.llm = llm
        self.parser = parser or PlaintextParser()
        self.prompt = PromptTemplate(prompt) if isinstance(prompt, str) else prompt

        self.chatlog = Chatlog()
        if self.prompt is not None:
            self.chatlog.append(SystemEntry(content=self.prompt.render()))

    async def generate(
        self,
        user_input: str,
        config: GenerationConfig | None = None,
        tools: Toolset | Sequence[Tool] | None = None,
    ) -> str:
        """Send the user input and return the raw reply text."""
        self.chatlog.append(UserEntry(content=user_input))
        result = await self.llm.generate(self.chatlog, config, tools)
        self.chatlog.append(AssistantEntry(content=result))
        return result

    async def run(
        self,
        user_input: str,
        config: GenerationConfig | None = None,
        tools: Toolset | Sequence[Tool] | None = None,
    ) -> Any:
        """Send the user input and return the parsed reply."""
        return self.parser.parse_reply(await self.generate(user_input, config, tools))
