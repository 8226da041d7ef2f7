"""Base agent wrapping the LLM client as a text-generation capability."""

import logging
from dataclasses import dataclass

from genieflow.services.llm_client import LLMClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """Text returned by an agent."""

    text: str


class BaseAgent:
    """Base class for genie agents: fixed instructions plus a model."""

    MODEL = ""
    INSTRUCTIONS = ""
    TEMPERATURE = 0.7
    MAX_TOKENS = 4000

    def __init__(self, llm_client: LLMClient):
        """Initialize base agent."""
        self.llm = llm_client

    def generate(self, prompt: str) -> GenerationResult:
        """
        Generate text for a prompt.

        Args:
            prompt: User prompt

        Returns:
            GenerationResult with the model's text

        Raises:
            ValueError: If the model returned no text
        """
        messages = [
            {"role": "system", "content": self.INSTRUCTIONS},
            {"role": "user", "content": prompt},
        ]
        text = self.llm.chat_completion(
            model=self.MODEL,
            messages=messages,
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )

        if not text or not text.strip():
            raise ValueError(f"Agent {self.__class__.__name__} returned empty text")

        logger.info(f"Agent {self.__class__.__name__} generated {len(text)} characters")
        return GenerationResult(text=text)
