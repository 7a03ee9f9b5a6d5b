"""Provider-agnostic access to the text-generation API."""

import json
import logging
from typing import Any

from llmstxt.config import Settings

logger = logging.getLogger(__name__)

# Fixed seed for deterministic output (OpenAI only)
DETERMINISTIC_SEED = 42


class LLMClient:
    """Calls the configured LLM provider with an instruction block and a prompt."""

    def __init__(self, settings: Settings):
        self.provider = settings.llm_provider
        self.model = settings.llm_model
        self.openai_api_key = settings.openai_api_key
        self.anthropic_api_key = settings.anthropic_api_key
        self._openai_client = None
        self._anthropic_client = None

    def _get_openai_client(self):
        """Lazy load OpenAI client."""
        if self._openai_client is None:
            from openai import AsyncOpenAI
            self._openai_client = AsyncOpenAI(api_key=self.openai_api_key)
        return self._openai_client

    def _get_anthropic_client(self):
        """Lazy load Anthropic client."""
        if self._anthropic_client is None:
            from anthropic import AsyncAnthropic
            self._anthropic_client = AsyncAnthropic(api_key=self.anthropic_api_key)
        return self._anthropic_client

    async def _call_openai(self, instructions: str, prompt: str) -> str:
        """Call OpenAI API with deterministic settings."""
        client = self._get_openai_client()

        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
            temperature=0,
            seed=DETERMINISTIC_SEED,
        )

        logger.info(f"OpenAI fingerprint: {response.system_fingerprint}")
        return response.choices[0].message.content or ""

    async def _call_anthropic(self, instructions: str, prompt: str) -> str:
        """Call Anthropic API."""
        client = self._get_anthropic_client()

        response = await client.messages.create(
            model=self.model,
            max_tokens=8192,
            system=instructions,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
        )

        return response.content[0].text

    async def complete(self, instructions: str, prompt: str) -> str:
        """Call configured LLM provider and return the raw response text."""
        logger.info(f"Calling {self.provider} {self.model}...")

        if self.provider == "openai":
            return await self._call_openai(instructions, prompt)
        elif self.provider == "anthropic":
            return await self._call_anthropic(instructions, prompt)
        else:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

    async def close(self) -> None:
        """Close any provider clients that were opened."""
        if self._openai_client is not None:
            await self._openai_client.close()
        if self._anthropic_client is not None:
            await self._anthropic_client.close()


def parse_json(response: str) -> Any:
    """Parse JSON from LLM response, handling code fences."""
    content = response.strip()

    # Remove markdown code fences if present
    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1:]
        if content.endswith("```"):
            content = content[:-3].rstrip()

    return json.loads(content)
