"""
LLM client used to classify non-English questions.

One ``generate(prompt, system=...)`` call over Anthropic, OpenAI or Google
Gemini. The client is optional: without a key for the chosen provider it
reports itself unavailable and the query processor keeps to its rule tiers.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import anthropic
import google.generativeai as genai
from openai import OpenAI

from .config import LLMConfig

logger = logging.getLogger("vectorchat.common.llm_client")

PROVIDER_ALIASES = {"gemini": "google"}
SUPPORTED_PROVIDERS = ("anthropic", "openai", "google")


class LLMClient:
    def __init__(
        self,
        provider: str = "openai",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        provider = (provider or "openai").lower()
        self.provider = PROVIDER_ALIASES.get(provider, provider)
        self.model = model
        self._client = None

        if self.provider == "auto":
            raise ValueError(
                '"auto" provider must be resolved before creating LLMClient; '
                'pick anthropic, openai or google'
            )
        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }[self.provider]
        if not api_key:
            logger.info("%s API key not provided, question classification stays rule-based", self.provider)
            return

        try:
            self._client = self._connect(api_key)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    def _connect(self, api_key: str):
        if self.provider == "anthropic":
            return anthropic.Anthropic(api_key=api_key)
        if self.provider == "openai":
            return OpenAI(api_key=api_key)
        genai.configure(api_key=api_key)
        return genai

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        provider = (config.provider or "openai").lower()
        model = {
            "anthropic": config.anthropic_model,
            "openai": config.openai_model,
            "google": config.google_model,
        }.get(PROVIDER_ALIASES.get(provider, provider), "")
        return cls(
            provider=provider,
            model=model,
            anthropic_api_key=config.anthropic_api_key,
            openai_api_key=config.openai_api_key,
            google_api_key=config.google_api_key,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> str:
        """Return the model's reply to ``prompt``, stripped of surrounding whitespace"""
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        if self.provider == "anthropic":
            return self._generate_anthropic(prompt, system, max_tokens, timeout)
        if self.provider == "openai":
            return self._generate_openai(prompt, system, max_tokens, timeout)
        return self._generate_google(prompt, system, max_tokens, timeout)

    def _generate_anthropic(self, prompt, system, max_tokens, timeout) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
            **extra,
        )
        return response.content[0].text.strip()

    def _generate_openai(self, prompt, system, max_tokens, timeout) -> str:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=messages,
            timeout=timeout,
        )
        return (response.choices[0].message.content or "").strip()

    def _generate_google(self, prompt, system, max_tokens, timeout) -> str:
        # Gemini binds the system instruction to the model object
        model = self._client.GenerativeModel(model_name=self.model, system_instruction=system)
        response = model.generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens},
            request_options={"timeout": timeout},
        )
        return response.text.strip()
