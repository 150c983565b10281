"""
Language-model providers.

``generate(user_prompt, system_prompt) -> LLMResponse`` behind one
interface, with two interchangeable bindings:
- OpenAIChatProvider: chat-completions API, retried on transient failures
- LocalLLMProvider: in-process transformers causal LM
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from openai import AsyncOpenAI

from ...common.config import LLMConfig
from ...common.retry import retry_async
from ...exceptions import ConfigurationError, ProviderError
from ..schemas.response import LLMResponse, TokenUsage


logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Abstract language-model capability."""

    name: str = "llm"
    model: str = ""

    @abstractmethod
    async def generate(self, user_prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """Generate a completion for the prompt pair."""

    def describe(self) -> Dict:
        """Provider settings, without secrets."""
        return {"provider": self.name, "model": self.model}

    def dispose(self) -> None:
        """Release provider resources."""


class OpenAIChatProvider(LLMProvider):
    """OpenAI chat completions (gpt-4-turbo by default)."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4-turbo",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        max_retries: int = 3,
        base_delay: float = 1.0,
        client=None,
    ):
        if client is None:
            if not api_key:
                raise ConfigurationError("OpenAI API key is required for OpenAI provider", field="llm.api_key")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.base_delay = base_delay

    def _messages(self, user_prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    async def generate(self, user_prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        messages = self._messages(user_prompt, system_prompt)

        async def _call():
            return await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=False,
            )

        response = await retry_async(
            _call, provider=self.name, max_attempts=self.max_retries, base_delay=self.base_delay
        )

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice is not None and choice.message is not None else None
        if not content:
            raise ProviderError(self.name, "No response content from OpenAI")

        usage = None
        if getattr(response, "usage", None) is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )
        return LLMResponse(content=content, model=getattr(response, "model", None) or self.model, usage=usage)

    def describe(self) -> Dict:
        return {
            "provider": self.name,
            "model": self.model,
            "temperature": self.temperature,
            "maxTokens": self.max_tokens,
        }


class LocalLLMProvider(LLMProvider):
    """
    Local causal language model via transformers.

    Loaded once on first use; generation runs in a worker thread so the
    event loop is never blocked.
    """

    name = "local"

    def __init__(
        self,
        model: str = "distilgpt2",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        max_context_length: int = 1024,
        device: Optional[str] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_context_length = max_context_length
        self.device = device
        self._model = None
        self._tokenizer = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._model is not None:
            return
        async with self._lock:
            if self._model is not None:
                return
            logger.info(f"Loading local language model: {self.model}")
            try:
                tokenizer, model = await asyncio.to_thread(self._load)
            except Exception as e:
                raise ProviderError(self.name, f"Failed to load model {self.model}", last_error=e) from e
            self._tokenizer = self._configure_tokenizer(tokenizer)
            self._model = model

    def _load(self):
        import torch
        from transformers import AutoModelForCausalLM, AutoTokenizer

        device = self.device or ("cuda" if torch.cuda.is_available() else "cpu")
        tokenizer = AutoTokenizer.from_pretrained(self.model)
        model = AutoModelForCausalLM.from_pretrained(self.model).to(device)
        model.eval()
        self.device = device
        return tokenizer, model

    @staticmethod
    def _configure_tokenizer(tokenizer):
        # Set padding token if not set
        if tokenizer.pad_token is None:
            tokenizer.pad_token = tokenizer.eos_token
        # The question and the answer cue sit at the end of the prompt; cut context from the front
        tokenizer.truncation_side = "left"
        return tokenizer

    def _generation_limits(self) -> Tuple[int, int]:
        """
        Prompt token limit and new-token budget for one generation.

        Prompt plus generated tokens must stay inside the model's position
        window (``max_position_embeddings``, 1024 for GPT-2). The answer gets
        whatever the configured context length leaves, but never less than
        half the window unless max_tokens asks for less.
        """
        window = getattr(getattr(self._model, "config", None), "max_position_embeddings", None)
        if not isinstance(window, int) or window <= 0:
            return self.max_context_length, self.max_tokens
        max_new_tokens = min(self.max_tokens, max(window - self.max_context_length, window // 2))
        return min(self.max_context_length, window - max_new_tokens), max_new_tokens

    def _build_prompt(self, user_prompt: str, system_prompt: Optional[str]) -> str:
        if system_prompt:
            return f"{system_prompt}\n\n{user_prompt}\n\nAnswer: "
        return f"{user_prompt}\n\nAnswer: "

    def _generate_sync(self, prompt: str) -> LLMResponse:
        import torch

        prompt_limit, max_new_tokens = self._generation_limits()
        inputs = self._tokenizer(
            prompt,
            return_tensors="pt",
            max_length=prompt_limit,
            truncation=True,
        ).to(self.device)
        prompt_tokens = int(inputs["input_ids"].shape[-1])

        with torch.no_grad():
            outputs = self._model.generate(
                **inputs,
                max_new_tokens=max_new_tokens,
                do_sample=self.temperature > 0,
                temperature=self.temperature if self.temperature > 0 else None,
                pad_token_id=self._tokenizer.pad_token_id,
                eos_token_id=self._tokenizer.eos_token_id,
            )

        # Only the generated part (after the prompt)
        generated = outputs[0][prompt_tokens:]
        content = self._tokenizer.decode(generated, skip_special_tokens=True).strip()
        completion_tokens = int(generated.shape[-1])
        return LLMResponse(
            content=content,
            model=self.model,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    async def generate(self, user_prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        await self.initialize()
        prompt = self._build_prompt(user_prompt, system_prompt)
        try:
            response = await asyncio.to_thread(self._generate_sync, prompt)
        except Exception as e:
            logger.error(f"Local generation failed: {e}")
            raise ProviderError(self.name, f"Local generation failed: {e}", last_error=e) from e
        if not response.content:
            raise ProviderError(self.name, "No response content from local model")
        return response

    def describe(self) -> Dict:
        return {
            "provider": self.name,
            "model": self.model,
            "temperature": self.temperature,
            "maxTokens": self.max_tokens,
        }

    def dispose(self) -> None:
        self._model = None
        self._tokenizer = None


def create_llm_provider(
    config: LLMConfig,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> LLMProvider:
    """
    Build the configured language-model provider.

    Args:
        config: LLM section of the settings
        temperature: Override for config.temperature
        max_tokens: Override for config.max_tokens

    Raises:
        ConfigurationError: Unknown provider, or a missing OpenAI key
    """
    temperature = config.temperature if temperature is None else temperature
    max_tokens = config.max_tokens if max_tokens is None else max_tokens
    provider = config.provider.lower()

    if provider == "openai":
        return OpenAIChatProvider(
            api_key=config.api_key,
            model=config.resolved_model,
            temperature=temperature,
            max_tokens=max_tokens,
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay_seconds,
        )
    if provider == "local":
        return LocalLLMProvider(model=config.resolved_model, temperature=temperature, max_tokens=max_tokens)
    raise ConfigurationError(f"Unknown LLM provider: {config.provider}", field="llm.provider")
