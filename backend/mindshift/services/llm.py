"""
Language Model Clients.

WHAT THIS DOES:
One small interface over the chat backends the debate engine can talk to:

- OpenAIChatClient: chat completions with JSON mode
  (response_format={"type": "json_object"}), so replies are strict JSON.
- OllamaClient: local models over Ollama's HTTP API. These return
  freeform text; the caller has to dig the fields out (see
  services/debate/parsing.py).

Both expose:
    await client.complete(system_prompt, user_message, json_mode=True)
    → raw reply text

The debate history travels inside the system prompt (see
services/debate/prompts.py), so a call is always one system prompt plus
one user message.

USAGE:
    client = get_shared_llm_client()
    raw = await client.complete(system_prompt, "My argument is ...", json_mode=True)
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from openai import AsyncOpenAI

from mindshift.config import get_settings

logger = logging.getLogger(__name__)


class BaseLLMClient(ABC):
    """Abstract chat backend."""

    provider: str = ""
    model: str = ""

    @property
    @abstractmethod
    def supports_json(self) -> bool:
        """Whether the backend can be forced to emit a JSON object."""
        pass

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> str:
        """
        Send one conversation turn and return the raw reply text.

        Args:
            system_prompt: Instructions (topic, stance, history, context, format)
            user_message: The triggering message
            json_mode: Ask for a JSON object when the backend supports it
            temperature: Sampling temperature

        Returns:
            Reply text ("" if the backend returned nothing)
        """
        pass

    async def close(self) -> None:
        pass


class OpenAIChatClient(BaseLLMClient):
    """Chat completions through the OpenAI API."""

    provider = "openai"

    def __init__(self, model: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        settings = get_settings()
        self.model = model or settings.openai_model
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.llm_timeout_seconds,
        )

    @property
    def supports_json(self) -> bool:
        return True

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.info(f"Calling OpenAI model {self.model} (json_mode={json_mode})...")
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )

        return response.choices[0].message.content or ""


class OllamaClient(BaseLLMClient):
    """
    Local models served by Ollama.

    Uses /api/generate with stream=false. The reply is freeform text even
    when we ask for JSON in the prompt; reasoning models often prepend
    <think>...</think> blocks.
    """

    provider = "ollama"

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.model = model or settings.ollama_model
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.timeout = settings.llm_timeout_seconds

        # HTTP client (lazy initialization)
        self._client: Optional[httpx.AsyncClient] = http_client

    @property
    def supports_json(self) -> bool:
        return False

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> str:
        client = await self._get_client()

        request_body = {
            "model": self.model,
            "prompt": user_message,
            "system": system_prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }

        logger.info(f"Calling Ollama model {self.model} for raw text...")
        response = await client.post(f"{self.base_url}/api/generate", json=request_body)
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError:
            # Not the usual envelope; hand back the body as-is
            return response.text

        if isinstance(data, dict):
            return data.get("response") or ""
        return response.text

    async def list_models(self) -> list[str]:
        """
        Names of models available on the Ollama server.

        Returns an empty list when the server is unreachable or the reply
        is not the usual {"models": [{"name": ...}, ...]} envelope.
        """
        try:
            client = await self._get_client()
            response = await client.get(f"{self.base_url}/api/tags")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to list Ollama models: {e}")
            return []

        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            logger.error(f"Unexpected /api/tags reply from Ollama: {str(data)[:200]!r}")
            return []

        return [
            model["name"]
            for model in models
            if isinstance(model, dict) and isinstance(model.get("name"), str)
        ]

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# =============================================================================
# FACTORY
# =============================================================================

def get_llm_client(model: Optional[str] = None) -> BaseLLMClient:
    """
    Build the client for the configured provider.

    Example:
        client = get_llm_client()                      # debate turns
        client = get_llm_client(settings.summary_model)  # summary articles
    """
    settings = get_settings()
    provider = settings.llm_provider.lower()

    if provider == "openai":
        return OpenAIChatClient(model=model)
    if provider == "ollama":
        return OllamaClient(model=model)

    raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")


# One client per model for the whole process, so connection pools are reused
# across requests and closed once on shutdown.
_shared_clients: dict[Optional[str], BaseLLMClient] = {}


def get_shared_llm_client(model: Optional[str] = None) -> BaseLLMClient:
    """Process-wide client for the configured provider (see close_llm_clients)."""
    client = _shared_clients.get(model)
    if client is None:
        client = get_llm_client(model)
        _shared_clients[model] = client
    return client


async def close_llm_clients() -> None:
    """Close every shared client (called on shutdown)."""
    clients = list(_shared_clients.values())
    _shared_clients.clear()
    for client in clients:
        await client.close()
