"""Model client interface and OpenAI-compatible implementation."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from shellcraft.config import Config
from shellcraft.constants import DEFAULT_TIMEOUT_S

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class Message:
    """A chat message."""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class CompletionResult:
    """Result from a model completion call."""
    content: str
    model: str
    usage: Optional[Dict[str, Any]] = None


class BackendError(Exception):
    """Error talking to the completion backend. Never retried."""
    pass


class ModelClient(ABC):
    """Abstract interface for model clients."""

    @abstractmethod
    def complete(
        self,
        messages: List[Message],
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> CompletionResult:
        """
        Execute a chat completion.

        Args:
            messages: List of chat messages
            timeout: Request timeout in seconds

        Returns:
            CompletionResult with content and metadata

        Raises:
            BackendError: On API, network or response-format errors
        """
        pass


class OpenAICompatibleClient(ModelClient):
    """Client for any backend exposing POST {base_url}/chat/completions."""

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Loaded configuration (base_url, api_key, model)
            transport: Optional httpx transport, used by tests

        Raises:
            BackendError: If base_url, api_key or model is empty,
                or the API key cannot be sent in an HTTP header
        """
        missing = [
            name for name in ("base_url", "api_key", "model")
            if not (getattr(config, name) or "").strip()
        ]
        if missing:
            raise BackendError(
                f"Backend configuration incomplete: {', '.join(missing)} not set."
            )
        if not config.api_key.isascii():
            raise BackendError(
                "API key contains non-ASCII characters; check it for pasted quotes or spaces."
            )

        self.endpoint = f"{config.base_url.rstrip('/')}/chat/completions"
        self.api_key = config.api_key
        self.model = config.model
        self._transport = transport

    def _make_request(
        self,
        payload: dict,
        headers: dict,
        timeout: float,
    ) -> httpx.Response:
        """Make HTTP request to the backend."""
        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            response = client.post(
                self.endpoint,
                headers=headers,
                json=payload,
            )
            response.raise_for_status()
            return response

    def complete(
        self,
        messages: List[Message],
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> CompletionResult:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }

        logger.debug("POST %s model=%s", self.endpoint, self.model)

        try:
            response = self._make_request(payload, headers, timeout)

        except httpx.HTTPStatusError as e:
            # Extract error message from response if available
            try:
                error_data = e.response.json()
                error_msg = error_data.get("error", {}).get("message") or str(e)
            except (ValueError, AttributeError):
                error_msg = str(e)
            raise BackendError(
                f"API error ({e.response.status_code}): {error_msg}"
            ) from e

        except httpx.TimeoutException as e:
            raise BackendError(
                f"Request timed out after {timeout}s. "
                "Try again or use a faster model."
            ) from e
        except httpx.RequestError as e:
            raise BackendError(f"Network error: {e}") from e
        except httpx.InvalidURL as e:
            raise BackendError(f"Invalid API base URL: {e}") from e

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise BackendError(f"Failed to parse response: {e}") from e

        # Extract response content
        if not isinstance(data, dict):
            raise BackendError("Unexpected API response format: not a JSON object")

        choices = data.get("choices")
        if not choices or not isinstance(choices, list):
            raise BackendError("No choices in API response")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None

        if not isinstance(content, str) or not content:
            raise BackendError("Failed to get command from response: empty content")

        return CompletionResult(
            content=content,
            model=data.get("model", self.model),
            usage=data.get("usage"),
        )


def get_model_client(config: Config) -> OpenAICompatibleClient:
    """Get a client for the configured backend."""
    return OpenAICompatibleClient(config)


def invoke_model(
    client: ModelClient,
    system_text: str,
    user_text: str,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> str:
    """Send one system+user prompt pair and return the raw reply text."""
    messages = [
        Message(role="system", content=system_text),
        Message(role="user", content=user_text),
    ]
    result = client.complete(messages=messages, timeout=timeout)
    if result.usage:
        logger.debug("Usage: %s", result.usage)
    return result.content
