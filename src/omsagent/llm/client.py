"""
Chat completion client for OpenAI-compatible endpoints.

Sends the conversation plus tool declarations to `/chat/completions` and
returns the first choice's message. Errors are raised, never retried.
"""

import logging
from typing import Any, Optional

import requests

from omsagent.graph.state import Message

logger = logging.getLogger(__name__)


class ChatCompletionClient:
    """LLM client for OpenAI-compatible endpoints with tool calling."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 2048,
        timeout: float = 60.0,
    ):
        """
        Initialize the client.

        Args:
            base_url: Gateway base URL (the part before /chat/completions)
            model: Model identifier
            api_key: Bearer token for the gateway
            temperature: Default sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @property
    def endpoint_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def complete(
        self,
        messages: list[Message],
        tools: Optional[list[dict[str, Any]]] = None,
        temperature: Optional[float] = None,
    ) -> Optional[Message]:
        """
        Ask the model for the next assistant message.

        Args:
            messages: Conversation log
            tools: Function tool declarations the model may call
            temperature: Sampling temperature override

        Returns:
            The assistant message, or None when the response has no choices

        Raises:
            requests.HTTPError: If the endpoint returns a non-success status
            requests.RequestException: On timeouts and connection errors
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            payload["tools"] = tools

        response = requests.post(
            self.endpoint_url, json=payload, headers=self._headers(), timeout=self.timeout
        )
        response.raise_for_status()

        result = response.json()
        choices = result.get("choices") or []
        if not choices or not choices[0].get("message"):
            logger.warning("Completion response contained no message")
            return None

        return Message.from_dict(choices[0]["message"])

    def health_check(self, timeout: int = 30) -> tuple[bool, str]:
        """
        Perform a quick health check on the endpoint.

        Sends a minimal test prompt to verify the endpoint is responsive.

        Args:
            timeout: Health check timeout in seconds (default: 30s)

        Returns:
            Tuple of (is_healthy: bool, message: str)
        """
        test_payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": "test"}],
            "temperature": 0.0,
            "max_tokens": 1,
        }

        try:
            logger.info(f"Performing health check on endpoint: {self.endpoint_url}")
            response = requests.post(
                self.endpoint_url, json=test_payload, headers=self._headers(), timeout=timeout
            )
            response.raise_for_status()

            result = response.json()
            if result.get("choices"):
                elapsed = response.elapsed.total_seconds()
                logger.info(f"Endpoint health check passed ({elapsed:.2f}s)")
                return True, f"Endpoint healthy (responded in {elapsed:.2f}s)"

            error_msg = "Endpoint returned invalid response structure"
            logger.warning(error_msg)
            return False, error_msg

        except requests.Timeout:
            error_msg = f"Endpoint timed out after {timeout}s"
            logger.error(error_msg)
            return False, error_msg

        except requests.ConnectionError as e:
            error_msg = f"Connection failed: {str(e)}"
            logger.error(error_msg)
            return False, error_msg

        except requests.HTTPError as e:
            error_msg = f"HTTP {e.response.status_code}: {e.response.reason}"
            logger.error(error_msg)
            return False, error_msg
