"""
Classifier invoker backed by Ollama.

Ollama runs local LLMs and exposes a small HTTP API. Classifier prompts are
sent to `/api/generate` as a single non-streaming completion at temperature 0;
the raw response text is returned for the Classifier Gate to interpret.

Requirements:
    - Ollama must be installed and running (`ollama serve`)
    - The classifier model must be pulled (`ollama pull qwen2.5:0.5b`)

No retries: a failed classification simply means the policy does not fire.
"""

import json
from typing import Any

import httpx

from policyhook.config import DEFAULT_OLLAMA_URL
from policyhook.errors import (
    EmptyResponseError,
    InvocationFailedError,
    InvocationTimeoutError,
)

SERVICE_NAME = "classifier"


class OllamaClassifier:
    """
    Sends yes/no prompts to a local Ollama server.

    Example:
        with OllamaClassifier() as classifier:
            answer = classifier.classify("Is the sky blue? yes or no", "qwen2.5:0.5b")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_URL,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the classifier.

        Args:
            base_url: Ollama server URL
            timeout_seconds: Bound on one request
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "OllamaClassifier":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def classify(self, prompt: str, model: str) -> str:
        """
        Ask the model a yes/no question.

        Returns:
            The model's raw response text

        Raises:
            InvocationTimeoutError: Request timed out
            InvocationFailedError: Connection error, HTTP error, bad JSON, or a
                prompt that cannot be encoded
            EmptyResponseError: The model returned nothing
        """
        client = self._get_client()
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": 0},
        }

        try:
            response = client.post("/api/generate", json=payload)
        except UnicodeEncodeError as e:
            raise InvocationFailedError(
                service=SERVICE_NAME,
                underlying_error=f"prompt cannot be sent as UTF-8: {e.reason}",
            ) from e
        except httpx.TimeoutException as e:
            raise InvocationTimeoutError(
                service=SERVICE_NAME,
                timeout_seconds=self.timeout_seconds,
            ) from e
        except httpx.HTTPError as e:
            raise InvocationFailedError(
                service=SERVICE_NAME,
                underlying_error=f"cannot reach Ollama at {self.base_url}: {e}",
            ) from e

        if response.status_code == 404:
            raise InvocationFailedError(
                service=SERVICE_NAME,
                underlying_error=f"model '{model}' not found. Run: ollama pull {model}",
            )

        if response.status_code != 200:
            raise InvocationFailedError(
                service=SERVICE_NAME,
                underlying_error=f"HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise InvocationFailedError(
                service=SERVICE_NAME,
                underlying_error=f"invalid JSON from Ollama: {e}",
            ) from e

        text = data.get("response", "") if isinstance(data, dict) else ""
        if not isinstance(text, str) or not text.strip():
            raise EmptyResponseError(service=SERVICE_NAME)
        return text

    def check_connection(self) -> tuple[bool, str]:
        """
        Check if Ollama is reachable.

        Returns:
            Tuple of (is_ok, message)
        """
        try:
            response = self._get_client().get("/api/tags")
            if response.status_code != 200:
                return False, f"Ollama returned HTTP {response.status_code}"
            models = [m["name"] for m in response.json().get("models", [])]
            if not models:
                return False, "Connected but no models. Run: ollama pull qwen2.5:0.5b"
            return True, f"{len(models)} model(s) available"
        except httpx.ConnectError:
            return False, f"Cannot connect to Ollama at {self.base_url}. Is it running?"
        except Exception as e:
            return False, f"Error checking Ollama: {e}"
