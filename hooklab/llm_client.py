"""OpenAI-compatible chat completions client."""

import logging
from typing import Any

import httpx

from hooklab.config import Settings

logger = logging.getLogger(__name__)

MAX_ERROR_DETAIL = 400


class LLMServiceError(Exception):
    """The text-generation service failed or returned an unusable response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMClient:
    """Minimal client for ``POST {endpoint}/chat/completions``."""

    def __init__(
        self,
        api_endpoint: str,
        model: str,
        api_key: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_endpoint = api_endpoint.rstrip("/")
        self.model = model
        self._api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(
            api_endpoint=settings.llm_api_endpoint,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            timeout=settings.llm_timeout_seconds,
        )

    @staticmethod
    def _raise_for_status_with_context(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
            return
        except httpx.HTTPStatusError as exc:
            detail = response.text.strip()
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                if isinstance(body.get("error"), dict):
                    detail = body["error"].get("message") or body["error"].get("code") or detail
                elif body.get("error"):
                    detail = str(body["error"])
                elif body.get("message"):
                    detail = str(body["message"])
            raise LLMServiceError(
                f"LLM API request failed ({response.status_code}): {detail[:MAX_ERROR_DETAIL]}",
                status_code=response.status_code,
            ) from exc

    async def generate(self, prompt: str, *, temperature: float | None = None) -> str:
        """Send a single user prompt and return the assistant message content."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            payload["temperature"] = temperature

        url = f"{self.api_endpoint}/chat/completions"
        logger.info("LLM request to %s model=%s prompt_chars=%d", url, self.model, len(prompt))

        try:
            response = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise LLMServiceError(f"LLM API request failed: {exc}") from exc
        self._raise_for_status_with_context(response)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMServiceError("LLM API returned an unexpected response shape.") from exc

        logger.info("LLM response model=%s usage=%s", self.model, data.get("usage", {}))
        return content or ""

    async def close(self) -> None:
        await self._client.aclose()
