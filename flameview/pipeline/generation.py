"""Generation collaborators: the LLM that writes components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from flameview.config import Settings
from flameview.errors import CollaboratorError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingConfig:
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_tokens: int = 8192

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_tokens,
        }

    @classmethod
    def for_generation(cls, settings: Settings) -> "SamplingConfig":
        return cls(
            temperature=settings.generation_temperature,
            top_k=settings.generation_top_k,
            top_p=settings.generation_top_p,
            max_tokens=settings.generation_max_tokens,
        )

    @classmethod
    def for_requirements(cls, settings: Settings) -> "SamplingConfig":
        return cls(
            temperature=settings.requirements_temperature,
            top_k=settings.requirements_top_k,
            top_p=settings.requirements_top_p,
            max_tokens=settings.requirements_max_tokens,
        )


class GenerationClient(Protocol):
    async def generate(self, prompt: str, *, sampling: Optional[SamplingConfig] = None) -> str: ...


class GeminiClient:
    """Gemini ``generateContent`` over HTTP.

    One request per call and no retries; every failure surfaces as a
    :class:`CollaboratorError`.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise CollaboratorError(
                "Gemini API key is not configured",
                collaborator=self.name,
                hint="Set FLAMEVIEW_GEMINI_API_KEY.",
            )
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "GeminiClient":
        return cls(
            settings.gemini_api_key or "",
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.request_timeout,
            **kwargs,
        )

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                transport=self._transport,
            )
        return self._http_client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str, *, sampling: Optional[SamplingConfig] = None) -> str:
        sampling = sampling or SamplingConfig()
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": sampling.to_payload(),
        }
        client = self._get_http_client()
        try:
            response = await client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise CollaboratorError(
                f"Gemini API error (status {status_code}): {exc.response.text[:200]}",
                collaborator=self.name,
                status_code=status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CollaboratorError(f"Gemini API request failed: {exc}", collaborator=self.name) from exc

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates or not isinstance(candidates[0], dict):
            raise CollaboratorError("Invalid response from Gemini API: no candidates", collaborator=self.name)
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text:
            raise CollaboratorError("Invalid response from Gemini API: empty content", collaborator=self.name)

        usage = data.get("usageMetadata") or {}
        logger.debug(
            "Gemini generated %s characters (prompt tokens %s, total tokens %s)",
            len(text),
            usage.get("promptTokenCount"),
            usage.get("totalTokenCount"),
        )
        return text

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = ["GeminiClient", "GenerationClient", "SamplingConfig"]
