"""
OpenAI-compatible chat-completions client.

API:   POST {base_url}/chat/completions
Docs:  https://platform.openai.com/docs/api-reference/chat

Credential setup (.env, gitignored):
  OPENAI_API_KEY=sk-...
  OPENAI_BASE_URL=https://api.openai.com/v1     # optional; any compatible server

Request body::

    {"model": "gpt-4o-mini",
     "messages": [{"role": "system", "content": "..."}, {"role": "user", "content": "..."}],
     "temperature": 0.3,
     "max_tokens": 500,
     "response_format": {"type": "json_object"}}    # only when json_mode=True

The client makes exactly one attempt per call, with no retry or backoff.
Pacing between calls is the enrichment orchestrator's job.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from movie_enricher.config import OracleConfig
from movie_enricher.errors import OracleError
from movie_enricher.oracle.base import Oracle, OracleRequest

logger = logging.getLogger(__name__)


class OpenAIChatOracle(Oracle):
    """Oracle backed by an OpenAI-compatible ``/chat/completions`` endpoint.

    Usage::

        oracle = OpenAIChatOracle(api_key=os.environ["OPENAI_API_KEY"])
        text = oracle.complete(build_enrichment_request(enrichment_input))
        oracle.close()
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_s: Optional[float] = 120.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialise the client.

        Args:
            api_key: Bearer token for the service.
            model: Model name sent with every request.
            base_url: API root; ``/chat/completions`` is appended.
            timeout_s: Per-request timeout in seconds; ``None`` disables it.
            client: Pre-built ``httpx.Client`` (tests use ``httpx.MockTransport``).
        """
        if not api_key:
            raise OracleError("OPENAI_API_KEY must be set in .env or the environment.")
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._api_key = api_key
        self._client = client

    @classmethod
    def from_config(cls, config: OracleConfig) -> "OpenAIChatOracle":
        return cls(
            api_key=config.api_key or "",
            model=config.model,
            base_url=config.base_url,
            timeout_s=config.timeout_s,
        )

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout_s,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def complete(self, request: OracleRequest) -> str:
        """POST one chat completion and return the first choice's content.

        Returns:
            Stripped completion text; ``""`` when the service returns no content.

        Raises:
            OracleError: On non-2xx status, transport failure, or a response
                body without ``choices``.
        """
        body: dict = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        if request.json_mode:
            body["response_format"] = {"type": "json_object"}

        logger.debug(
            "Oracle request | purpose=%s | model=%s | json_mode=%s",
            request.purpose, self.model, request.json_mode,
        )
        try:
            resp = self._get_client().post("/chat/completions", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise OracleError(
                f"Oracle returned HTTP {exc.response.status_code} for {request.purpose}."
            ) from exc
        except httpx.HTTPError as exc:
            raise OracleError(f"Oracle request failed for {request.purpose}: {exc}") from exc

        try:
            data = resp.json()
            content = data["choices"][0]["message"].get("content")
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise OracleError(
                f"Oracle response for {request.purpose} has no choices.", raw_content=resp.text
            ) from exc

        return (content or "").strip()
