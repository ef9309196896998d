from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import httpx

from ...core.exceptions import RelayError

WORKERS_AI_BASE_URL = "https://api.cloudflare.com/client/v4"


class InferenceError(RelayError):
    """Text generation failed or returned an unexpected shape."""


@runtime_checkable
class InferenceClient(Protocol):
    """Text-generation contract used by deferred completions."""

    async def run(
        self,
        model: str,
        *,
        messages: Sequence[dict[str, str]],
        max_tokens: Optional[int] = None,
    ) -> Any:
        """Run ``model`` over role-tagged ``messages`` and return its result object."""


class WorkersAIClient:
    def __init__(
        self,
        *,
        account_id: str,
        api_token: str,
        base_url: str = WORKERS_AI_BASE_URL,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not account_id:
            raise ValueError("account_id is required")
        if not api_token:
            raise ValueError("api_token is required")
        self._account_id = account_id
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Authorization": f"Bearer {api_token}"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "WorkersAIClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def run(
        self,
        model: str,
        *,
        messages: Sequence[dict[str, str]],
        max_tokens: Optional[int] = None,
    ) -> Any:
        body: dict[str, Any] = {"messages": list(messages)}
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        path = f"/accounts/{self._account_id}/ai/run/{model}"
        try:
            response = await self._client.post(path, json=body)
        except httpx.HTTPError as exc:
            raise InferenceError(
                f"Workers AI network error for {model}: {type(exc).__name__}: {exc}"
            ) from exc

        if not 200 <= response.status_code < 300:
            preview = (response.text or "").strip().replace("\n", " ")[:200]
            raise InferenceError(
                f"Workers AI request failed for {model}: "
                f"status={response.status_code} body={preview!r}"
            )
        try:
            envelope = response.json()
        except ValueError as exc:
            raise InferenceError(f"Workers AI returned non-JSON for {model}") from exc
        if not isinstance(envelope, dict):
            raise InferenceError(f"Workers AI returned a non-object envelope for {model}")
        if envelope.get("success") is False:
            raise InferenceError(
                f"Workers AI reported failure for {model}: {envelope.get('errors')!r}"
            )
        return envelope.get("result")
