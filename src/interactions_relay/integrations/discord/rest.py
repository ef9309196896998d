from __future__ import annotations

from typing import Any, Optional

import httpx

from .constants import DISCORD_API_BASE_URL
from .errors import DiscordAPIError, DiscordPermanentError, DiscordTransientError


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


class DiscordRestClient:
    """Single-attempt Discord REST calls.

    Failures are classified into ``DiscordTransientError`` (network errors,
    429, 5xx) and ``DiscordPermanentError`` (other 4xx); callers own the
    retry policy.
    """

    def __init__(
        self,
        *,
        bot_token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        base_url: str = DISCORD_API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, transport=transport
        )
        self._headers: dict[str, str] = {}
        if bot_token:
            self._headers["Authorization"] = f"Bot {bot_token}"

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordRestClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | list[dict[str, Any]] | None = None,
        log_path: Optional[str] = None,
        expect_json: bool = True,
    ) -> Any:
        # log_path lets callers keep webhook tokens out of error messages.
        shown_path = log_path or path
        try:
            response = await self._client.request(
                method, path, json=payload, headers=self._headers
            )
        except httpx.HTTPError as exc:
            raise DiscordTransientError(
                f"Discord API network error for {method} {shown_path}: "
                f"{type(exc).__name__}"
            ) from exc

        status_code = response.status_code
        if 200 <= status_code < 300:
            if not expect_json:
                return None
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                raise DiscordAPIError(
                    f"Discord API returned non-JSON success response for {method} {shown_path}",
                    status_code=status_code,
                ) from exc

        body_preview = (response.text or "").strip().replace("\n", " ")[:200]
        message = (
            f"Discord API request failed for {method} {shown_path}: "
            f"status={status_code} body={body_preview!r}"
        )
        if status_code == 429 or 500 <= status_code < 600:
            raise DiscordTransientError(
                message,
                status_code=status_code,
                retry_after=_parse_retry_after(response),
            )
        raise DiscordPermanentError(message, status_code=status_code)

    async def edit_original_interaction_response(
        self,
        *,
        application_id: str,
        interaction_token: str,
        payload: dict[str, Any],
    ) -> None:
        await self._request(
            "PATCH",
            f"/webhooks/{application_id}/{interaction_token}/messages/@original",
            payload=payload,
            log_path=f"/webhooks/{application_id}/<token>/messages/@original",
            expect_json=False,
        )

    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict[str, Any]],
        guild_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        path = (
            f"/applications/{application_id}/commands"
            if guild_id is None
            else f"/applications/{application_id}/guilds/{guild_id}/commands"
        )
        payload = await self._request("PUT", path, payload=commands)
        if not isinstance(payload, list):
            return []
        return [item for item in payload if isinstance(item, dict)]
