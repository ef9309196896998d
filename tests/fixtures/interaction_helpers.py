"""Shared builders and fakes for interaction tests."""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Optional, Sequence

from interactions_relay.integrations.discord.errors import (
    DiscordPermanentError,
    DiscordTransientError,
)


def command_payload(
    name: str,
    *,
    options: Optional[list[dict[str, Any]]] = None,
    application_id: str = "app-1",
    token: str = "tok-1",
) -> dict[str, Any]:
    data: dict[str, Any] = {"id": "cmd-1", "name": name, "type": 1}
    if options is not None:
        data["options"] = options
    return {
        "id": "inter-1",
        "type": 2,
        "application_id": application_id,
        "token": token,
        "data": data,
    }


def encode(payload: Any) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class FakeInference:
    def __init__(
        self,
        result: Any = None,
        *,
        error: Optional[BaseException] = None,
    ) -> None:
        self.result = {"response": "42"} if result is None else result
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def run(
        self,
        model: str,
        *,
        messages: Sequence[dict[str, str]],
        max_tokens: Optional[int] = None,
    ) -> Any:
        self.calls.append(
            {"model": model, "messages": list(messages), "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        return self.result


class FakeEditor:
    """Follow-up editor that fails ``failures`` times before succeeding."""

    def __init__(self, failures: int = 0, *, permanent: bool = False) -> None:
        self.failures = failures
        self.permanent = permanent
        self.calls: list[dict[str, Any]] = []

    async def edit_original_interaction_response(
        self,
        *,
        application_id: str,
        interaction_token: str,
        payload: dict[str, Any],
    ) -> None:
        self.calls.append(
            {
                "application_id": application_id,
                "token": interaction_token,
                "payload": payload,
            }
        )
        if len(self.calls) <= self.failures:
            if self.permanent:
                raise DiscordPermanentError("bad request", status_code=400)
            raise DiscordTransientError("server error", status_code=502)


class SleepRecorder:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class RecordingScheduler:
    """Scheduler that records tasks instead of running them."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[str, Callable[[], Awaitable[Any]]]] = []
        self.drained = False
        self.drain_grace: Optional[float] = None

    def schedule(self, task_id: str, factory: Callable[[], Awaitable[Any]]) -> None:
        self.scheduled.append((task_id, factory))

    async def drain(self, grace_seconds: Optional[float] = None) -> int:
        self.drained = True
        self.drain_grace = grace_seconds
        return 0


class RecordingCompletion:
    def __init__(self) -> None:
        self.tasks: list[Any] = []

    async def run(self, task: Any) -> Any:
        self.tasks.append(task)
        return None
