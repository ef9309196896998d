"""Deferred completion of slow commands.

A deferred command has already answered Discord with a "thinking"
placeholder. The task here produces the real content and overwrites that
placeholder through the follow-up webhook, retrying transient delivery
failures. Nothing propagates back to the original HTTP request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from ..integrations.discord.constants import DISCORD_MAX_MESSAGE_LENGTH
from ..integrations.discord.errors import DiscordAPIError
from ..integrations.discord.rendering import followup_edit_payload, truncate_for_discord
from ..integrations.workers_ai.client import InferenceClient, InferenceError
from .logging_utils import log_event
from .retry import RetryPolicy, SleepFn, build_retrying

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant answering questions in a chat channel. "
    f"Keep every answer under {DISCORD_MAX_MESSAGE_LENGTH} characters."
)
APOLOGY_MESSAGE = "Sorry, an error occurred while generating a response."


@dataclass(frozen=True)
class DeferredTask:
    task_id: str
    application_id: str
    token: str = field(repr=False)
    prompt: str


@dataclass(frozen=True)
class FollowupEdit:
    application_id: str
    token: str = field(repr=False)
    content: str


@dataclass(frozen=True)
class TaskOutcome:
    task_id: str
    delivered: bool
    attempts: int
    inference_failed: bool = False


class FollowupEditor(Protocol):
    async def edit_original_interaction_response(
        self,
        *,
        application_id: str,
        interaction_token: str,
        payload: dict[str, Any],
    ) -> Any: ...


def build_messages(prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def extract_response_text(result: Any) -> str:
    if not isinstance(result, dict):
        raise InferenceError(f"Inference result is not an object: {type(result).__name__}")
    text = result.get("response")
    if not isinstance(text, str):
        raise InferenceError("Inference result is missing a string 'response'")
    if not text.strip():
        raise InferenceError("Inference result has an empty 'response'")
    return text


class DeferredCompletion:
    def __init__(
        self,
        *,
        inference: InferenceClient,
        editor: FollowupEditor,
        model: str,
        max_tokens: Optional[int] = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        max_length: int = DISCORD_MAX_MESSAGE_LENGTH,
        sleep_fn: SleepFn = asyncio.sleep,
    ) -> None:
        self._inference = inference
        self._editor = editor
        self._model = model
        self._max_tokens = max_tokens
        self._retry_policy = retry_policy
        self._max_length = max_length
        self._sleep = sleep_fn

    async def render(self, task: DeferredTask) -> tuple[str, bool]:
        """Return ``(content, inference_failed)`` for ``task``."""
        try:
            result = await self._inference.run(
                self._model,
                messages=build_messages(task.prompt),
                max_tokens=self._max_tokens,
            )
            text = extract_response_text(result)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "relay.deferred.inference_failed",
                exc=exc,
                task_id=task.task_id,
                model=self._model,
            )
            return APOLOGY_MESSAGE, True
        return truncate_for_discord(text, max_len=self._max_length), False

    async def deliver(self, task_id: str, edit: FollowupEdit) -> tuple[bool, int]:
        """Send ``edit`` with the retry policy; return ``(delivered, attempts)``."""
        attempts = 0
        payload = followup_edit_payload(edit.content)

        async def _attempt() -> None:
            nonlocal attempts
            attempts += 1
            await self._editor.edit_original_interaction_response(
                application_id=edit.application_id,
                interaction_token=edit.token,
                payload=payload,
            )

        retrying = build_retrying(self._retry_policy, logger=logger, sleep=self._sleep)
        try:
            await retrying(_attempt)
        except DiscordAPIError as exc:
            log_event(
                logger,
                logging.ERROR,
                "relay.deferred.delivery_failed",
                task_id=task_id,
                application_id=edit.application_id,
                token=edit.token,
                attempts=attempts,
                status_code=exc.status_code,
                error=str(exc),
            )
            return False, attempts
        log_event(
            logger,
            logging.INFO,
            "relay.deferred.delivered",
            task_id=task_id,
            application_id=edit.application_id,
            token=edit.token,
            attempts=attempts,
            content_length=len(payload["content"]),
        )
        return True, attempts

    async def run(self, task: DeferredTask) -> TaskOutcome:
        content, inference_failed = await self.render(task)
        delivered, attempts = await self.deliver(
            task.task_id,
            FollowupEdit(
                application_id=task.application_id,
                token=task.token,
                content=content,
            ),
        )
        return TaskOutcome(
            task_id=task.task_id,
            delivered=delivered,
            attempts=attempts,
            inference_failed=inference_failed,
        )
