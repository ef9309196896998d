from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from ..integrations.discord.interactions import CommandOption, Interaction
from ..integrations.discord.rendering import deferred_response, message_response
from .deferred import DeferredTask
from .exceptions import RelayError
from .logging_utils import log_event

logger = logging.getLogger(__name__)

HELLO_MESSAGE = "hello world"
QUESTION_OPTION = "text"
QUESTION_REQUIRED_MESSAGE = "Please provide a question, e.g. `/question text: why is the sky blue?`"


class CommandError(RelayError):
    """Handler-level problem that is reported back to the user as a message."""

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message, user_message=user_message or message)


@dataclass(frozen=True)
class Immediate:
    payload: dict[str, Any]


@dataclass(frozen=True)
class Deferred:
    payload: dict[str, Any]
    task: DeferredTask


CommandResult = Union[Immediate, Deferred]
CommandHandler = Callable[[Interaction, Sequence[CommandOption]], CommandResult]


def unknown_command_message(name: str) -> str:
    return f"Unknown command: /{name}"


def new_task_id() -> str:
    return uuid.uuid4().hex


def handle_hello(
    _interaction: Interaction, _options: Sequence[CommandOption]
) -> CommandResult:
    return Immediate(message_response(HELLO_MESSAGE))


def handle_question(
    interaction: Interaction, options: Sequence[CommandOption]
) -> CommandResult:
    prompt = ""
    option = interaction.option(QUESTION_OPTION) or (options[0] if options else None)
    if option is not None:
        value = option.value
        if isinstance(value, str):
            prompt = value.strip()
        elif value is not None:
            prompt = str(value).strip()
    if not prompt:
        raise CommandError("question requires text", user_message=QUESTION_REQUIRED_MESSAGE)
    task = DeferredTask(
        task_id=new_task_id(),
        application_id=interaction.application_id,
        token=interaction.token,
        prompt=prompt,
    )
    return Deferred(deferred_response(), task)


DEFAULT_HANDLERS: Mapping[str, CommandHandler] = {
    "hello": handle_hello,
    "question": handle_question,
}


class CommandRouter:
    def __init__(self, handlers: Optional[Mapping[str, CommandHandler]] = None) -> None:
        self._handlers: dict[str, CommandHandler] = dict(
            DEFAULT_HANDLERS if handlers is None else handlers
        )

    @property
    def command_names(self) -> tuple[str, ...]:
        return tuple(sorted(self._handlers))

    def register(self, name: str, handler: CommandHandler) -> None:
        normalized = name.strip()
        if not normalized:
            raise ValueError("command name must be non-empty")
        self._handlers[normalized] = handler

    def dispatch(self, interaction: Interaction) -> CommandResult:
        name = interaction.command_name or ""
        handler = self._handlers.get(name)
        if handler is None:
            log_event(logger, logging.INFO, "relay.command.unknown", command=name)
            return Immediate(message_response(unknown_command_message(name)))
        try:
            return handler(interaction, interaction.options)
        except CommandError as exc:
            log_event(
                logger,
                logging.INFO,
                "relay.command.rejected",
                command=name,
                reason=str(exc),
            )
            return Immediate(message_response(exc.user_message or str(exc)))
