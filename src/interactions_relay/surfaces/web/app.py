from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI

from ...core.config import RelayConfig
from ...core.deferred import DeferredCompletion
from ...core.logging_utils import log_event
from ...core.router import CommandRouter
from ...core.scheduler import TaskScheduler
from ...integrations.discord.rest import DiscordRestClient
from ...integrations.discord.signature import Verifier, verify_key
from ...integrations.workers_ai.client import WorkersAIClient
from .app_state import Completion, RelayState, Scheduler
from .routes.interactions import build_interaction_routes

logger = logging.getLogger(__name__)


def _app_lifespan(state: RelayState):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_event(
            logger,
            logging.INFO,
            "relay.server.started",
            commands=list(state.commands.command_names),
            model=state.config.inference.model,
        )
        try:
            yield
        finally:
            cancelled = await state.scheduler.drain(
                state.config.deferred.shutdown_grace_seconds
            )
            for client in state.closeables:
                await client.close()
            log_event(logger, logging.INFO, "relay.server.stopped", cancelled=cancelled)

    return lifespan


def build_completion(config: RelayConfig) -> tuple[DeferredCompletion, list[Any]]:
    account_id, api_token = config.require_inference_credentials()
    inference = WorkersAIClient(
        account_id=account_id,
        api_token=api_token,
        base_url=config.inference.base_url,
        timeout_seconds=config.inference.timeout_seconds,
    )
    editor = DiscordRestClient(
        bot_token=config.discord.bot_token,
        base_url=config.discord.api_base_url,
    )
    completion = DeferredCompletion(
        inference=inference,
        editor=editor,
        model=config.inference.model,
        max_tokens=config.inference.max_tokens,
        retry_policy=config.deferred.retry_policy,
    )
    return completion, [inference, editor]


def create_app(
    config: RelayConfig,
    *,
    commands: Optional[CommandRouter] = None,
    scheduler: Optional[Scheduler] = None,
    completion: Optional[Completion] = None,
    verifier: Verifier = verify_key,
) -> FastAPI:
    """Build the interactions endpoint.

    Collaborators default to the real ones derived from ``config``; tests
    inject fakes for the scheduler, completion and verifier.
    """
    public_key = config.require_public_key()
    closeables: list[Any] = []
    if completion is None:
        completion, closeables = build_completion(config)
    if scheduler is None:
        scheduler = TaskScheduler(timeout_seconds=config.deferred.timeout_seconds)
    state = RelayState(
        config=config,
        public_key=public_key,
        commands=commands or CommandRouter(),
        scheduler=scheduler,
        completion=completion,
        verifier=verifier,
        closeables=closeables,
    )

    app = FastAPI(
        title="interactions-relay",
        redirect_slashes=False,
        lifespan=_app_lifespan(state),
    )
    app.state.relay = state
    app.include_router(build_interaction_routes())

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
