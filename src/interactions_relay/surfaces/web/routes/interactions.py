from __future__ import annotations

import logging
from functools import partial

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ....core.logging_utils import log_event
from ....core.router import Deferred
from ....integrations.discord.constants import SIGNATURE_HEADER, TIMESTAMP_HEADER
from ....integrations.discord.errors import (
    InteractionAuthError,
    MalformedPayloadError,
    UnsupportedInteractionError,
)
from ....integrations.discord.interactions import InteractionKind, parse_interaction
from ....integrations.discord.rendering import pong_response
from ..app_state import RelayState

logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = {"detail": "Internal server error"}


def _state(request: Request) -> RelayState:
    return request.app.state.relay


def build_interaction_routes() -> APIRouter:
    router = APIRouter(tags=["interactions"])

    @router.post("/interactions")
    async def receive_interaction(request: Request) -> Response:
        state = _state(request)
        body = await request.body()
        try:
            interaction = parse_interaction(
                body,
                signature=request.headers.get(SIGNATURE_HEADER),
                timestamp=request.headers.get(TIMESTAMP_HEADER),
                public_key=state.public_key,
                verifier=state.verifier,
            )
            if interaction.kind is InteractionKind.UNSUPPORTED:
                raise UnsupportedInteractionError(interaction.raw_type)
        except InteractionAuthError as exc:
            log_event(
                logger, logging.WARNING, "relay.interaction.rejected", status=401, reason=str(exc)
            )
            return PlainTextResponse("Invalid request signature", status_code=401)
        except MalformedPayloadError as exc:
            log_event(
                logger, logging.WARNING, "relay.interaction.rejected", status=400, reason=str(exc)
            )
            return PlainTextResponse("Malformed interaction payload", status_code=400)
        except UnsupportedInteractionError as exc:
            log_event(
                logger, logging.INFO, "relay.interaction.rejected", status=400, reason=str(exc)
            )
            return PlainTextResponse("Unhandled interaction type", status_code=400)

        if interaction.kind is InteractionKind.PING:
            return JSONResponse(pong_response())

        try:
            result = state.commands.dispatch(interaction)
            if isinstance(result, Deferred):
                state.scheduler.schedule(
                    result.task.task_id, partial(state.completion.run, result.task)
                )
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "relay.interaction.failed",
                exc=exc,
                command=interaction.command_name,
                interaction_id=interaction.interaction_id,
            )
            return JSONResponse(INTERNAL_ERROR_BODY, status_code=500)

        log_event(
            logger,
            logging.INFO,
            "relay.interaction.dispatched",
            command=interaction.command_name,
            interaction_id=interaction.interaction_id,
            deferred=isinstance(result, Deferred),
        )
        return JSONResponse(result.payload)

    return router
