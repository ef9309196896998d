from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

from ...core.config import RelayConfig
from ...core.deferred import DeferredTask, TaskOutcome
from ...core.router import CommandRouter
from ...integrations.discord.signature import Verifier, verify_key


class Completion(Protocol):
    async def run(self, task: DeferredTask) -> TaskOutcome: ...


class Scheduler(Protocol):
    def schedule(self, task_id: str, factory: Callable[[], Awaitable[Any]]) -> Any: ...

    async def drain(self, grace_seconds: Optional[float] = None) -> int: ...


@dataclass
class RelayState:
    config: RelayConfig
    public_key: str = field(repr=False)
    commands: CommandRouter
    scheduler: Scheduler
    completion: Completion
    verifier: Verifier = verify_key
    # Clients owned by the app and closed on shutdown.
    closeables: list[Any] = field(default_factory=list)


__all__ = ["Completion", "RelayState", "Scheduler"]
