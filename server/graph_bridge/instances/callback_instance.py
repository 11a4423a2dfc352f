"""In-process instance that runs a host callable for every command."""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Set

from graph_bridge.core.errors import ResultNotFoundError
from graph_bridge.core.logging_config import log_structured
from graph_bridge.instances.base_instance import ApplicationInstance
from graph_bridge.schemas.dispatch_schema import (
    DeliveryResult,
    DispatchCommand,
    ResultStatus,
)

logger = logging.getLogger(__name__)


class CallbackInstance(ApplicationInstance):
    """
    Fire-and-forget adapter for an application living in this process.

    ``handler(command)`` runs on the loop's default executor. Delivery
    returns as soon as the call is scheduled; the handler's return value
    (or exception) is published on the result channel when it finishes.
    """

    name = "callback"

    def __init__(self, handler: Callable[[DispatchCommand], Any], name: str = "callback"):
        super().__init__()
        self._handler = handler
        self.name = name
        self._pending: Set[asyncio.Future] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def describe(self) -> dict:
        return {**super().describe(), "pending": self.pending_count}

    async def deliver(self, command: DispatchCommand) -> DeliveryResult:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._handler, command)
        self._pending.add(future)
        future.add_done_callback(partial(self._on_done, command))
        return DeliveryResult()

    async def close(self) -> None:
        for future in list(self._pending):
            future.cancel()
        self._pending.clear()
        await super().close()

    def _on_done(self, command: DispatchCommand, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled() or self._results is None:
            return

        error = future.exception()
        if error is not None:
            log_structured(
                logger,
                "warning",
                "callback_handler_failed",
                ticket=command.ticket,
                kind=command.kind.value,
                target=command.target,
                error=str(error),
            )
            status, result = ResultStatus.ERROR, {"error": str(error)}
        else:
            status, result = ResultStatus.SUCCESS, future.result()

        task = asyncio.ensure_future(self._publish(command.ticket, status, result))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, ticket: str, status: ResultStatus, result: Any) -> None:
        if self._results is None:
            return
        try:
            await self._results.publish(ticket, status, result)
        except ResultNotFoundError:
            log_structured(logger, "warning", "result_ticket_expired", ticket=ticket)
