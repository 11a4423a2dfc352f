"""
Dispatch Bridge

Turns catalog and dispatch requests into commands for the single
attached application instance.

The instance channel is one-directional, so dispatch responses are
advisory: reads and prompts answer ``processing``, tool calls answer
``success`` after a short fixed delay. Every dispatch carries a ticket
whose real outcome the instance publishes on the result channel.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from graph_bridge.catalog.registry import CatalogRegistry
from graph_bridge.config import mcp_settings
from graph_bridge.core.errors import (
    DeliveryFailureError,
    InvalidArgumentError,
    TargetUnavailableError,
)
from graph_bridge.core.logging_config import log_structured, truncate_for_log
from graph_bridge.handlers.result_channel import ResultChannel
from graph_bridge.instances.base_instance import ApplicationInstance
from graph_bridge.instances.registry import InstanceRegistry
from graph_bridge.schemas.catalog_schema import (
    PromptDescriptor,
    ResourceDescriptor,
    ToolDescriptor,
)
from graph_bridge.schemas.dispatch_schema import (
    BridgeResponse,
    BridgeStatus,
    DeliveryResult,
    DispatchCommand,
    DispatchKind,
    ResultStatus,
)
from graph_bridge.utils.decoding import decode_path_param

logger = logging.getLogger(__name__)


class DispatchBridge:
    """
    Routes bridged calls to the attached application instance.

    Provides:
    - Catalog listings (never touch the instance)
    - Resource reads, tool calls and prompt fetches as dispatch commands
    - Ticket tracking on the result channel
    """

    def __init__(
        self,
        catalog: Optional[CatalogRegistry] = None,
        instances: Optional[InstanceRegistry] = None,
        results: Optional[ResultChannel] = None,
        tool_ack_delay: Optional[float] = None,
    ):
        self.catalog = catalog or CatalogRegistry.project_graph()
        self.instances = instances or InstanceRegistry()
        self.results = results or ResultChannel()
        self.tool_ack_delay = (
            tool_ack_delay if tool_ack_delay is not None else mcp_settings.tool_ack_delay_seconds
        )
        self._opened: Optional[ApplicationInstance] = None
        self.stats: Dict[str, Any] = {
            "dispatched": {kind.value: 0 for kind in DispatchKind},
            "delivery_failures": 0,
            "target_unavailable": 0,
        }

    # ------------------------------------------------------------------
    # Instance lifecycle
    # ------------------------------------------------------------------

    def attach(self, instance: ApplicationInstance) -> None:
        self.instances.attach(instance)

    async def detach(self) -> Optional[ApplicationInstance]:
        instance = self.instances.detach()
        if instance is not None and instance is self._opened:
            self._opened = None
            await instance.close()
        return instance

    async def startup(self) -> None:
        instance = self.instances.lookup()
        if instance is not None:
            await self._ensure_open(instance)

    async def shutdown(self) -> None:
        if self._opened is not None:
            instance, self._opened = self._opened, None
            await instance.close()
        await self.results.close()

    async def _ensure_open(self, instance: ApplicationInstance) -> None:
        if instance is self._opened:
            return
        self._opened = instance
        await instance.open(self.results)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_resources(self) -> List[ResourceDescriptor]:
        return self.catalog.list_resources()

    def list_tools(self) -> List[ToolDescriptor]:
        return self.catalog.list_tools()

    def list_prompts(self) -> List[PromptDescriptor]:
        return self.catalog.list_prompts()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def read_resource(self, uri: str) -> BridgeResponse:
        """
        Ask the instance to read a resource.

        Args:
            uri: Percent-encoded resource URI. A value that cannot be decoded
                is dispatched as-is and flagged with ``decoded: false``.

        Returns:
            ``processing`` response echoing the decoded URI and the ticket
        """
        decoded_uri, decoded = decode_path_param(uri)
        if not decoded:
            log_structured(
                logger,
                "warning",
                "resource_uri_decode_fallback",
                raw_uri=uri,
            )

        command = await self._dispatch(DispatchKind.READ_RESOURCE, decoded_uri)
        return BridgeResponse(
            status=BridgeStatus.PROCESSING,
            payload={
                "uri": decoded_uri,
                "decoded": decoded,
                "ticket": command.ticket,
                "message": self._follow_up(command, "resource contents"),
            },
        )

    async def call_tool(self, name: str, args: Any = None) -> BridgeResponse:
        """
        Deliver a tool call, wait briefly, then acknowledge.

        The ``success`` status only means the call was handed over; the
        instance validates ``args`` and reports the outcome on the ticket.
        ``args`` is any JSON value, ``None`` included, and is delivered as-is.
        """
        if not name:
            raise InvalidArgumentError("Tool name must not be empty", {"field": "name"})

        command = await self._dispatch(DispatchKind.CALL_TOOL, name, args)
        if self.tool_ack_delay > 0:
            await asyncio.sleep(self.tool_ack_delay)

        return BridgeResponse(
            status=BridgeStatus.SUCCESS,
            payload={
                "tool": name,
                "args": args,
                "ticket": command.ticket,
                "advisory": True,
                "message": self._follow_up(command, "tool result"),
            },
        )

    async def get_prompt(self, name: str) -> BridgeResponse:
        if not name:
            raise InvalidArgumentError("Prompt name must not be empty", {"field": "name"})

        command = await self._dispatch(DispatchKind.GET_PROMPT, name)
        return BridgeResponse(
            status=BridgeStatus.PROCESSING,
            payload={
                "name": name,
                "messages": [],
                "ticket": command.ticket,
                "message": self._follow_up(command, "prompt messages"),
            },
        )

    async def _dispatch(
        self,
        kind: DispatchKind,
        target: str,
        arguments: Any = None,
    ) -> DispatchCommand:
        instance = self.instances.lookup()
        if instance is None:
            self.stats["target_unavailable"] += 1
            log_structured(
                logger,
                "warning",
                "dispatch_target_unavailable",
                kind=kind.value,
                target=target,
                label=self.instances.label,
            )
            raise TargetUnavailableError(self.instances.label)

        await self._ensure_open(instance)

        command = DispatchCommand(kind=kind, target=target, arguments=arguments)
        await self.results.register(command)

        try:
            delivery = await instance.deliver(command)
        except Exception as e:
            logger.exception(f"Delivery raised for {kind.value} {target}")
            delivery = DeliveryResult.rejected(str(e) or type(e).__name__)

        if not delivery.accepted:
            self.stats["delivery_failures"] += 1
            detail = delivery.detail or "Command was not accepted"
            log_structured(
                logger,
                "error",
                "dispatch_delivery_failed",
                ticket=command.ticket,
                kind=kind.value,
                target=target,
                error=detail,
            )
            await self.results.publish(command.ticket, ResultStatus.ERROR, {"error": detail})
            raise DeliveryFailureError(
                detail,
                {"kind": kind.value, "target": target, "ticket": command.ticket},
            )

        self.stats["dispatched"][kind.value] += 1
        log_structured(
            logger,
            "info",
            "command_dispatched",
            ticket=command.ticket,
            kind=kind.value,
            target=target,
            in_catalog=self._in_catalog(kind, target),
            arguments=truncate_for_log(arguments),
        )
        return command

    def _in_catalog(self, kind: DispatchKind, target: str) -> bool:
        """Whether the target is advertised. Unlisted targets are still dispatched."""
        lookup = {
            DispatchKind.READ_RESOURCE: self.catalog.get_resource,
            DispatchKind.CALL_TOOL: self.catalog.get_tool,
            DispatchKind.GET_PROMPT: self.catalog.get_prompt,
        }[kind]
        return lookup(target) is not None

    @staticmethod
    def _follow_up(command: DispatchCommand, what: str) -> str:
        return f"Delivered to the application; poll /mcp/results/{command.ticket} for the {what}"
