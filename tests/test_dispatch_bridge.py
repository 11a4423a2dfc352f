import asyncio
import json
import time
import unittest
from typing import Optional

from graph_bridge.core.errors import (
    DeliveryFailureError,
    InvalidArgumentError,
    TargetUnavailableError,
)
from graph_bridge.handlers.dispatch_handler import DispatchBridge
from graph_bridge.instances.base_instance import ApplicationInstance
from graph_bridge.instances.callback_instance import CallbackInstance
from graph_bridge.schemas.dispatch_schema import (
    BridgeStatus,
    DeliveryResult,
    DispatchKind,
    ResultStatus,
)
from graph_bridge.utils.decoding import decode_path_param


class RecordingInstance(ApplicationInstance):
    name = "recording"

    def __init__(self, delivery: Optional[DeliveryResult] = None, error: Optional[Exception] = None):
        super().__init__()
        self.delivered = []
        self.opened = 0
        self._delivery = delivery or DeliveryResult()
        self._error = error

    async def open(self, results) -> None:
        self.opened += 1
        await super().open(results)

    async def deliver(self, command):
        self.delivered.append(command)
        if self._error is not None:
            raise self._error
        return self._delivery


class DecodePathParamTests(unittest.TestCase):
    def test_decodes_percent_encoded_uri(self) -> None:
        self.assertEqual(("project://nodes", True), decode_path_param("project%3A%2F%2Fnodes"))

    def test_plain_value_is_unchanged(self) -> None:
        self.assertEqual(("project://tags", True), decode_path_param("project://tags"))

    def test_empty_value_decodes_to_empty(self) -> None:
        self.assertEqual(("", True), decode_path_param(""))

    def test_malformed_escape_is_passed_through_raw(self) -> None:
        self.assertEqual(("project%ZZnodes", False), decode_path_param("project%ZZnodes"))
        self.assertEqual(("trailing%", False), decode_path_param("trailing%"))

    def test_invalid_utf8_is_passed_through_raw(self) -> None:
        self.assertEqual(("bad%FFbyte", False), decode_path_param("bad%FFbyte"))


class DispatchBridgeTests(unittest.IsolatedAsyncioTestCase):
    def _bridge(self, instance: Optional[ApplicationInstance] = None, delay: float = 0.0) -> DispatchBridge:
        bridge = DispatchBridge(tool_ack_delay=delay)
        if instance is not None:
            bridge.attach(instance)
        return bridge

    async def test_read_resource_decodes_before_dispatch(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        response = await bridge.read_resource("project%3A%2F%2Fnodes")

        self.assertEqual(BridgeStatus.PROCESSING, response.status)
        self.assertEqual("project://nodes", response.payload["uri"])
        self.assertTrue(response.payload["decoded"])
        self.assertEqual(1, len(instance.delivered))
        command = instance.delivered[0]
        self.assertEqual(DispatchKind.READ_RESOURCE, command.kind)
        self.assertEqual("project://nodes", command.target)
        self.assertEqual(command.ticket, response.payload["ticket"])

    async def test_read_resource_with_undecodable_uri_dispatches_raw_value(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        with self.assertLogs("graph_bridge.handlers.dispatch_handler", level="WARNING") as logs:
            response = await bridge.read_resource("project%ZZnodes")

        self.assertEqual("project%ZZnodes", response.payload["uri"])
        self.assertFalse(response.payload["decoded"])
        self.assertEqual("project%ZZnodes", instance.delivered[0].target)
        self.assertTrue(any("resource_uri_decode_fallback" in line for line in logs.output))

    async def test_read_resource_with_empty_uri_is_dispatched(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        response = await bridge.read_resource("")

        self.assertEqual("", response.payload["uri"])
        self.assertTrue(response.payload["decoded"])
        self.assertEqual("", instance.delivered[0].target)

    async def test_call_tool_acknowledges_success_and_passes_args_through(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)
        args = {"text": "hello", "x": 10, "y": 20, "unexpected": [1, 2, 3]}

        response = await bridge.call_tool("addNode", args)

        self.assertEqual(BridgeStatus.SUCCESS, response.status)
        self.assertEqual("addNode", response.payload["tool"])
        self.assertEqual(args, response.payload["args"])
        self.assertTrue(response.payload["advisory"])
        self.assertEqual(args, instance.delivered[0].arguments)

    async def test_call_tool_does_not_validate_against_schema(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        response = await bridge.call_tool("addNode", ["not", "an", "object"])

        self.assertEqual(BridgeStatus.SUCCESS, response.status)
        self.assertEqual(["not", "an", "object"], instance.delivered[0].arguments)

    async def test_call_tool_accepts_names_outside_the_catalog(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        response = await bridge.call_tool("renameNode", {})

        self.assertEqual(BridgeStatus.SUCCESS, response.status)
        self.assertEqual("renameNode", instance.delivered[0].target)

    async def test_call_tool_passes_null_and_primitive_args_unmodified(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        response = await bridge.call_tool("deleteNode", None)
        await bridge.call_tool("deleteNode", "n1")
        await bridge.call_tool("deleteNode", 0)

        self.assertIsNone(response.payload["args"])
        self.assertEqual([None, "n1", 0], [c.arguments for c in instance.delivered])

    async def test_call_tool_rejects_empty_name(self) -> None:
        bridge = self._bridge(RecordingInstance())
        with self.assertRaises(InvalidArgumentError):
            await bridge.call_tool("", {})

    async def test_get_prompt_rejects_empty_name(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)
        with self.assertRaises(InvalidArgumentError) as ctx:
            await bridge.get_prompt("")
        self.assertEqual("MCP-INPUT-002", ctx.exception.error_code)
        self.assertEqual(400, ctx.exception.status_code)
        self.assertEqual([], instance.delivered)

    async def test_dispatch_log_marks_targets_outside_the_catalog(self) -> None:
        bridge = self._bridge(RecordingInstance())

        with self.assertLogs("graph_bridge.handlers.dispatch_handler", level="INFO") as logs:
            await bridge.call_tool("addNode", {})
            await bridge.call_tool("renameNode", {})
            await bridge.read_resource("project%3A%2F%2Ftags")
            await bridge.get_prompt("summarize")

        dispatched = [
            json.loads(record.getMessage())
            for record in logs.records
            if '"command_dispatched"' in record.getMessage()
        ]
        self.assertEqual(
            [("addNode", True), ("renameNode", False), ("project://tags", True), ("summarize", False)],
            [(event["target"], event["in_catalog"]) for event in dispatched],
        )

    async def test_call_tool_waits_for_the_ack_delay(self) -> None:
        bridge = self._bridge(RecordingInstance(), delay=0.1)

        started = time.monotonic()
        await bridge.call_tool("deleteNode", {"nodeId": "n1"})
        elapsed = time.monotonic() - started

        self.assertGreaterEqual(elapsed, 0.09)
        self.assertLess(elapsed, 0.5)

    async def test_concurrent_tool_calls_do_not_serialize(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance, delay=0.3)

        started = time.monotonic()
        first, second = await asyncio.gather(
            bridge.call_tool("addNode", {"text": "a", "x": 0, "y": 0}),
            bridge.call_tool("deleteNode", {"nodeId": "n1"}),
        )
        elapsed = time.monotonic() - started

        self.assertEqual(BridgeStatus.SUCCESS, first.status)
        self.assertEqual(BridgeStatus.SUCCESS, second.status)
        self.assertNotEqual(first.payload["ticket"], second.payload["ticket"])
        self.assertLess(elapsed, 0.55)
        self.assertEqual(2, len(instance.delivered))

    async def test_get_prompt_returns_empty_messages(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        response = await bridge.get_prompt("analyze-project")

        self.assertEqual(BridgeStatus.PROCESSING, response.status)
        self.assertEqual([], response.payload["messages"])
        self.assertEqual(DispatchKind.GET_PROMPT, instance.delivered[0].kind)

    async def test_every_dispatch_fails_without_an_instance(self) -> None:
        bridge = self._bridge()

        with self.assertRaises(TargetUnavailableError) as ctx:
            await bridge.read_resource("project%3A%2F%2Fnodes")
        self.assertEqual("MCP-TARGET-001", ctx.exception.error_code)
        self.assertIn("unavailable", ctx.exception.message)

        with self.assertRaises(TargetUnavailableError):
            await bridge.call_tool("addNode", {})
        with self.assertRaises(TargetUnavailableError):
            await bridge.get_prompt("analyze-project")
        self.assertEqual(3, bridge.stats["target_unavailable"])

    async def test_listings_do_not_need_an_instance(self) -> None:
        bridge = self._bridge()
        self.assertEqual(4, len(bridge.list_resources()))
        self.assertEqual(7, len(bridge.list_tools()))
        self.assertEqual(2, len(bridge.list_prompts()))

    async def test_rejected_delivery_raises_and_records_error(self) -> None:
        instance = RecordingInstance(delivery=DeliveryResult.rejected("window closed"))
        bridge = self._bridge(instance)

        with self.assertRaises(DeliveryFailureError) as ctx:
            await bridge.call_tool("addNode", {})

        self.assertIn("window closed", ctx.exception.message)
        ticket = ctx.exception.details["ticket"]
        record = await bridge.results.get(ticket)
        self.assertEqual(ResultStatus.ERROR, record.status)
        self.assertEqual(1, bridge.stats["delivery_failures"])

    async def test_delivery_exception_becomes_delivery_failure(self) -> None:
        instance = RecordingInstance(error=OSError("pipe broken"))
        bridge = self._bridge(instance)

        with self.assertRaises(DeliveryFailureError) as ctx:
            await bridge.get_prompt("analyze-project")
        self.assertIn("pipe broken", ctx.exception.message)

    async def test_dispatch_registers_pending_ticket(self) -> None:
        bridge = self._bridge(RecordingInstance())

        response = await bridge.read_resource("project://edges")
        record = await bridge.results.get(response.payload["ticket"])

        self.assertEqual(ResultStatus.PENDING, record.status)
        self.assertEqual("project://edges", record.target)
        self.assertEqual(1, bridge.stats["dispatched"]["read_resource"])

    async def test_instance_is_opened_once(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)

        await bridge.startup()
        await bridge.call_tool("addNode", {})
        await bridge.read_resource("project://nodes")

        self.assertEqual(1, instance.opened)

    async def test_detach_makes_target_unavailable(self) -> None:
        instance = RecordingInstance()
        bridge = self._bridge(instance)
        await bridge.startup()

        detached = await bridge.detach()

        self.assertIs(instance, detached)
        with self.assertRaises(TargetUnavailableError):
            await bridge.read_resource("project://nodes")

    async def test_callback_instance_publishes_real_result_on_ticket(self) -> None:
        def handler(command):
            return {"success": True, "nodeId": "n-42", "tool": command.target}

        bridge = self._bridge(CallbackInstance(handler))
        await bridge.startup()

        response = await bridge.call_tool("addNode", {"text": "a", "x": 1, "y": 2})
        ticket = response.payload["ticket"]

        record = await bridge.results.get(ticket)
        for _ in range(100):
            if record.is_final:
                break
            await asyncio.sleep(0.01)
            record = await bridge.results.get(ticket)

        self.assertEqual(ResultStatus.SUCCESS, record.status)
        self.assertEqual({"success": True, "nodeId": "n-42", "tool": "addNode"}, record.result)
        await bridge.shutdown()


if __name__ == "__main__":
    unittest.main()
