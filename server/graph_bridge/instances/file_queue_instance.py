"""
File Queue Instance

Cross-process channel to the application: each command is written to
``<queue_dir>/requests/<ticket>.json``. The application answers by
writing ``<queue_dir>/responses/<ticket>.json`` containing
``{"status": "success" | "error", "result": ...}``; a background task
collects those files and publishes them on the result channel.
Response files must be written atomically (temp file, then rename).
"""

import asyncio
import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from graph_bridge.config import mcp_settings
from graph_bridge.core.errors import ResultNotFoundError
from graph_bridge.core.logging_config import log_structured
from graph_bridge.instances.base_instance import ApplicationInstance
from graph_bridge.schemas.dispatch_schema import (
    DeliveryResult,
    DispatchCommand,
    ResultStatus,
)

logger = logging.getLogger(__name__)


class FileQueueInstance(ApplicationInstance):
    name = "file_queue"

    def __init__(self, queue_dir: Optional[str] = None, poll_interval: Optional[float] = None):
        super().__init__()
        self.queue_dir = Path(queue_dir or mcp_settings.MCP_QUEUE_DIR)
        self.requests_dir = self.queue_dir / "requests"
        self.responses_dir = self.queue_dir / "responses"
        self.poll_interval = (
            poll_interval if poll_interval is not None else mcp_settings.MCP_QUEUE_POLL_MS / 1000.0
        )
        self._collector: Optional[asyncio.Task] = None

        self.requests_dir.mkdir(parents=True, exist_ok=True)
        self.responses_dir.mkdir(parents=True, exist_ok=True)

    def describe(self) -> dict:
        return {**super().describe(), "queue_dir": str(self.queue_dir)}

    async def open(self, results) -> None:
        await super().open(results)
        self._collector = asyncio.create_task(self._collect_forever())
        log_structured(
            logger,
            "info",
            "file_queue_opened",
            queue_dir=str(self.queue_dir),
            poll_interval=self.poll_interval,
        )

    async def close(self) -> None:
        if self._collector is not None:
            self._collector.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._collector
            self._collector = None

        removed = 0
        for path in self.requests_dir.glob("*.json"):
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
                removed += 1
        log_structured(logger, "info", "file_queue_closed", pending_requests_removed=removed)
        await super().close()

    async def deliver(self, command: DispatchCommand) -> DeliveryResult:
        try:
            message = json.dumps(command.to_message())
        except (TypeError, ValueError) as e:
            return DeliveryResult.rejected(f"Command is not JSON serializable: {e}")

        path = self.requests_dir / f"{command.ticket}.json"
        try:
            await asyncio.to_thread(_write_atomic, path, message)
        except OSError as e:
            return DeliveryResult.rejected(f"Could not write {path.name}: {e}")
        return DeliveryResult()

    async def collect_responses(self) -> int:
        """Publish every response file present right now. Returns how many were handled."""
        handled = 0
        for path in sorted(self.responses_dir.glob("*.json")):
            ticket = path.stem
            status, result = await asyncio.to_thread(_read_response, path)

            with contextlib.suppress(FileNotFoundError):
                path.unlink()
            with contextlib.suppress(FileNotFoundError):
                (self.requests_dir / path.name).unlink()

            handled += 1
            if self._results is None:
                continue
            try:
                await self._results.publish(ticket, status, result)
            except ResultNotFoundError:
                log_structured(logger, "warning", "file_queue_unknown_ticket", ticket=ticket)
        return handled

    async def _collect_forever(self) -> None:
        while True:
            try:
                await self.collect_responses()
            except OSError as e:
                log_structured(logger, "warning", "file_queue_collect_failed", error=str(e))
            await asyncio.sleep(self.poll_interval)


def _write_atomic(path: Path, text: str) -> None:
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    os.replace(tmp_path, path)


def _read_response(path: Path) -> Tuple[ResultStatus, Any]:
    try:
        data: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        return ResultStatus.ERROR, {"error": f"Malformed response file: {e}"}

    if not isinstance(data, dict):
        return ResultStatus.SUCCESS, data
    try:
        status = ResultStatus(data.get("status", ResultStatus.SUCCESS.value))
    except ValueError:
        status = ResultStatus.ERROR
    if status == ResultStatus.PENDING:
        status = ResultStatus.SUCCESS
    return status, data.get("result")
