"""
Base Application Instance

The bridge reaches the host application only through ``deliver``, a
one-directional channel: it reports whether a command was accepted,
never what the command produced. Instances report outcomes later on
the result channel handed to them in ``open``.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from graph_bridge.schemas.dispatch_schema import DeliveryResult, DispatchCommand

if TYPE_CHECKING:
    from graph_bridge.handlers.result_channel import ResultChannel


class ApplicationInstance(ABC):
    """
    Base class for all application instance adapters.

    Provides:
    - Delivery of dispatch commands
    - Lifespan hooks to start and stop background collectors
    """

    # Override in subclasses
    name: str = "application_instance"

    def __init__(self):
        self._results: Optional["ResultChannel"] = None

    async def open(self, results: "ResultChannel") -> None:
        """
        Called once when the server starts serving.

        Args:
            results: Channel on which outcomes of delivered commands are published
        """
        self._results = results

    async def close(self) -> None:
        """Called once when the server stops"""
        self._results = None

    @abstractmethod
    async def deliver(self, command: DispatchCommand) -> DeliveryResult:
        """
        Hand a command to the application without waiting for its outcome.

        Args:
            command: The command to deliver

        Returns:
            Whether the command was accepted for execution
        """

    def describe(self) -> dict:
        return {"name": self.name, "type": type(self).__name__}
