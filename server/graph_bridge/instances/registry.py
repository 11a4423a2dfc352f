"""Single-slot registry holding the attached application instance."""

import logging
from typing import Optional

from graph_bridge.config import mcp_settings
from graph_bridge.core.errors import InstanceAlreadyAttachedError
from graph_bridge.core.logging_config import log_structured
from graph_bridge.instances.base_instance import ApplicationInstance

logger = logging.getLogger(__name__)


class InstanceRegistry:
    """
    Holds at most one application instance under a well-known label.

    Lookups by any other label return None, as does a lookup while no
    instance is attached.
    """

    def __init__(self, label: Optional[str] = None):
        self.label = label or mcp_settings.MCP_TARGET_LABEL
        self._instance: Optional[ApplicationInstance] = None

    @property
    def is_attached(self) -> bool:
        return self._instance is not None

    def attach(self, instance: ApplicationInstance) -> None:
        if self._instance is not None:
            raise InstanceAlreadyAttachedError(self.label)
        self._instance = instance
        log_structured(
            logger,
            "info",
            "instance_attached",
            target=self.label,
            **instance.describe(),
        )

    def detach(self) -> Optional[ApplicationInstance]:
        instance, self._instance = self._instance, None
        if instance is not None:
            log_structured(logger, "info", "instance_detached", target=self.label)
        return instance

    def lookup(self, label: Optional[str] = None) -> Optional[ApplicationInstance]:
        if (label or self.label) != self.label:
            return None
        return self._instance
