"""Exception hierarchy shared by the bridge, instance adapters and lifecycle."""

from typing import Any, Dict, Optional

from graph_bridge.core.error_catalog import build_error_payload, normalize_error_code


class BridgeError(Exception):
    """Base exception for bridge errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = normalize_error_code(error_code)
        self.details = details or {}

    def to_payload(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        return build_error_payload(
            self.error_code,
            message=self.message,
            details=self.details,
            request_id=request_id,
        )


class TargetUnavailableError(BridgeError):
    """No application instance is attached under the target label"""

    def __init__(self, label: str):
        super().__init__(
            f"Target application instance '{label}' is unavailable",
            "MCP-TARGET-001",
            {"target": label},
        )


class InstanceAlreadyAttachedError(BridgeError):
    """A second instance was attached while one is registered"""

    def __init__(self, label: str):
        super().__init__(
            f"An application instance is already attached as '{label}'",
            "MCP-TARGET-002",
            {"target": label},
        )


class DeliveryFailureError(BridgeError):
    """The one-directional channel refused or failed to send a command"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Delivery error: {message}", "MCP-DELIVERY-001", details)


class InvalidArgumentError(BridgeError):
    """A request parameter failed validation"""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MCP-INPUT-002", details)


class ResultNotFoundError(BridgeError):
    """No dispatch with this ticket is tracked on the result channel"""

    status_code = 404

    def __init__(self, ticket: str):
        super().__init__(
            f"Unknown ticket: {ticket}",
            "MCP-RESULT-001",
            {"ticket": ticket},
        )


class StartupFailureError(BridgeError):
    """The listening socket could not be bound. Fatal."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MCP-STARTUP-001", details)
