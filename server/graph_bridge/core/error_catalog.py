"""Shared user-readable error codes and payload helpers."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ErrorDefinition:
    """Metadata for a user-facing error code."""

    code: str
    default_message: str
    user_action: str


ERROR_CATALOG: Dict[str, ErrorDefinition] = {
    "MCP-TARGET-001": ErrorDefinition(
        code="MCP-TARGET-001",
        default_message="Target application instance is unavailable.",
        user_action="Make sure the Project Graph application is running, then retry.",
    ),
    "MCP-TARGET-002": ErrorDefinition(
        code="MCP-TARGET-002",
        default_message="An application instance is already attached.",
        user_action="Detach the current instance before attaching another one.",
    ),
    "MCP-DELIVERY-001": ErrorDefinition(
        code="MCP-DELIVERY-001",
        default_message="Command could not be delivered to the application instance.",
        user_action="Retry the request. If it keeps failing, check the application log.",
    ),
    "MCP-INPUT-001": ErrorDefinition(
        code="MCP-INPUT-001",
        default_message="Request body is not valid JSON.",
        user_action="Send tool arguments as a JSON document and retry.",
    ),
    "MCP-INPUT-002": ErrorDefinition(
        code="MCP-INPUT-002",
        default_message="Input parameter value is invalid.",
        user_action="Correct the invalid field value and retry.",
    ),
    "MCP-RESULT-001": ErrorDefinition(
        code="MCP-RESULT-001",
        default_message="No dispatched command matches this ticket.",
        user_action="Use the ticket returned by the dispatch response. Old tickets expire.",
    ),
    "MCP-ROUTE-001": ErrorDefinition(
        code="MCP-ROUTE-001",
        default_message="Endpoint not found.",
        user_action="Check the endpoint list under /mcp and retry.",
    ),
    "MCP-ROUTE-002": ErrorDefinition(
        code="MCP-ROUTE-002",
        default_message="Method not allowed for this endpoint.",
        user_action="Use GET for listings and reads, POST for tool calls.",
    ),
    "MCP-STARTUP-001": ErrorDefinition(
        code="MCP-STARTUP-001",
        default_message="Bridge server could not start.",
        user_action="Free the configured port or set MCP_PORT, then restart.",
    ),
    "MCP-INTERNAL-001": ErrorDefinition(
        code="MCP-INTERNAL-001",
        default_message="Unexpected internal server error.",
        user_action="Retry the request. If the issue persists, report the request ID.",
    ),
}

DEFAULT_ERROR = ERROR_CATALOG["MCP-INTERNAL-001"]


def normalize_error_code(code: str) -> str:
    """Map a code onto the catalog, falling back to the internal error code."""
    if code in ERROR_CATALOG:
        return code
    return DEFAULT_ERROR.code


def build_error_payload(
    code: str,
    *,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a consistent user-readable error payload."""
    normalized_code = normalize_error_code(code)
    definition = ERROR_CATALOG.get(normalized_code, DEFAULT_ERROR)

    payload_details: Dict[str, Any] = dict(details or {})
    if request_id:
        payload_details["request_id"] = request_id

    return {
        "code": normalized_code,
        "message": message or definition.default_message,
        "user_action": definition.user_action,
        "details": payload_details,
    }
