"""
Dispatch Schemas

Commands sent to the attached application instance, the advisory
responses returned to HTTP callers, and the records kept on the
result channel.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DispatchKind(str, Enum):
    READ_RESOURCE = "read_resource"
    CALL_TOOL = "call_tool"
    GET_PROMPT = "get_prompt"


class BridgeStatus(str, Enum):
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class ResultStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class DispatchCommand(BaseModel):
    """One bridged call, created per request and delivered once"""

    model_config = ConfigDict(frozen=True)

    kind: DispatchKind
    target: str = Field(..., description="Resource URI, tool name or prompt name")
    arguments: Any = Field(None, description="JSON argument payload, passed through untouched")
    ticket: str = Field(default_factory=lambda: uuid4().hex)
    issued_at: str = Field(default_factory=now_iso)

    def to_message(self) -> Dict[str, Any]:
        """Wire form written to out-of-process instances"""
        return {
            "requestId": self.ticket,
            "kind": self.kind.value,
            "target": self.target,
            "arguments": self.arguments,
            "issuedAt": self.issued_at,
        }


class DeliveryResult(BaseModel):
    """Whether a command was accepted for execution. Never its outcome."""

    accepted: bool = True
    detail: Optional[str] = None

    @classmethod
    def rejected(cls, detail: str) -> "DeliveryResult":
        return cls(accepted=False, detail=detail)


class BridgeResponse(BaseModel):
    """Advisory response returned to the HTTP caller"""

    status: BridgeStatus
    payload: Dict[str, Any] = Field(default_factory=dict)

    def to_body(self) -> Dict[str, Any]:
        return {"status": self.status.value, **self.payload}


class ResultRecord(BaseModel):
    """Outcome of a dispatched command as published by the instance"""

    ticket: str
    kind: DispatchKind
    target: str
    status: ResultStatus = ResultStatus.PENDING
    result: Any = None
    updated_at: str = Field(default_factory=now_iso)

    @property
    def is_final(self) -> bool:
        return self.status != ResultStatus.PENDING

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class PublishResultRequest(BaseModel):
    """Body of POST /mcp/results/{ticket}"""

    status: ResultStatus = ResultStatus.SUCCESS
    result: Any = None
